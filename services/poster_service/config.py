import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

SERVICE_DIR = Path(__file__).resolve().parent


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_optional_float(name: str) -> Optional[float]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return None
    return float(raw)


DEBUG = _env_bool("DEBUG")
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG" if DEBUG else "INFO").strip().upper()

# HTTP listener
HTTP_ADDRESS = os.getenv("HTTP_ADDRESS", "0.0.0.0").strip()
HTTP_PORT = int(os.getenv("HTTP_PORT", "10380"))

# Font resources: files are looked up by name inside this directory
FONT_DIR = Path((os.getenv("FONT_DIR", "").strip() or str(SERVICE_DIR / "resources" / "fonts"))).resolve()
DEFAULT_FONT_NAME = os.getenv("DEFAULT_FONT_NAME", "default.ttc").strip()

# Output encoding
JPEG_QUALITY = int(os.getenv("JPEG_QUALITY", "75"))

# Socket timeout handed to requests for URL fetches and the mini-program code service.
# Unset means no timeout; bounding a whole render is the caller's job.
FETCH_TIMEOUT_S = _env_optional_float("FETCH_TIMEOUT_S")

WXACODE_URL = os.getenv("WXACODE_URL", "https://api.weixin.qq.com/wxa/getwxacodeunlimit").strip()


def cors_allow_origins() -> List[str]:
    origins_env = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if not origins_env:
        return ["*"]
    return [o.strip() for o in origins_env.split(",") if o.strip()]
