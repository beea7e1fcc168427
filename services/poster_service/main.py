import asyncio
import base64
import json
import logging
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError as PydanticValidationError

from .codec import SUPPORTED_IMAGE_TYPES
from .config import (
    DEBUG,
    FETCH_TIMEOUT_S,
    FONT_DIR,
    HTTP_ADDRESS,
    HTTP_PORT,
    JPEG_QUALITY,
    LOG_LEVEL,
    WXACODE_URL,
    cors_allow_origins,
)
from .engine import CompositionEngine
from .errors import PosterError
from .fonts import FontCache
from .models import Background, PosterParam
from .remote import WxaCodeClient

# Configure logging
logging.basicConfig(level=getattr(logging, LOG_LEVEL, logging.INFO), format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
logger = logging.getLogger(__name__)

# Process-wide font cache; lives as long as the process
font_cache = FontCache(FONT_DIR)
if not FONT_DIR.is_dir():
    logger.warning(f"Font directory {FONT_DIR} does not exist; text blocks will fail until fonts are installed")

engine = CompositionEngine(
    font_cache,
    WxaCodeClient(WXACODE_URL, timeout=FETCH_TIMEOUT_S),
    fetch_timeout=FETCH_TIMEOUT_S,
    jpeg_quality=JPEG_QUALITY,
)

app = FastAPI(title="Poster Service", version="1.0.0", debug=DEBUG)

# CORS middleware: posters are requested straight from browsers.
# Configure via CORS_ALLOW_ORIGINS env (comma-separated). Defaults to any origin.
allow_origins = cors_allow_origins()
# If wildcard is present, set credentials False and pass ["*"] per Starlette rules
use_wildcard = "*" in allow_origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if use_wildcard else allow_origins,
    allow_credentials=False if use_wildcard else True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Length", "Content-Type"],
)


class BadRequest(Exception):
    """Request body could not be turned into a PosterParam."""


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _parse_param(payload: Any) -> PosterParam:
    if not isinstance(payload, dict):
        raise BadRequest("Request body must be a JSON object")
    try:
        return PosterParam.model_validate(payload)
    except PydanticValidationError as e:
        raise BadRequest(str(e)) from e


async def _read_json(request: Request) -> Dict[str, Any]:
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise BadRequest(f"Invalid JSON body: {e}") from e


async def _read_form(request: Request) -> PosterParam:
    """Form requests carry the JSON parameters in `param` and may upload the
    background as a `background` file instead of a base64 string."""
    form = await request.form()
    raw = form.get("param") or "{}"
    if not isinstance(raw, str):
        raw = (await raw.read()).decode("utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as e:
        raise BadRequest(f"Invalid JSON in form field 'param': {e}") from e
    param = _parse_param(payload)

    upload = form.get("background")
    if upload is not None and hasattr(upload, "read"):
        data = await upload.read()
        if data:
            if param.background is None:
                param.background = Background()
            param.background.image = data
            if not param.background.image_type:
                ctype = (upload.content_type or "").lower()
                guessed = ctype.split("/")[-1] if ctype.startswith("image/") else ""
                if guessed in SUPPORTED_IMAGE_TYPES:
                    param.background.image_type = guessed
    return param


async def _render(param: PosterParam) -> bytes:
    # Rendering is CPU bound with blocking fetches; keep it off the event loop
    return await asyncio.to_thread(engine.render, param)


# API Endpoints
@app.post("/create")
async def create_poster(request: Request):
    """Render a poster from a JSON body or a form and return the JPEG."""
    try:
        ctype = (request.headers.get("content-type") or "").lower()
        if ctype.startswith("multipart/form-data") or ctype.startswith("application/x-www-form-urlencoded"):
            param = await _read_form(request)
        else:
            param = _parse_param(await _read_json(request))
        img = await _render(param)
        return Response(content=img, media_type="image/jpeg")
    except (BadRequest, PosterError) as e:
        logger.warning(f"create rejected: {e}")
        return _error(400, str(e))
    except Exception as e:
        logger.exception(f"Error in create: {e}")
        return _error(500, str(e) or e.__class__.__name__)


@app.post("/rpc/create_poster")
async def rpc_create_poster(request: Request):
    """RPC-style entry point: same parameters, reply {"image": <base64 jpeg>}."""
    try:
        param = _parse_param(await _read_json(request))
        img = await _render(param)
        return {"image": base64.b64encode(img).decode("ascii")}
    except (BadRequest, PosterError) as e:
        logger.warning(f"rpc create_poster rejected: {e}")
        return _error(400, str(e))
    except Exception as e:
        logger.exception(f"Error in rpc create_poster: {e}")
        return _error(500, str(e) or e.__class__.__name__)


@app.get("/health")
async def health():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "poster-service",
        "font_dir": str(FONT_DIR),
        "font_dir_exists": FONT_DIR.is_dir(),
        "fonts_loaded": len(font_cache),
        "jpeg_quality": JPEG_QUALITY,
        "fetch_timeout_s": FETCH_TIMEOUT_S,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=HTTP_ADDRESS, port=HTTP_PORT)
