import io
import os
import sys

import pytest
from PIL import Image, ImageFont

# 添加服务目录到路径
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "services"))

from poster_service.engine import CompositionEngine
from poster_service.fonts import FontCache
from poster_service.remote import WxaCodeClient


def image_bytes(size=(10, 10), color=(255, 0, 0), fmt="PNG") -> bytes:
    buffer = io.BytesIO()
    mode = "RGBA" if len(color) == 4 else "RGB"
    Image.new(mode, size, color).save(buffer, format=fmt)
    return buffer.getvalue()


def close_to(pixel, expected, tol=3) -> bool:
    return all(abs(int(a) - int(b)) <= tol for a, b in zip(pixel, expected))


def _pillow_font_bytes():
    try:
        font = ImageFont.load_default(size=24)
    except (TypeError, ImportError, OSError):
        return None
    return getattr(font, "font_bytes", None)


@pytest.fixture
def font_bytes():
    data = _pillow_font_bytes()
    if not data:
        pytest.skip("Pillow was built without a FreeType default font")
    return data


@pytest.fixture
def font_dir(tmp_path, font_bytes):
    d = tmp_path / "fonts"
    d.mkdir()
    (d / "default.ttc").write_bytes(font_bytes)
    return d


@pytest.fixture
def font_cache(font_dir):
    return FontCache(font_dir)


@pytest.fixture
def engine(font_cache):
    return CompositionEngine(font_cache, WxaCodeClient("https://wx.example.test/wxa/getwxacodeunlimit"))
