"""Poster composition service: layer a background, images, QR codes,
mini-program codes and text onto one canvas and return it as a JPEG."""

from .engine import CompositionEngine, RenderState
from .errors import (
    DecodeError,
    FetchError,
    FontError,
    FontNotFound,
    FontParseError,
    InvalidColor,
    PosterError,
    UnsupportedImageType,
    ValidationError,
)
from .fonts import Font, FontCache
from .models import (
    Background,
    PosterParam,
    QrCode,
    SubImage,
    SubObject,
    Text,
    WxQrCode,
    normalize_poster_param,
)

__version__ = "1.0.0"
