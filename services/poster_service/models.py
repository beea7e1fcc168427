import base64
import binascii
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .codec import SUPPORTED_IMAGE_TYPES, is_supported_type
from .config import DEFAULT_FONT_NAME
from .errors import ValidationError

# Defaults
DEFAULT_WIDTH = 720
DEFAULT_HEIGHT = 1280
DEFAULT_IMAGE_TYPE = "jpg"
DEFAULT_LINE_CHAR_BUDGET = 1
DEFAULT_FONT_SIZE = 24.0
DEFAULT_LINE_HEIGHT = 1.5
DEFAULT_FONT_COLOR = "#000000"
DEFAULT_QR_WIDTH = 100
DEFAULT_QR_BACKGROUND = "#FFFFFF"
DEFAULT_QR_FOREGROUND = "#000000"
DEFAULT_WX_LINE_COLOR = "#000000"


def _coerce_image_bytes(v: Any) -> Any:
    """Accept raw bytes from Python callers and base64 (or data: URLs) from JSON."""
    if v is None:
        return b""
    if isinstance(v, (bytes, bytearray)):
        return bytes(v)
    if isinstance(v, str):
        s = v.strip()
        if s.startswith("data:") and "," in s:
            s = s.split(",", 1)[1]
        try:
            return base64.b64decode(s, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError("image must be base64 encoded") from e
    return v


class _Model(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class Background(_Model):
    """Poster background. At least one of image / image_url is required; bytes win."""
    image: bytes = b""
    image_url: str = ""
    image_type: str = ""  # jpg | png

    decode_image = field_validator("image", mode="before")(_coerce_image_bytes)


class SubObject(_Model):
    """Position and footprint shared by every placed element.
    QR and mini-program codes are square and only use width."""
    top: int = 0
    left: int = 0
    width: int = 0
    height: int = 0


class Text(SubObject):
    content: str = ""
    # width units per line: Han characters count 2, everything else 1
    line_char_budget: int = Field(0, alias="line_count")
    font_name: str = ""
    font_size: float = 0.0
    line_height: float = 0.0
    font_color: str = ""


class SubImage(SubObject):
    padding: int = 0
    angle: float = 0.0  # radians, clockwise
    color: str = ""  # corner fill when rotated
    image_type: str = ""
    image: bytes = b""
    image_url: str = ""

    decode_image = field_validator("image", mode="before")(_coerce_image_bytes)


class QrCode(SubObject):
    angle: float = 0.0
    background_color: str = ""
    foreground_color: str = ""
    content: str = ""


class WxQrCode(SubObject):
    angle: float = 0.0
    # Forwarded to the mini-program code service as-is
    access_token: str = ""
    scene: str = ""
    page: str = ""
    auto_color: bool = False
    line_color: str = ""
    is_hyaline: bool = False


class PosterParam(_Model):
    width: int = 0
    height: int = 0
    background: Optional[Background] = None
    texts: List[Text] = Field(default_factory=list)
    sub_images: List[SubImage] = Field(default_factory=list)
    sub_qr_codes: List[QrCode] = Field(default_factory=list, alias="sub_qr_code")
    sub_wx_qr_codes: List[WxQrCode] = Field(default_factory=list, alias="sub_wx_qr_code")

    @field_validator("texts", "sub_images", "sub_qr_codes", "sub_wx_qr_codes", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v


def normalize_poster_param(param: Optional[PosterParam]) -> PosterParam:
    """Fill defaults and reject invalid requests, in place.

    Runs in one ordered pass and raises ValidationError on the first problem,
    before any drawing happens. A rejected param may already be partially
    defaulted; callers must discard it.
    """
    if param is None:
        raise ValidationError("The parameter cannot be nil")

    # Canvas size
    if param.width == 0:
        param.width = DEFAULT_WIDTH
    if param.height == 0:
        param.height = DEFAULT_HEIGHT
    if param.width < 0 or param.height < 0:
        raise ValidationError(f"Invalid canvas size {param.width}x{param.height}")

    # Background
    bg = param.background
    if bg is None:
        raise ValidationError("The background cannot be nil")
    if not bg.image and not bg.image_url:
        raise ValidationError("The background image url address and background image base64 value cannot be empty")
    if not bg.image_type:
        bg.image_type = DEFAULT_IMAGE_TYPE
    if not is_supported_type(bg.image_type):
        raise ValidationError(
            f"Unsupported background image type {bg.image_type!r}, expected one of {', '.join(SUPPORTED_IMAGE_TYPES)}"
        )

    # Texts
    for txt in param.texts:
        if txt.content == "":
            raise ValidationError("An empty string exists for the text to be written")
        if txt.line_char_budget == 0:
            txt.line_char_budget = DEFAULT_LINE_CHAR_BUDGET
        if txt.font_color == "":
            txt.font_color = DEFAULT_FONT_COLOR
        if txt.font_size == 0:
            txt.font_size = DEFAULT_FONT_SIZE
        if txt.font_size < 0:
            raise ValidationError(f"Font size must be positive, got {txt.font_size}")
        if txt.line_height == 0:
            txt.line_height = DEFAULT_LINE_HEIGHT
        if txt.font_name == "":
            txt.font_name = DEFAULT_FONT_NAME

    # Sub images
    for sub_image in param.sub_images:
        if not sub_image.image and not sub_image.image_url:
            raise ValidationError("SubImage exists image url and image base64 are both empty")

    # QR codes
    for qr in param.sub_qr_codes:
        if qr.content == "":
            raise ValidationError("QRcode content cannot be empty")
        if qr.background_color == "":
            qr.background_color = DEFAULT_QR_BACKGROUND
        if qr.foreground_color == "":
            qr.foreground_color = DEFAULT_QR_FOREGROUND
        if qr.width == 0:
            qr.width = DEFAULT_QR_WIDTH
        if qr.width < 0:
            raise ValidationError(f"QRcode width must be positive, got {qr.width}")

    # Mini-program codes
    for wx in param.sub_wx_qr_codes:
        if wx.access_token == "":
            raise ValidationError("Mini-program code access_token cannot be empty")
        if wx.width == 0:
            wx.width = DEFAULT_QR_WIDTH
        if wx.width < 0:
            raise ValidationError(f"Mini-program code width must be positive, got {wx.width}")
        if wx.line_color == "":
            wx.line_color = DEFAULT_WX_LINE_COLOR

    return param
