import io
from typing import Dict, Sequence, Tuple

from PIL import Image, UnidentifiedImageError

from .errors import DecodeError, UnsupportedImageType

# Type tag -> Pillow decoder
_FORMATS: Dict[str, str] = {
    "jpg": "JPEG",
    "jpeg": "JPEG",
    "png": "PNG",
}

SUPPORTED_IMAGE_TYPES: Tuple[str, ...] = tuple(_FORMATS)

HIGH_QUALITY = Image.Resampling.LANCZOS
LINEAR = Image.Resampling.BILINEAR


def is_supported_type(image_type: str) -> bool:
    return (image_type or "").strip().lower() in _FORMATS


def decode_image(data: bytes, image_type: str) -> Image.Image:
    """Decode bytes with the decoder named by the type tag (no sniffing)."""
    tag = (image_type or "").strip().lower()
    fmt = _FORMATS.get(tag)
    if fmt is None:
        raise UnsupportedImageType(image_type)
    return decode_any(data, (fmt,))


def decode_any(data: bytes, formats: Sequence[str] = ("JPEG", "PNG")) -> Image.Image:
    if not data:
        raise DecodeError("Empty image data")
    try:
        im = Image.open(io.BytesIO(data), formats=list(formats))
        im.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError) as e:
        raise DecodeError(f"Failed to decode image as {'/'.join(formats)}: {e}") from e
    return im


def encode_jpeg(image: Image.Image, quality: int = 75) -> bytes:
    if image.mode != "RGB":
        image = image.convert("RGB")
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()
