import math
from typing import Optional, Tuple

from PIL import Image

from .codec import HIGH_QUALITY, LINEAR

Size = Tuple[int, int]
Color = Tuple[int, int, int, int]

TRANSPARENT: Color = (0, 0, 0, 0)


def _half(n: int) -> int:
    # truncates toward zero
    return int(n / 2)


def to_drawable(image: Image.Image) -> Image.Image:
    """Convert palette/greyscale images so Lanczos and bilinear resampling apply."""
    if image.mode in ("RGB", "RGBA"):
        return image
    if "A" in image.getbands() or "transparency" in image.info:
        return image.convert("RGBA")
    return image.convert("RGB")


def anchor_from_corner(top: int, left: int, width: int, height: int) -> Tuple[int, int]:
    """Canvas position of an element's top-left pixel.

    Elements are declared with top/left but drawn with their top-left pixel
    at (left + width/2, top + height/2). Existing layouts depend on this offset.
    """
    return left + _half(width), top + _half(height)


def rotate_into_frame(image: Image.Image, angle: float, size: Size, fill: Optional[Color] = None) -> Image.Image:
    """Rotate image clockwise by angle (radians) about its center and lay it
    centered into a new frame of the given size. Uncovered corners keep the
    fill color (transparent when unset); overhanging content is cropped.
    """
    frame = Image.new("RGBA", size, fill or TRANSPARENT)
    src = image if image.mode == "RGBA" else image.convert("RGBA")
    # Pillow rotates counter-clockwise in degrees
    rotated = src.rotate(-math.degrees(angle), resample=Image.Resampling.BICUBIC, expand=True)
    x = (size[0] - rotated.width) // 2
    y = (size[1] - rotated.height) // 2
    frame.paste(rotated, (x, y), rotated)
    return frame


def transform_element(
    image: Image.Image,
    width: int,
    height: int,
    *,
    padding: int = 0,
    angle: float = 0.0,
    fill: Optional[Color] = None,
) -> Image.Image:
    """Scale, optionally rotate, and rescale a bitmap to exactly width x height.

    1. Lanczos resize to (width - padding) x (height - padding); aspect ratio is not kept.
    2. When angle != 0, rotate into a width x height frame filled with fill.
    3. Bilinear resize to width x height (a no-op copy when sizes already match).
    """
    scaled = to_drawable(image).resize((width - padding, height - padding), HIGH_QUALITY)
    if angle != 0:
        scaled = rotate_into_frame(scaled, angle, (width, height), fill)
    return scaled.resize((width, height), LINEAR)


def paste_element(canvas: Image.Image, element: Image.Image, origin: Tuple[int, int]) -> None:
    """Copy element onto canvas at origin, replacing the covered pixels.
    Anything outside the canvas is clipped."""
    canvas.paste(element, origin)
