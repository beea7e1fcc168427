import logging
from dataclasses import dataclass
from enum import Enum
from time import perf_counter
from typing import Callable, Iterable, List, Optional, Tuple

from PIL import Image, ImageDraw, ImageFont
from qrcode.exceptions import DataOverflowError

from .codec import HIGH_QUALITY, decode_image, encode_jpeg
from .colors import parse_hex_color
from .errors import DecodeError, PosterError, UnsupportedImageType, ValidationError
from .fonts import FontCache
from .models import PosterParam, Text, normalize_poster_param
from .qr import generate_qr
from .remote import WxaCodeClient, load_source
from .text_layout import wrap
from .transform import (
    anchor_from_corner,
    paste_element,
    rotate_into_frame,
    to_drawable,
    transform_element,
)

logger = logging.getLogger(__name__)


class RenderState(str, Enum):
    EMPTY = "empty"
    BACKGROUND_DRAWN = "background_drawn"
    IMAGES_DRAWN = "images_drawn"
    QR_DRAWN = "qr_drawn"
    WX_QR_DRAWN = "wx_qr_drawn"
    TEXT_DRAWN = "text_drawn"
    ENCODED = "encoded"


DrawFn = Callable[[Image.Image, PosterParam], Image.Image]


@dataclass(frozen=True)
class Stage:
    """One layer of the poster. `reaches` is the state once draw has completed."""
    reaches: RenderState
    draw: DrawFn


def _center_crop_offset(resized: int, canvas: int) -> int:
    return int((resized - canvas) / 2)


class CompositionEngine:
    """Builds a poster by running the layer stages strictly in order:
    background, sub-images, QR codes, mini-program codes, text.

    The engine itself holds no per-request state; every render owns its canvas.
    The font cache is shared and may be passed in by the host process.
    """

    def __init__(
        self,
        font_cache: FontCache,
        wx_client: Optional[WxaCodeClient] = None,
        *,
        fetch_timeout: Optional[float] = None,
        jpeg_quality: int = 75,
    ):
        self.font_cache = font_cache
        self.wx_client = wx_client
        self.fetch_timeout = fetch_timeout
        self.jpeg_quality = jpeg_quality
        self.stages: List[Stage] = [
            Stage(RenderState.BACKGROUND_DRAWN, self.draw_background),
            Stage(RenderState.IMAGES_DRAWN, self.draw_sub_images),
            Stage(RenderState.QR_DRAWN, self.draw_qr_codes),
            Stage(RenderState.WX_QR_DRAWN, self.draw_wx_qr_codes),
            Stage(RenderState.TEXT_DRAWN, self.draw_texts),
        ]

    def render(self, param: Optional[PosterParam]) -> bytes:
        """Validate param, compose every layer and return the poster as JPEG bytes."""
        t0 = perf_counter()
        canvas = self.compose(param)
        data = encode_jpeg(canvas, quality=self.jpeg_quality)
        logger.debug(f"state -> {RenderState.ENCODED.value}")
        logger.info(f"Poster rendered in {int((perf_counter() - t0) * 1000)}ms ({canvas.width}x{canvas.height}, {len(data)} bytes)")
        return data

    def compose(self, param: Optional[PosterParam]) -> Image.Image:
        """Validate param and run all draw stages, returning the finished canvas."""
        param = normalize_poster_param(param)
        canvas = Image.new("RGB", (param.width, param.height), (0, 0, 0))
        state = RenderState.EMPTY
        for stage in self.stages:
            try:
                canvas = stage.draw(canvas, param)
            except PosterError as e:
                logger.error(f"Render aborted after {state.value}: {e}")
                raise
            state = stage.reaches
            logger.debug(f"state -> {state.value}")
        return canvas

    # Stages

    def draw_background(self, canvas: Image.Image, param: PosterParam) -> Image.Image:
        bg = param.background
        data = load_source(bg.image, bg.image_url, timeout=self.fetch_timeout)
        image = decode_image(data, bg.image_type).convert("RGB")
        # Stretch to the canvas, then copy from the centered offset
        resized = image.resize((param.width, param.height), HIGH_QUALITY)
        ox = _center_crop_offset(resized.width, param.width)
        oy = _center_crop_offset(resized.height, param.height)
        canvas.paste(resized.crop((ox, oy, ox + param.width, oy + param.height)), (0, 0))
        return canvas

    def draw_sub_images(self, canvas: Image.Image, param: PosterParam) -> Image.Image:
        # Sub-images are decorative: an unusable one is skipped, the poster still renders.
        # Fetch failures and bad fill colors remain fatal.
        for idx, sub in enumerate(param.sub_images):
            data = load_source(sub.image, sub.image_url, timeout=self.fetch_timeout)
            try:
                image = decode_image(data, sub.image_type)
            except UnsupportedImageType:
                logger.warning(f"Skipping sub image {idx}: unsupported image type {sub.image_type!r}, expected png or jpg")
                continue
            except DecodeError as e:
                logger.warning(f"Skipping sub image {idx}: {e}")
                continue
            if sub.width - sub.padding <= 0 or sub.height - sub.padding <= 0:
                logger.warning(f"Skipping sub image {idx}: empty footprint {sub.width}x{sub.height} padding={sub.padding}")
                continue

            fill = None
            if sub.angle != 0 and sub.color:
                fill = parse_hex_color(sub.color)
            element = transform_element(
                image,
                sub.width,
                sub.height,
                padding=sub.padding,
                angle=sub.angle,
                fill=fill,
            )
            paste_element(canvas, element, anchor_from_corner(sub.top, sub.left, sub.width, sub.height))
        return canvas

    def draw_qr_codes(self, canvas: Image.Image, param: PosterParam) -> Image.Image:
        for idx, qr in enumerate(param.sub_qr_codes):
            background = parse_hex_color(qr.background_color)
            foreground = parse_hex_color(qr.foreground_color)
            try:
                image = generate_qr(qr.content, qr.width, foreground, background)
            except (DataOverflowError, ValueError) as e:
                # qrcode 8 reports an oversized payload as an invalid version
                raise ValidationError(f"QRcode {idx} content is too long: {e}") from e
            # Generated at the exact size, so only rotation applies
            if qr.angle != 0:
                image = rotate_into_frame(image, qr.angle, (qr.width, qr.width))
            paste_element(canvas, image, anchor_from_corner(qr.top, qr.left, qr.width, qr.width))
        return canvas

    def draw_wx_qr_codes(self, canvas: Image.Image, param: PosterParam) -> Image.Image:
        if param.sub_wx_qr_codes and self.wx_client is None:
            raise PosterError("Mini-program codes requested but no mini-program code client is configured")
        for idx, wx in enumerate(param.sub_wx_qr_codes):
            image = self.wx_client.generate(
                wx.access_token,
                scene=wx.scene,
                page=wx.page,
                width=wx.width,
                auto_color=wx.auto_color,
                line_color=wx.line_color,
                is_hyaline=wx.is_hyaline,
            )
            logger.debug(f"Mini-program code {idx} returned {image.width}x{image.height}")
            image = to_drawable(image).resize((wx.width, wx.width), HIGH_QUALITY)
            if wx.angle != 0:
                image = rotate_into_frame(image, wx.angle, (wx.width, wx.width))
            # Anchored on the bitmap actually produced, not the requested width
            paste_element(canvas, image, anchor_from_corner(wx.top, wx.left, image.width, image.height))
        return canvas

    def draw_texts(self, canvas: Image.Image, param: PosterParam) -> Image.Image:
        for txt in param.texts:
            lines = wrap(txt.content, txt.line_char_budget)
            font = self.font_cache.get(txt.font_name).at_size(txt.font_size)
            color = parse_hex_color(txt.font_color)
            self._draw_text_block(canvas, txt, lines, font, color)
        return canvas

    def _draw_text_block(
        self,
        canvas: Image.Image,
        txt: Text,
        lines: Iterable[str],
        font: ImageFont.FreeTypeFont,
        color: Tuple[int, int, int, int],
    ) -> None:
        # Everything outside [left, top, left+width, top+height] is clipped,
        # and only the part of that box on the canvas needs a mask
        x0 = max(txt.left, 0)
        y0 = max(txt.top, 0)
        x1 = min(txt.left + txt.width, canvas.width)
        y1 = min(txt.top + txt.height, canvas.height)
        if x1 <= x0 or y1 <= y0:
            logger.debug(f"Text {txt.content[:16]!r} has an empty clip area, nothing drawn")
            return
        mask = Image.new("L", (x1 - x0, y1 - y0), 0)
        draw = ImageDraw.Draw(mask)
        # mask coordinates are shifted by the clamped corner
        dx = txt.left - x0
        baseline = float(int(txt.font_size)) + txt.top - y0
        step = txt.font_size * txt.line_height
        for line in lines:
            # lines starting below the mask cannot reach it
            if baseline - 2 * txt.font_size > mask.height:
                break
            draw.text((dx, baseline), line, font=font, fill=255, anchor="ls")
            baseline += step
        canvas.paste(color[:3], (x0, y0, x1, y1), mask)
