from typing import Tuple

import qrcode
from qrcode.image.pil import PilImage
from PIL import Image

Color = Tuple[int, int, int, int]


def generate_qr(content: str, size: int, foreground: Color, background: Color) -> Image.Image:
    """Generate a high error-correction QR symbol of exactly size x size pixels.

    The symbol (including its 4-module quiet zone) is built at one pixel per
    module and scaled with nearest-neighbour so module edges stay sharp.
    """
    qr = qrcode.QRCode(
        version=None,  # let the library pick
        error_correction=qrcode.constants.ERROR_CORRECT_H,
        box_size=1,
        border=4,
        image_factory=PilImage,
    )
    qr.add_data(content)
    qr.make(fit=True)
    symbol = qr.make_image(fill_color=foreground[:3], back_color=background[:3]).convert("RGB")
    return symbol.resize((size, size), Image.Resampling.NEAREST)
