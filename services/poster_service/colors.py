import string
from typing import Dict, Tuple

from .errors import InvalidColor

RGBA = Tuple[int, int, int, int]


def parse_hex_color(value: str) -> RGBA:
    """Convert '#rrggbb' (leading '#' optional) into an opaque RGBA tuple.
    Raises InvalidColor unless exactly 6 hex digits remain after stripping '#'.
    """
    s = value if isinstance(value, str) else ""
    if s.startswith("#"):
        s = s[1:]
    if len(s) != 6 or any(ch not in string.hexdigits for ch in s):
        raise InvalidColor(f"Illegal hexadecimal color: {value!r}")
    r = int(s[0:2], 16)
    g = int(s[2:4], 16)
    b = int(s[4:6], 16)
    return (r, g, b, 255)


def color_to_rgb_dict(value: str) -> Dict[str, int]:
    r, g, b, _ = parse_hex_color(value)
    return {"r": r, "g": g, "b": b}
