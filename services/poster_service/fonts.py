import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Optional, Union

from PIL import ImageFont

from .errors import FontError, FontNotFound, FontParseError

logger = logging.getLogger(__name__)

# Size used only to validate the font data when it is first parsed
_PROBE_SIZE = 12

# Sized faces kept per font; sizes past this are built per call
_MAX_SIZED_FACES = 32


@dataclass(frozen=True)
class Font:
    """A parsed font. Immutable once created, so it can be shared across requests.
    Sized faces are parsed once per point size and reused."""
    name: str
    data: bytes
    _sized: Dict[float, ImageFont.FreeTypeFont] = field(default_factory=dict, init=False, repr=False, compare=False)

    def at_size(self, size: float) -> ImageFont.FreeTypeFont:
        face = self._sized.get(size)
        if face is not None:
            return face
        try:
            face = ImageFont.truetype(io.BytesIO(self.data), size=size)
        except (OSError, ValueError) as e:
            raise FontError(f"Font {self.name!r} cannot be used at size {size}: {e}") from e
        if len(self._sized) >= _MAX_SIZED_FACES:
            return face
        return self._sized.setdefault(size, face)


FontLoader = Callable[[str], bytes]


class FontCache:
    """Process-wide font cache, lazily populated and never evicted.

    Concurrent misses for the same name may both load and parse the file;
    dict.setdefault keeps the first result and later callers get that one.
    """

    def __init__(self, font_dir: Union[str, Path], loader: Optional[FontLoader] = None):
        self.font_dir = Path(font_dir).resolve()
        self._loader = loader or self._read_font_file
        self._fonts: Dict[str, Font] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._fonts

    def __len__(self) -> int:
        return len(self._fonts)

    def get(self, name: str) -> Font:
        font = self._fonts.get(name)
        if font is not None:
            return font
        data = self._loader(name)
        try:
            ImageFont.truetype(io.BytesIO(data), size=_PROBE_SIZE)
        except (OSError, ValueError) as e:
            raise FontParseError(f"Failed to parse font {name!r}: {e}") from e
        logger.info(f"Loaded font {name} ({len(data)} bytes)")
        return self._fonts.setdefault(name, Font(name=name, data=data))

    def _read_font_file(self, name: str) -> bytes:
        path = (self.font_dir / name).resolve()
        # Names must stay inside the font directory
        if self.font_dir not in path.parents:
            raise FontNotFound(f"Font not found: {name}")
        try:
            return path.read_bytes()
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as e:
            raise FontNotFound(f"Font not found: {name}") from e
        except OSError as e:
            raise FontError(f"Failed to read font {name!r}: {e}") from e
