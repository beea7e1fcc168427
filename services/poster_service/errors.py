"""Error taxonomy for poster rendering.

Every failure raised by the engine derives from PosterError so the transport
layer can turn it into a client-visible message with a single handler.
"""


class PosterError(Exception):
    """Base class for all poster rendering failures."""


class ValidationError(PosterError):
    """Missing/empty required field or a structurally invalid request."""


class UnsupportedImageType(PosterError):
    """Image type tag other than jpg/jpeg/png."""

    def __init__(self, image_type: str):
        super().__init__(f"Unsupported image types -- {image_type}")
        self.image_type = image_type


class DecodeError(PosterError):
    """Image bytes could not be decoded for the declared type."""


class FetchError(PosterError):
    """A remote source (image URL or mini-program code service) failed."""

    def __init__(self, message: str, body: str = ""):
        super().__init__(message)
        self.body = body


class FontError(PosterError):
    pass


class FontNotFound(FontError):
    pass


class FontParseError(FontError):
    pass


class InvalidColor(PosterError, ValueError):
    """Hex color string that is not exactly 6 hexadecimal digits."""


ColorParseError = InvalidColor
