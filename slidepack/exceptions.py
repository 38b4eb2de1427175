"""
Error taxonomy for slidepack

All errors are raised synchronously to the caller of the write operation
and are never retried.
"""


class SlidepackError(Exception):
    """Base class for every error raised by slidepack"""


class InvalidDimension(SlidepackError, ValueError):
    """A size or offset is negative or not a number"""


class AssetNotFound(SlidepackError, FileNotFoundError):
    """An image source does not exist or cannot be read"""

    def __init__(self, source: str, reason: str = ""):
        self.source = source
        message = f"Image source not readable: {source}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class DanglingHyperlink(SlidepackError):
    """A hyperlink points to a slide that was never pushed into the presentation"""


class TemplateCorrupt(SlidepackError):
    """The template archive is unreadable or misses a part that must be patched"""


class DestinationExists(SlidepackError, FileExistsError):
    """The destination exists and overwriting was not requested"""


class WriteDenied(SlidepackError, PermissionError):
    """The destination could not be written (permissions, disk space)"""
