"""Exception taxonomy for a mosaic run."""

from __future__ import annotations


class MosaicError(Exception):
    """Base class for every error raised by the engine."""


class ValidationError(MosaicError, ValueError):
    """Bad configuration or input; raised before any work begins."""


class ImageLoadError(MosaicError):
    """A single image could not be decoded.

    Gallery loaders recover from this by skipping the file.
    """

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Cannot load image '{path}': {reason}")
        self.path = path
        self.reason = reason


class EmptyGallery(MosaicError):
    """No usable gallery image survived indexing."""


class NoMatchFound(MosaicError):
    """A tile could not be resolved against the gallery index."""


class Cancelled(MosaicError):
    """The run was cancelled or ran past its deadline."""


class OutputWriteError(MosaicError, OSError):
    """The finished canvas could not be handed to its sink."""
