"""Exception types raised by the manga OCR pipeline."""

from typing import Optional


class OcrError(Exception):
    """Base class for all pipeline errors."""


class ImageNotFoundError(OcrError, FileNotFoundError):
    """Input image path does not exist."""


class UnsupportedFormatError(OcrError):
    """File extension or content is not a decodable image format."""


class DecodeFailureError(OcrError):
    """File exists and looks like an image, but pixel decoding failed."""


class EngineFailureError(OcrError):
    """Preprocessing or the underlying OCR engine failed on a decoded image."""


class InvalidArgumentError(OcrError, ValueError):
    """Empty path, empty batch, or use of a closed service."""


class BatchCancelledError(OcrError):
    """A batch operation was cancelled before it returned.

    Attributes:
        completed: Number of items that finished before cancellation
        total: Number of items in the batch
    """

    def __init__(self, completed: int, total: int, message: Optional[str] = None):
        self.completed = completed
        self.total = total
        super().__init__(message or f"Batch cancelled after {completed}/{total} images")
