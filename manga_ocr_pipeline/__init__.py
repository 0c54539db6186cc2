"""Manga OCR Pipeline - text recognition and reading order for manga pages."""

__version__ = "1.0.0"

from .core import BatchOptions, LogEvent, LogLevel, MangaOcrService, PageReading, ProgressEvent
from .exceptions import (
    BatchCancelledError,
    DecodeFailureError,
    EngineFailureError,
    ImageNotFoundError,
    InvalidArgumentError,
    OcrError,
    UnsupportedFormatError,
)
from .layout import ReadingDirection, TextOrderAnalyzer
from .ocr import BoundingBox, OcrResult, OrderedRegion, TextRegion
from .settings import OcrMode, OcrProvider, RecognitionSettings
from .utils import load_config, setup_logging

__all__ = [
    "MangaOcrService", "PageReading", "BatchOptions", "LogEvent", "LogLevel", "ProgressEvent",
    "OcrError", "ImageNotFoundError", "UnsupportedFormatError", "DecodeFailureError",
    "EngineFailureError", "InvalidArgumentError", "BatchCancelledError",
    "ReadingDirection", "TextOrderAnalyzer",
    "BoundingBox", "OcrResult", "OrderedRegion", "TextRegion",
    "OcrMode", "OcrProvider", "RecognitionSettings",
    "load_config", "setup_logging",
]
