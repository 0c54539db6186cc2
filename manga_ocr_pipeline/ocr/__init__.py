"""OCR module."""

from .models import BoundingBox, OcrResult, OrderedRegion, PageLayoutInfo, Point, TextRegion
from .engine import OcrEngine, PaddleOcrEngine, ThreadSafeEngine, create_paddle_engine

__all__ = [
    'BoundingBox', 'OcrResult', 'OrderedRegion', 'PageLayoutInfo', 'Point', 'TextRegion',
    'OcrEngine', 'PaddleOcrEngine', 'ThreadSafeEngine', 'create_paddle_engine',
]
