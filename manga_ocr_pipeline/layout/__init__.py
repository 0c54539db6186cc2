"""Page layout and reading order module."""

from .reading_order import ReadingDirection, TextOrderAnalyzer, detect_pages

__all__ = ['ReadingDirection', 'TextOrderAnalyzer', 'detect_pages']
