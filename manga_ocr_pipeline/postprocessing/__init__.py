"""Result post-processing module."""

from .result_processor import ResultProcessor, clean_text_content

__all__ = ['ResultProcessor', 'clean_text_content']
