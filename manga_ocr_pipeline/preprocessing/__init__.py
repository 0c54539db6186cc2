"""Preprocessing module."""

from .image_processor import ImageProcessor

__all__ = ['ImageProcessor']
