"""Image quality assessment module.

Measures sharpness (Laplacian variance), contrast (luminance standard
deviation) and brightness (mean luminance), then buckets the image into a
quality level used to pick OCR parameters.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Union

import cv2
import numpy as np

from ..utils import ensure_grayscale, load_image

# Empirical thresholds; existing parameter tuning depends on these exact values
SHARP_BLUR_SCORE = 300.0
MODERATE_BLUR_SCORE = 100.0
HIGH_CONTRAST = 50.0
MEDIUM_CONTRAST = 30.0
MEDIUM_RESOLUTION = 800


class QualityLevel(Enum):
    """Image quality bucket."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class QualityMetrics:
    """Container for image quality metrics."""
    blur_score: float
    contrast: float
    brightness: float
    width: int
    height: int
    quality_level: QualityLevel

    @property
    def max_dimension(self) -> int:
        return max(self.width, self.height)

    @property
    def total_pixels(self) -> int:
        return self.width * self.height

    @property
    def summary(self) -> str:
        return (
            f"Resolution: {self.width}x{self.height}, blur: {self.blur_score:.1f}, "
            f"contrast: {self.contrast:.1f}, quality: {self.quality_level.name}"
        )

    def to_dict(self) -> Dict:
        """Convert to dictionary for serialization."""
        return {
            'blur_score': self.blur_score,
            'contrast': self.contrast,
            'brightness': self.brightness,
            'width': self.width,
            'height': self.height,
            'max_dimension': self.max_dimension,
            'quality_level': self.quality_level.value,
        }


def determine_quality_level(blur_score: float, contrast: float, max_dimension: int) -> QualityLevel:
    """Bucket raw metrics into a quality level.

    Rules are checked in order and the first match wins.

    Args:
        blur_score: Laplacian variance
        contrast: Luminance standard deviation
        max_dimension: Longest image side in pixels

    Returns:
        QualityLevel
    """
    if blur_score >= SHARP_BLUR_SCORE and contrast >= HIGH_CONTRAST:
        return QualityLevel.HIGH

    if (blur_score >= MODERATE_BLUR_SCORE
            and contrast >= MEDIUM_CONTRAST
            and max_dimension >= MEDIUM_RESOLUTION):
        return QualityLevel.MEDIUM

    return QualityLevel.LOW


class ImageQualityAnalyzer:
    """Computes quality metrics from raw pixels."""

    def analyze(self, image_path: Union[str, Path]) -> QualityMetrics:
        """Load an image from disk and assess it.

        Args:
            image_path: Path to the image

        Returns:
            QualityMetrics for the image

        Raises:
            ImageNotFoundError: If the file doesn't exist
            UnsupportedFormatError: If the file isn't a supported image
            DecodeFailureError: If the pixels cannot be loaded
        """
        return self.assess(load_image(image_path))

    def assess(self, image: np.ndarray) -> QualityMetrics:
        """Assess quality of a decoded image.

        Args:
            image: Input image as numpy array (BGR or grayscale)

        Returns:
            QualityMetrics object
        """
        gray = ensure_grayscale(image)
        height, width = gray.shape[:2]

        blur_score = self.calculate_blur_score(gray)
        contrast = self.calculate_contrast(gray)
        brightness = self.calculate_brightness(gray)

        return QualityMetrics(
            blur_score=blur_score,
            contrast=contrast,
            brightness=brightness,
            width=int(width),
            height=int(height),
            quality_level=determine_quality_level(blur_score, contrast, max(width, height)),
        )

    def calculate_blur_score(self, image: np.ndarray) -> float:
        """Calculate blur score using Laplacian variance.

        Higher values indicate sharper images.

        Args:
            image: Input image

        Returns:
            Blur score (Laplacian variance)
        """
        laplacian = cv2.Laplacian(ensure_grayscale(image), cv2.CV_64F)
        return float(laplacian.var())

    def calculate_contrast(self, image: np.ndarray) -> float:
        """Standard deviation of luminance."""
        return float(np.std(ensure_grayscale(image)))

    def calculate_brightness(self, image: np.ndarray) -> float:
        """Mean luminance in [0, 255]."""
        return float(np.mean(ensure_grayscale(image)))
