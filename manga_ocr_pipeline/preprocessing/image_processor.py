"""Image preprocessing for low-quality manga scans.

Denoising, CLAHE contrast enhancement, unsharp masking and adaptive
binarization, chained for OCR input.
"""

from typing import Dict, Optional

import cv2
import numpy as np

from ..utils import ensure_grayscale


class ImageProcessor:
    """Applies preprocessing filters to decoded images."""

    def __init__(self, config: Optional[Dict] = None):
        """Initialize processor with configuration.

        Args:
            config: Preprocessing configuration dictionary
        """
        config = config or {}
        self.config = config

        # Bilateral filter keeps stroke edges while smoothing screentone noise
        self.bilateral_d = config.get('bilateral_d', 5)
        self.bilateral_sigma_color = config.get('bilateral_sigma_color', 75)
        self.bilateral_sigma_space = config.get('bilateral_sigma_space', 75)

        # CLAHE parameters
        self.clahe_clip_limit = config.get('clahe_clip_limit', 2.0)
        self.clahe_tile_grid_size = tuple(config.get('clahe_tile_grid_size', [8, 8]))

        # Unsharp mask: original * amount + blurred * (1 - amount)
        self.sharpen_sigma = config.get('sharpen_sigma', 3.0)
        self.sharpen_amount = config.get('sharpen_amount', 1.5)

        # Adaptive threshold; block size must be odd
        self.threshold_block_size = config.get('threshold_block_size', 15)
        self.threshold_c = config.get('threshold_c', 10)

    def preprocess_for_ocr(self, image: np.ndarray) -> np.ndarray:
        """Run the full preprocessing chain.

        Args:
            image: Input image (BGR or grayscale)

        Returns:
            Binarized single-channel image
        """
        if image is None or image.size == 0:
            raise ValueError("Input image must not be empty")

        processed = ensure_grayscale(image)
        processed = self.denoise(processed)
        processed = self.enhance_contrast(processed)
        processed = self.sharpen(processed)
        return self.binarize(processed)

    def denoise(self, image: np.ndarray) -> np.ndarray:
        """Edge-preserving bilateral smoothing."""
        return cv2.bilateralFilter(
            image,
            self.bilateral_d,
            self.bilateral_sigma_color,
            self.bilateral_sigma_space
        )

    def enhance_contrast(self, image: np.ndarray) -> np.ndarray:
        """Contrast-limited adaptive histogram equalization on luminance."""
        clahe = cv2.createCLAHE(
            clipLimit=self.clahe_clip_limit,
            tileGridSize=self.clahe_tile_grid_size
        )
        return clahe.apply(ensure_grayscale(image))

    def sharpen(self, image: np.ndarray) -> np.ndarray:
        """Unsharp masking to strengthen glyph edges."""
        blurred = cv2.GaussianBlur(image, (0, 0), self.sharpen_sigma)
        return cv2.addWeighted(image, self.sharpen_amount, blurred, 1.0 - self.sharpen_amount, 0)

    def binarize(self, image: np.ndarray) -> np.ndarray:
        """Gaussian adaptive threshold, robust to uneven page lighting."""
        return cv2.adaptiveThreshold(
            ensure_grayscale(image),
            255,
            cv2.ADAPTIVE_THRESH_GAUSSIAN_C,
            cv2.THRESH_BINARY,
            self.threshold_block_size,
            self.threshold_c
        )
