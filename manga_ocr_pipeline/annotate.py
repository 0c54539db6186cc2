"""Draw OCR results onto page images for visual inspection."""

import logging
import math
from pathlib import Path
from typing import Sequence, Tuple, Union

import cv2
import numpy as np

from .ocr.models import OrderedRegion, TextRegion
from .utils import load_image, save_image

logger = logging.getLogger(__name__)

# BGR colors
GREEN = (0, 255, 0)
YELLOW = (0, 255, 255)
RED = (0, 0, 255)
BLUE = (255, 0, 0)
GRAY = (128, 128, 128)
WHITE = (255, 255, 255)
BLACK = (0, 0, 0)

FONT = cv2.FONT_HERSHEY_SIMPLEX

HIGH_CONFIDENCE = 0.7
MEDIUM_CONFIDENCE = 0.5


def confidence_color(region: TextRegion) -> Tuple[int, int, int]:
    """Box color for a region's confidence band; gray for unscored or empty regions."""
    if math.isnan(region.confidence) or not region.text.strip():
        return GRAY
    if region.confidence >= HIGH_CONFIDENCE:
        return GREEN
    if region.confidence >= MEDIUM_CONFIDENCE:
        return YELLOW
    return RED


class ImageAnnotator:
    """Annotates images with reading order or confidence bands."""

    def __init__(self, title: str = "Reading Order (Right to Left, Top to Bottom)"):
        self.title = title

    def annotate_reading_order(self,
                               image_path: Union[str, Path],
                               ordered_regions: Sequence[OrderedRegion],
                               output_path: Union[str, Path]) -> np.ndarray:
        """Draw region boxes with their reading order numbers.

        Args:
            image_path: Source image
            ordered_regions: Regions with reading order
            output_path: Where to write the annotated image

        Returns:
            Annotated image
        """
        image = load_image(image_path)

        for region, order in ordered_regions:
            box = region.bounding_box
            cv2.rectangle(image, (box.x, box.y), (box.x + box.width, box.y + box.height), GREEN, 2)

            # Number above the box, or inside it near the top edge
            text_x = box.x
            text_y = box.y - 5
            if text_y < 20:
                text_y = box.y + 20

            label = str(order)
            (label_w, label_h), baseline = cv2.getTextSize(label, FONT, 0.8, 2)
            cv2.rectangle(
                image,
                (text_x - 2, text_y - label_h - 2),
                (text_x + label_w + 2, text_y + baseline + 2),
                WHITE,
                -1,
            )
            cv2.putText(image, label, (text_x, text_y), FONT, 0.8, RED, 2)

            cv2.circle(image, box.center, 3, BLUE, -1)

        cv2.putText(image, self.title, (10, 30), FONT, 0.7, BLACK, 2)

        save_image(image, output_path)
        logger.info(f"Reading order annotation saved to {output_path}")
        return image

    def annotate_confidence(self,
                            image_path: Union[str, Path],
                            regions: Sequence[TextRegion],
                            output_path: Union[str, Path]) -> np.ndarray:
        """Draw region boxes colored by confidence, with a legend.

        Args:
            image_path: Source image
            regions: Text regions
            output_path: Where to write the annotated image

        Returns:
            Annotated image
        """
        image = load_image(image_path)

        for region in regions:
            box = region.bounding_box
            cv2.rectangle(image, (box.x, box.y), (box.x + box.width, box.y + box.height),
                          confidence_color(region), 2)

        legend_y = 60
        for offset, (label, color) in enumerate([
            ("High (>=70%)", GREEN),
            ("Medium (50-70%)", YELLOW),
            ("Low (<50%)", RED),
            ("Failed", GRAY),
        ]):
            self._draw_legend(image, 10, legend_y + offset * 30, label, color)

        save_image(image, output_path)
        logger.info(f"Confidence annotation saved to {output_path}")
        return image

    @staticmethod
    def _draw_legend(image: np.ndarray, x: int, y: int, text: str, color: Tuple[int, int, int]) -> None:
        cv2.rectangle(image, (x, y), (x + 20, y + 20), color, -1)
        cv2.rectangle(image, (x, y), (x + 20, y + 20), BLACK, 1)
        cv2.putText(image, text, (x + 25, y + 15), FONT, 0.5, BLACK, 1)
