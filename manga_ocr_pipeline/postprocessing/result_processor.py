"""Post-processing of raw OCR results.

Every stage takes an OcrResult and returns a new one, so intermediate
results stay inspectable. Failed results pass through unchanged.
"""

import logging
import math
import re

from ..ocr.models import OcrResult, TextRegion

logger = logging.getLogger(__name__)

DEFAULT_MIN_CONFIDENCE = 0.5
DEFAULT_OVERLAP_THRESHOLD = 0.95

# C0 controls and DEL, keeping tab, newline and carriage return
_CONTROL_CHARS = re.compile(r'[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]')
_WHITESPACE = re.compile(r'\s+')


def clean_text_content(text: str) -> str:
    """Strip control characters and normalize whitespace.

    CJK characters and kana are left untouched.

    Args:
        text: Raw recognized text

    Returns:
        Cleaned text
    """
    text = _CONTROL_CHARS.sub('', text)
    text = _WHITESPACE.sub(' ', text)
    return text.strip()


def _confidence_rank(region: TextRegion) -> float:
    # Highest confidence first, unscored regions last
    return math.inf if math.isnan(region.confidence) else -region.confidence


class ResultProcessor:
    """Filters, deduplicates and cleans OCR results."""

    def __init__(self, overlap_threshold: float = DEFAULT_OVERLAP_THRESHOLD):
        self.overlap_threshold = overlap_threshold

    def process(self, result: OcrResult, min_confidence: float = DEFAULT_MIN_CONFIDENCE) -> OcrResult:
        """Apply all post-processing stages in order.

        Args:
            result: Raw OCR result
            min_confidence: Minimum confidence to keep a region

        Returns:
            Processed OCR result
        """
        if not result.success:
            return result

        processed = self.remove_empty_regions(result)
        processed = self.filter_by_confidence(processed, min_confidence)
        processed = self.remove_duplicates(processed, self.overlap_threshold)
        processed = self.clean_text(processed)

        logger.debug(
            f"Post-processing kept {len(processed.text_regions)}/{len(result.text_regions)} regions"
        )
        return processed

    def remove_empty_regions(self, result: OcrResult) -> OcrResult:
        """Drop regions whose text is empty or whitespace only."""
        if not result.success:
            return result
        return result.replace_regions(r for r in result.text_regions if r.text.strip())

    def filter_by_confidence(self, result: OcrResult, min_confidence: float) -> OcrResult:
        """Drop unscored regions and regions below the confidence threshold.

        Args:
            result: OCR result
            min_confidence: Minimum confidence threshold

        Returns:
            Filtered result, original region order preserved
        """
        if not result.success:
            return result
        return result.replace_regions(result.get_regions_by_confidence(min_confidence))

    def remove_duplicates(self, result: OcrResult,
                          overlap_threshold: float = DEFAULT_OVERLAP_THRESHOLD) -> OcrResult:
        """Suppress regions that largely overlap a more confident region.

        Overlap is the intersection area over the smaller box's area. Kept
        regions are returned sorted top-to-bottom, then left-to-right.

        Args:
            result: OCR result
            overlap_threshold: Overlap ratio at which a region counts as duplicate

        Returns:
            Deduplicated result
        """
        if not result.success or not result.text_regions:
            return result

        regions = result.text_regions
        by_confidence = sorted(range(len(regions)), key=lambda i: _confidence_rank(regions[i]))

        kept = []
        processed = set()
        for index in by_confidence:
            if index in processed:
                continue

            current = regions[index]
            kept.append(current)
            processed.add(index)

            for other_index, other in enumerate(regions):
                if other_index in processed:
                    continue
                if current.bounding_box.overlap_ratio(other.bounding_box) >= overlap_threshold:
                    processed.add(other_index)

        kept.sort(key=lambda r: (r.bounding_box.y, r.bounding_box.x))
        return result.replace_regions(kept)

    def clean_text(self, result: OcrResult) -> OcrResult:
        """Clean the text of every region."""
        if not result.success:
            return result
        return result.replace_regions(
            TextRegion(
                text=clean_text_content(r.text),
                confidence=r.confidence,
                bounding_box=r.bounding_box,
            )
            for r in result.text_regions
        )
