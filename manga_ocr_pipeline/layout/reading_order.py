"""Reading order inference for manga pages.

Orders text regions the way a reader scans the page. Right-to-left ordering
first checks whether the image is a two-page spread and, if so, reads the
physical right page before the left one.
"""

import logging
from enum import Enum
from typing import List, Sequence

from ..ocr.models import OrderedRegion, PageLayoutInfo, TextRegion

logger = logging.getLogger(__name__)

BAND_SIZE = 50  # px; rows/columns closer than this are read as one line

MIN_REGIONS_FOR_SPREAD = 4
MIN_REGIONS_PER_PAGE = 3
PAGE_BALANCE_RATIO = 0.4
GAP_BALANCE_RATIO = 0.3
GAP_WINDOW = (0.3, 0.7)
MIN_GAP_WIDTH_RATIO = 0.05

HORIZONTAL_ASPECT_RATIO = 2.0
DIRECTION_SAMPLE_SIZE = 10
MIN_HORIZONTAL_STEP = 20


class ReadingDirection(Enum):
    """Reading direction policy."""
    LEFT_TO_RIGHT_TOP_TO_BOTTOM = "ltr-ttb"  # English, simplified Chinese
    RIGHT_TO_LEFT_TOP_TO_BOTTOM = "rtl-ttb"  # Japanese manga
    TOP_TO_BOTTOM_RIGHT_TO_LEFT = "ttb-rtl"  # vertical text columns
    AUTO = "auto"


def _balance(left: int, right: int) -> float:
    larger = max(left, right)
    return min(left, right) / larger if larger else 0.0


def _count_sides(regions: Sequence[TextRegion], split_x: int):
    left = sum(1 for r in regions if r.bounding_box.center_x < split_x)
    return left, len(regions) - left


def detect_pages(regions: Sequence[TextRegion]) -> PageLayoutInfo:
    """Detect whether regions come from two pages placed side by side.

    The split starts at the midpoint of the region centers. When the spread
    looks balanced, the widest gap between neighbouring centers near the
    middle of the page extent replaces it, as long as the split stays
    reasonably balanced. This is a heuristic tuned on sample spreads and is
    not expected to hold for every layout.

    Args:
        regions: Text regions of one image

    Returns:
        PageLayoutInfo with the spread verdict and the split x coordinate
    """
    if len(regions) < MIN_REGIONS_FOR_SPREAD:
        return PageLayoutInfo(is_two_page=False, middle_x=0)

    centers = sorted(r.bounding_box.center_x for r in regions)
    middle_x = (centers[0] + centers[-1]) // 2

    left, right = _count_sides(regions, middle_x)
    is_two_page = (left >= MIN_REGIONS_PER_PAGE
                   and right >= MIN_REGIONS_PER_PAGE
                   and _balance(left, right) >= PAGE_BALANCE_RATIO)

    if not is_two_page:
        return PageLayoutInfo(is_two_page=False, middle_x=middle_x)

    min_x = min(r.bounding_box.x for r in regions)
    max_x = max(r.bounding_box.x + r.bounding_box.width for r in regions)
    extent = max_x - min_x
    window_start = min_x + extent * GAP_WINDOW[0]
    window_end = min_x + extent * GAP_WINDOW[1]

    max_gap = 0
    gap_position = middle_x
    for previous, current in zip(centers, centers[1:]):
        gap = current - previous
        if gap > max_gap and window_start < current < window_end:
            max_gap = gap
            gap_position = (current + previous) // 2

    if max_gap > extent * MIN_GAP_WIDTH_RATIO:
        gap_left, gap_right = _count_sides(regions, gap_position)
        if _balance(gap_left, gap_right) >= GAP_BALANCE_RATIO:
            middle_x = gap_position

    return PageLayoutInfo(is_two_page=True, middle_x=middle_x)


class TextOrderAnalyzer:
    """Sorts text regions into reading order."""

    def sort_by_reading_order(self, regions: Sequence[TextRegion],
                              direction: ReadingDirection = ReadingDirection.AUTO) -> List[TextRegion]:
        """Sort regions according to a reading direction.

        Args:
            regions: Text regions to order
            direction: Direction policy; AUTO infers it from region geometry

        Returns:
            Regions in reading order
        """
        regions = list(regions)
        if not regions:
            return regions

        if direction is ReadingDirection.AUTO:
            direction = self.detect_reading_direction(regions)
            logger.debug(f"Detected reading direction: {direction.name}")

        if direction is ReadingDirection.LEFT_TO_RIGHT_TOP_TO_BOTTOM:
            return sorted(regions, key=lambda r: (r.bounding_box.y // BAND_SIZE, r.bounding_box.x))
        if direction is ReadingDirection.RIGHT_TO_LEFT_TOP_TO_BOTTOM:
            return self._sort_right_to_left(regions)
        return sorted(regions, key=lambda r: (-(r.bounding_box.x // BAND_SIZE), r.bounding_box.y))

    def assign_reading_order(self, regions: Sequence[TextRegion],
                             direction: ReadingDirection = ReadingDirection.AUTO) -> List[OrderedRegion]:
        """Number regions 1..N in reading order.

        Args:
            regions: Text regions to order
            direction: Direction policy

        Returns:
            List of OrderedRegion in reading order
        """
        ordered = self.sort_by_reading_order(regions, direction)
        return [OrderedRegion(region, index) for index, region in enumerate(ordered, start=1)]

    def detect_reading_direction(self, regions: Sequence[TextRegion]) -> ReadingDirection:
        """Infer the reading direction from region shapes.

        Wide boxes mean horizontal lines; the direction of horizontal steps
        between the first regions decides left-to-right vs right-to-left,
        defaulting to right-to-left. Tall boxes mean vertical text.
        """
        if len(regions) < 3:
            return ReadingDirection.RIGHT_TO_LEFT_TOP_TO_BOTTOM

        mean_aspect = sum(r.bounding_box.aspect_ratio for r in regions) / len(regions)
        if mean_aspect <= HORIZONTAL_ASPECT_RATIO:
            return ReadingDirection.TOP_TO_BOTTOM_RIGHT_TO_LEFT

        left_to_right = 0
        right_to_left = 0
        sample = regions[:DIRECTION_SAMPLE_SIZE]
        for previous, current in zip(sample, sample[1:]):
            delta_x = current.bounding_box.x - previous.bounding_box.x
            if abs(delta_x) > MIN_HORIZONTAL_STEP:
                if delta_x > 0:
                    left_to_right += 1
                else:
                    right_to_left += 1

        if left_to_right > right_to_left:
            return ReadingDirection.LEFT_TO_RIGHT_TOP_TO_BOTTOM
        return ReadingDirection.RIGHT_TO_LEFT_TOP_TO_BOTTOM

    def _sort_right_to_left(self, regions: List[TextRegion]) -> List[TextRegion]:
        def row_then_right_to_left(region: TextRegion):
            return (region.bounding_box.y // BAND_SIZE, -region.bounding_box.x)

        layout = detect_pages(regions)
        if not layout.is_two_page:
            return sorted(regions, key=row_then_right_to_left)

        # Image right side is the physical right page, read first
        right_page = [r for r in regions if r.bounding_box.x >= layout.middle_x]
        left_page = [r for r in regions if r.bounding_box.x < layout.middle_x]
        logger.debug(
            f"Two-page spread split at x={layout.middle_x}: "
            f"{len(right_page)} right, {len(left_page)} left"
        )
        return sorted(right_page, key=row_then_right_to_left) + sorted(left_page, key=row_then_right_to_left)

    def analyze_original_order(self, regions: Sequence[TextRegion]) -> str:
        """Describe the order regions came back from the engine in.

        Lists the first ten regions with positions and the step from the
        previous region.
        """
        if len(regions) < 2:
            return "Not enough regions to analyze order"

        lines = ["Original OCR order:", ""]
        for index, region in enumerate(regions[:DIRECTION_SAMPLE_SIZE]):
            box = region.bounding_box
            lines.append(f"[{index + 1}] {region.text}")
            lines.append(f"    position: X={box.x}, Y={box.y}")
            if index > 0:
                previous = regions[index - 1].bounding_box
                lines.append(f"    step: dX={box.x - previous.x:+d}, dY={box.y - previous.y:+d}")
            lines.append("")
        return '\n'.join(lines)

    def diagnose_page_detection(self, regions: Sequence[TextRegion]) -> str:
        """Explain the two-page spread verdict for a set of regions."""
        layout = detect_pages(regions)
        lines = [
            "=== Page detection ===",
            f"Result: {'two-page spread' if layout.is_two_page else 'single page'}",
        ]

        if layout.is_two_page:
            left = sorted((r for r in regions if r.bounding_box.center_x < layout.middle_x),
                          key=lambda r: r.bounding_box.x)
            right = sorted((r for r in regions if r.bounding_box.center_x >= layout.middle_x),
                           key=lambda r: r.bounding_box.x)
            lines.extend([
                f"Split line: X = {layout.middle_x}",
                f"Right page regions: {len(right)}",
                f"Left page regions: {len(left)}",
                "Reading order: right page first, then left page",
                "",
                "X distribution:",
                "Left page first 5: " + ', '.join(f"X={r.bounding_box.x}" for r in left[:5]),
                "Right page first 5: " + ', '.join(f"X={r.bounding_box.x}" for r in right[:5]),
            ])

        return '\n'.join(lines)
