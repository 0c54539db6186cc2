"""Data models for OCR results."""

import math
from dataclasses import dataclass, field, replace
from typing import Iterable, List, NamedTuple, Optional, Sequence, Tuple


class Point(NamedTuple):
    """Integer pixel coordinate."""
    x: int
    y: int


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned bounds of a (possibly rotated) text quadrilateral."""
    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0
    points: Tuple[Point, ...] = ()  # corners of the detected quadrilateral, in order

    def __post_init__(self):
        """Validate box extent."""
        if self.width < 0 or self.height < 0:
            raise ValueError(f"Box extent must be non-negative, got {self.width}x{self.height}")

    @classmethod
    def from_points(cls, points: Iterable[Sequence[float]]) -> 'BoundingBox':
        """Create the tight axis-aligned box around quadrilateral corners.

        Args:
            points: Corner coordinates as (x, y) pairs

        Returns:
            BoundingBox carrying the integer corners
        """
        corners = tuple(Point(int(p[0]), int(p[1])) for p in points)
        if not corners:
            return cls()

        min_x = min(p.x for p in corners)
        min_y = min(p.y for p in corners)
        max_x = max(p.x for p in corners)
        max_y = max(p.y for p in corners)

        return cls(x=min_x, y=min_y, width=max_x - min_x, height=max_y - min_y, points=corners)

    @classmethod
    def full_image(cls, width: int, height: int) -> 'BoundingBox':
        """Box covering a whole image of the given size."""
        return cls(
            x=0,
            y=0,
            width=width,
            height=height,
            points=(Point(0, 0), Point(width, 0), Point(width, height), Point(0, height)),
        )

    @property
    def area(self) -> int:
        """Calculate area of bounding box."""
        return self.width * self.height

    @property
    def center(self) -> Tuple[int, int]:
        """Calculate center point of bounding box."""
        return (self.x + self.width // 2, self.y + self.height // 2)

    @property
    def center_x(self) -> int:
        return self.x + self.width // 2

    @property
    def aspect_ratio(self) -> float:
        """Calculate aspect ratio (width/height)."""
        if self.height == 0:
            return 0.0
        return self.width / self.height

    def to_tuple(self) -> Tuple[int, int, int, int]:
        """Convert to (x, y, width, height) tuple."""
        return (self.x, self.y, self.width, self.height)

    def overlap_ratio(self, other: 'BoundingBox') -> float:
        """Intersection area divided by the smaller of the two box areas.

        Args:
            other: Another bounding box

        Returns:
            Ratio in [0, 1]; 0 when the boxes don't intersect
        """
        x1 = max(self.x, other.x)
        y1 = max(self.y, other.y)
        x2 = min(self.x + self.width, other.x + other.width)
        y2 = min(self.y + self.height, other.y + other.height)

        if x2 <= x1 or y2 <= y1:
            return 0.0

        intersection = (x2 - x1) * (y2 - y1)
        min_area = min(self.area, other.area)

        return intersection / min_area if min_area > 0 else 0.0


@dataclass(frozen=True)
class TextRegion:
    """A detected text area and what was read from it.

    ``confidence`` is NaN when the region was never scored (detection only).
    """
    text: str = ""
    confidence: float = math.nan
    bounding_box: BoundingBox = field(default_factory=BoundingBox)

    @property
    def is_scored(self) -> bool:
        return not math.isnan(self.confidence)

    def to_dict(self) -> dict:
        """Convert region to dictionary for serialization."""
        return {
            'text': self.text,
            'confidence': None if not self.is_scored else self.confidence,
            'bbox': self.bounding_box.to_tuple(),
            'points': [tuple(p) for p in self.bounding_box.points],
        }


@dataclass(frozen=True)
class OcrResult:
    """Recognition result for one image."""
    success: bool
    text_regions: Tuple[TextRegion, ...] = ()
    elapsed_ms: int = 0
    error_message: Optional[str] = None

    @classmethod
    def failure(cls, message: str, elapsed_ms: int = 0) -> 'OcrResult':
        """Create a failed result carrying a readable error message."""
        return cls(success=False, elapsed_ms=elapsed_ms, error_message=message)

    @property
    def full_text(self) -> str:
        """All region texts joined by newlines."""
        return '\n'.join(region.text for region in self.text_regions)

    def replace_regions(self, regions: Iterable[TextRegion]) -> 'OcrResult':
        """Return a copy of this result holding different regions."""
        return replace(self, text_regions=tuple(regions))

    def get_regions_by_confidence(self, min_confidence: float) -> List[TextRegion]:
        """Get scored regions at or above a confidence threshold.

        Args:
            min_confidence: Minimum confidence threshold

        Returns:
            List of regions above threshold
        """
        return [r for r in self.text_regions if r.is_scored and r.confidence >= min_confidence]

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'success': self.success,
            'text_regions': [region.to_dict() for region in self.text_regions],
            'full_text': self.full_text,
            'elapsed_ms': self.elapsed_ms,
            'error_message': self.error_message,
        }


class OrderedRegion(NamedTuple):
    """A text region with its 1-based reading position."""
    region: TextRegion
    reading_order: int


@dataclass(frozen=True)
class PageLayoutInfo:
    """Whether an image is a two-page spread and where the pages split."""
    is_two_page: bool
    middle_x: int
