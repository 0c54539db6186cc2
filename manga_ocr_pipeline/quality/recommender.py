"""OCR parameter recommendation driven by image quality."""

from dataclasses import replace
from pathlib import Path
from typing import Optional, Tuple, Union

from ..settings import RecognitionSettings
from .image_quality import (
    HIGH_CONTRAST,
    MEDIUM_CONTRAST,
    MODERATE_BLUR_SCORE,
    SHARP_BLUR_SCORE,
    ImageQualityAnalyzer,
    QualityLevel,
    QualityMetrics,
)

VERY_HIGH_RESOLUTION = 2000
VERY_BLURRY_SCORE = 150.0

_REASONS = {
    QualityLevel.HIGH: (
        "Image quality is good; standard parameters give the best results "
        "while keeping processing fast."
    ),
    QualityLevel.MEDIUM: (
        "Image quality is moderate; MaxSize and UnclipRatio are raised to "
        "compensate for blur or limited contrast."
    ),
    QualityLevel.LOW: (
        "Image quality is low; the most aggressive parameters are used to "
        "extract as much text as possible. Consider preprocessing the source image."
    ),
}


def recommend_for_metrics(
    metrics: QualityMetrics,
    base_settings: Optional[RecognitionSettings] = None,
) -> RecognitionSettings:
    """Overlay quality-dependent parameters onto a copy of the base settings.

    Provider, language and model fields are carried over from the base
    settings untouched.

    Args:
        metrics: Quality metrics of the image
        base_settings: Settings to start from (defaults when omitted)

    Returns:
        New RecognitionSettings value
    """
    settings = base_settings if base_settings is not None else RecognitionSettings()

    if metrics.quality_level is QualityLevel.HIGH:
        return replace(
            settings,
            max_size=1280 if metrics.max_dimension >= VERY_HIGH_RESOLUTION else 1024,
            unclip_ratio=1.5,
            box_score_threshold=0.6,
            threshold=0.3,
        )

    if metrics.quality_level is QualityLevel.MEDIUM:
        very_blurry = metrics.blur_score < VERY_BLURRY_SCORE
        return replace(
            settings,
            max_size=1280,
            unclip_ratio=2.0 if very_blurry else 1.8,
            box_score_threshold=0.5 if very_blurry else 0.55,
            threshold=0.3,
        )

    return replace(
        settings,
        max_size=1920,
        unclip_ratio=2.0,
        box_score_threshold=0.5,
        threshold=0.25,
        use_preprocessing=True if metrics.contrast < MEDIUM_CONTRAST else settings.use_preprocessing,
    )


class ParameterRecommender:
    """Recommends OCR parameters from image quality."""

    def __init__(self, analyzer: Optional[ImageQualityAnalyzer] = None):
        self.analyzer = analyzer or ImageQualityAnalyzer()

    def recommend(
        self,
        image_path: Union[str, Path],
        base_settings: Optional[RecognitionSettings] = None,
    ) -> Tuple[RecognitionSettings, QualityMetrics]:
        """Analyze an image and recommend settings for it.

        Args:
            image_path: Path to the image
            base_settings: Settings to inherit language/provider/model from

        Returns:
            Tuple of (recommended settings, quality metrics)
        """
        metrics = self.analyzer.analyze(image_path)
        return recommend_for_metrics(metrics, base_settings), metrics

    def explain(self, metrics: QualityMetrics, settings: RecognitionSettings) -> str:
        """Human-readable rationale for a recommendation.

        Args:
            metrics: Quality metrics the recommendation was based on
            settings: Recommended settings

        Returns:
            Multi-line explanation text
        """
        lines = [
            "[Image quality]",
            f"Resolution: {metrics.width}x{metrics.height} ({metrics.max_dimension}px)",
            f"Blur score: {metrics.blur_score:.1f} {_describe_blur(metrics.blur_score)}",
            f"Contrast: {metrics.contrast:.1f} {_describe_contrast(metrics.contrast)}",
            f"Brightness: {metrics.brightness:.1f}",
            f"Quality level: {metrics.quality_level.name}",
            "",
            "[Recommended parameters]",
            f"MaxSize: {settings.max_size}",
            f"UnclipRatio: {settings.unclip_ratio}",
            f"BoxScoreThreshold: {settings.box_score_threshold}",
            f"Threshold: {settings.threshold}",
            f"UsePreprocessing: {settings.use_preprocessing}",
            "",
            "[Reason]",
            _REASONS[metrics.quality_level],
        ]
        return '\n'.join(lines)


def _describe_blur(blur_score: float) -> str:
    if blur_score >= SHARP_BLUR_SCORE:
        return "(sharp)"
    if blur_score >= MODERATE_BLUR_SCORE:
        return "(moderate)"
    return "(blurry)"


def _describe_contrast(contrast: float) -> str:
    if contrast >= HIGH_CONTRAST:
        return "(high contrast)"
    if contrast >= MEDIUM_CONTRAST:
        return "(medium contrast)"
    return "(low contrast)"
