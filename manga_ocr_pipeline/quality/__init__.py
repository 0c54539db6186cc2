"""Quality assessment module."""

from .image_quality import ImageQualityAnalyzer, QualityLevel, QualityMetrics, determine_quality_level
from .recommender import ParameterRecommender, recommend_for_metrics

__all__ = [
    'ImageQualityAnalyzer', 'QualityLevel', 'QualityMetrics', 'determine_quality_level',
    'ParameterRecommender', 'recommend_for_metrics',
]
