"""Recognition settings passed to the OCR engine."""

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Dict, Optional


class OcrProvider(Enum):
    """OCR engine provider."""
    PADDLE_OCR = "paddleocr"


class OcrMode(Enum):
    """How the service picks recognition settings.

    ADAPTIVE analyzes every image and recommends settings for it.
    STANDARD always uses the configured settings.
    """
    ADAPTIVE = "adaptive"
    STANDARD = "standard"


@dataclass(frozen=True)
class RecognitionSettings:
    """Detection and recognition parameters for one engine instance.

    Instances are immutable; adjusted copies are made with
    ``dataclasses.replace`` so a recommendation for one image can never leak
    into the caller's base settings or into another image's settings.
    """
    provider: OcrProvider = OcrProvider.PADDLE_OCR
    language: str = "Japanese"
    model_path: Optional[str] = None
    min_confidence: float = 0.5
    use_preprocessing: bool = False
    allow_rotate_detection: bool = True
    enable_180_classification: bool = True
    unclip_ratio: float = 1.5  # 1.2-1.3 suits clean manga fonts, 1.8-2.0 small dense text
    max_size: int = 1024
    box_score_threshold: float = 0.6
    threshold: float = 0.3
    use_gpu: bool = False

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]]) -> 'RecognitionSettings':
        """Build settings from the ``ocr`` section of the configuration.

        Args:
            config: OCR configuration dictionary; unknown keys are ignored

        Returns:
            RecognitionSettings with defaults for missing keys
        """
        config = dict(config or {})
        known = {f.name for f in fields(cls)}
        values = {key: value for key, value in config.items() if key in known and value is not None}

        if 'provider' in values and not isinstance(values['provider'], OcrProvider):
            values['provider'] = OcrProvider(str(values['provider']).lower())

        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'provider': self.provider.value,
            'language': self.language,
            'model_path': self.model_path,
            'min_confidence': self.min_confidence,
            'use_preprocessing': self.use_preprocessing,
            'allow_rotate_detection': self.allow_rotate_detection,
            'enable_180_classification': self.enable_180_classification,
            'unclip_ratio': self.unclip_ratio,
            'max_size': self.max_size,
            'box_score_threshold': self.box_score_threshold,
            'threshold': self.threshold,
            'use_gpu': self.use_gpu,
        }
