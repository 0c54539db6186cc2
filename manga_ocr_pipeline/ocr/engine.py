"""OCR engine integration using PaddleOCR.

The rest of the pipeline only depends on the three-method engine capability
below, so tests and alternative backends can stand in for PaddleOCR.
"""

import logging
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

import numpy as np

from ..settings import OcrProvider, RecognitionSettings

logger = logging.getLogger(__name__)

Quad = List[Tuple[float, float]]

# Language names accepted in settings -> PaddleOCR language codes
LANGUAGE_CODES = {
    'japanese': 'japan', 'ja': 'japan',
    'chinese': 'ch', 'zh': 'ch',
    'chinesesimplified': 'ch', 'zh-cn': 'ch',
    'chinesetraditional': 'chinese_cht', 'zh-tw': 'chinese_cht',
    'english': 'en', 'en': 'en',
    'korean': 'korean', 'ko': 'korean',
}

RECOGNITION_MODELS = {
    'korean': 'korean_PP-OCRv5_mobile_rec',
    'en': 'en_PP-OCRv5_mobile_rec',
}


class OcrEngine(Protocol):
    """Detection/recognition capability consumed by the pipeline.

    All methods take decoded BGR (or grayscale) pixel arrays.
    """

    def detect(self, image: np.ndarray) -> List[Quad]:
        """Return the rotated quadrilaterals of all text areas."""
        ...

    def recognize(self, image: np.ndarray) -> Tuple[str, float]:
        """Read a single tight text patch."""
        ...

    def run_full(self, image: np.ndarray) -> List[Tuple[Quad, str, float]]:
        """Detect and recognize every text area."""
        ...


def resolve_language(language: str) -> str:
    """Map a settings language name to a PaddleOCR language code.

    Unknown names fall back to Japanese.
    """
    return LANGUAGE_CODES.get(language.strip().lower(), 'japan')


def _result_to_json(result: Any) -> Dict[str, Any]:
    if isinstance(result, dict):
        payload = result
    else:
        payload = getattr(result, 'json', None)
        if callable(payload):
            payload = payload()
    if not isinstance(payload, dict):
        return {}
    inner = payload.get('res')
    return inner if isinstance(inner, dict) else payload


def _to_quad(poly: Any) -> Quad:
    points = np.asarray(poly, dtype=np.float64).reshape(-1, 2)
    return [(float(x), float(y)) for x, y in points]


class PaddleOcrEngine:
    """PaddleOCR engine wrapper configured from recognition settings."""

    def __init__(self, settings: RecognitionSettings):
        """Initialize PaddleOCR models.

        Args:
            settings: Recognition settings for this engine instance
        """
        if settings.provider is not OcrProvider.PADDLE_OCR:
            raise NotImplementedError(f"OCR provider not implemented: {settings.provider.value}")

        from paddleocr import PaddleOCR, TextDetection, TextRecognition

        self.settings = settings
        self.lang = resolve_language(settings.language)
        device = 'gpu' if settings.use_gpu else 'cpu'

        detection_params = {
            'limit_side_len': settings.max_size,
            'limit_type': 'max',
            'thresh': settings.threshold,
            'box_thresh': settings.box_score_threshold,
            'unclip_ratio': settings.unclip_ratio,
        }
        model_dirs = self._model_dirs(settings.model_path)

        logger.info(f"Loading PaddleOCR models (lang={self.lang}, device={device}, max_size={settings.max_size})")

        self.pipeline = PaddleOCR(
            lang=self.lang,
            device=device,
            use_doc_orientation_classify=settings.allow_rotate_detection,
            use_doc_unwarping=False,
            use_textline_orientation=settings.enable_180_classification,
            text_det_limit_side_len=detection_params['limit_side_len'],
            text_det_limit_type=detection_params['limit_type'],
            text_det_thresh=detection_params['thresh'],
            text_det_box_thresh=detection_params['box_thresh'],
            text_det_unclip_ratio=detection_params['unclip_ratio'],
            text_detection_model_dir=model_dirs.get('det'),
            text_recognition_model_dir=model_dirs.get('rec'),
        )
        self.detector = TextDetection(
            model_dir=model_dirs.get('det'),
            device=device,
            **detection_params
        )
        self.recognizer = TextRecognition(
            model_name=None if model_dirs else RECOGNITION_MODELS.get(self.lang),
            model_dir=model_dirs.get('rec'),
            device=device
        )

    @staticmethod
    def _model_dirs(model_path: Optional[str]) -> Dict[str, str]:
        """Resolve ``det``/``rec`` subdirectories of a local model directory."""
        if not model_path:
            return {}
        root = Path(model_path)
        return {name: str(root / name) for name in ('det', 'rec') if (root / name).is_dir()}

    def detect(self, image: np.ndarray) -> List[Quad]:
        """Run the detection stage only."""
        quads: List[Quad] = []
        for result in self.detector.predict(image):
            data = _result_to_json(result)
            quads.extend(_to_quad(poly) for poly in data.get('dt_polys', []))
        return quads

    def recognize(self, image: np.ndarray) -> Tuple[str, float]:
        """Run the recognition stage on a whole image treated as one text patch."""
        for result in self.recognizer.predict(image):
            data = _result_to_json(result)
            return str(data.get('rec_text', '')), float(data.get('rec_score', 0.0))
        return '', 0.0

    def run_full(self, image: np.ndarray) -> List[Tuple[Quad, str, float]]:
        """Run detection, orientation classification and recognition."""
        regions: List[Tuple[Quad, str, float]] = []
        for result in self.pipeline.predict(image):
            data = _result_to_json(result)
            texts: Sequence[str] = data.get('rec_texts') or []
            scores: Sequence[float] = data.get('rec_scores') or []
            polys = data.get('rec_polys')
            if polys is None or len(polys) != len(texts):
                polys = data.get('dt_polys')
            if polys is None:
                polys = []
            for poly, text, score in zip(polys, texts, scores):
                regions.append((_to_quad(poly), str(text), float(score)))
        return regions


class ThreadSafeEngine:
    """Serialize engine calls for backends that are not thread-safe."""

    def __init__(self, inner: OcrEngine) -> None:
        self._inner = inner
        self._lock = Lock()

    def detect(self, image: np.ndarray) -> List[Quad]:
        with self._lock:
            return self._inner.detect(image)

    def recognize(self, image: np.ndarray) -> Tuple[str, float]:
        with self._lock:
            return self._inner.recognize(image)

    def run_full(self, image: np.ndarray) -> List[Tuple[Quad, str, float]]:
        with self._lock:
            return self._inner.run_full(image)


def create_paddle_engine(settings: RecognitionSettings) -> OcrEngine:
    """Default engine factory: a PaddleOCR engine behind a lock."""
    return ThreadSafeEngine(PaddleOcrEngine(settings))
