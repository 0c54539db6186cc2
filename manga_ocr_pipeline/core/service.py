"""Manga OCR service.

Coordinates the stages: quality analysis → parameter recommendation →
preprocessing → OCR → post-processing → reading order.
"""

import logging
import math
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

import cv2
import numpy as np

from ..exceptions import (
    DecodeFailureError,
    EngineFailureError,
    InvalidArgumentError,
    UnsupportedFormatError,
)
from ..layout import ReadingDirection, TextOrderAnalyzer, detect_pages
from ..ocr.engine import OcrEngine, create_paddle_engine
from ..ocr.models import BoundingBox, OcrResult, OrderedRegion, PageLayoutInfo, TextRegion
from ..postprocessing import ResultProcessor
from ..preprocessing import ImageProcessor
from ..quality import ParameterRecommender, QualityMetrics, recommend_for_metrics
from ..settings import OcrMode, RecognitionSettings
from ..utils import DEFAULT_CONFIG_PATH, ensure_color, load_config, load_image, setup_logging, validate_image_path
from .batch import BatchOptions, BatchScheduler
from .events import EventEmitter, LogEvent, LogLevel, ProgressEvent

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
EngineFactory = Callable[[RecognitionSettings], OcrEngine]

# Recoverable per-image failures turned into failed results
_IMAGE_FAILURES = (UnsupportedFormatError, DecodeFailureError, EngineFailureError)


@dataclass(frozen=True)
class PageReading:
    """Cleaned OCR result of one page with its reading order."""
    result: OcrResult
    ordered_regions: Tuple[OrderedRegion, ...]
    layout: PageLayoutInfo

    @property
    def full_text(self) -> str:
        """Region texts joined in reading order."""
        return '\n'.join(o.region.text for o in self.ordered_regions)

    def to_dict(self) -> Dict:
        return {
            'result': self.result.to_dict(),
            'reading_order': [
                {'order': o.reading_order, **o.region.to_dict()} for o in self.ordered_regions
            ],
            'is_two_page': self.layout.is_two_page,
            'middle_x': self.layout.middle_x,
        }


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


class MangaOcrService:
    """Recognizes text in manga pages and orders it for reading."""

    def __init__(self,
                 settings: Optional[RecognitionSettings] = None,
                 mode: OcrMode = OcrMode.ADAPTIVE,
                 engine_factory: EngineFactory = create_paddle_engine,
                 config: Optional[Dict] = None):
        """Initialize the service.

        Engines are created lazily on first use.

        Args:
            settings: Base recognition settings
            mode: ADAPTIVE recommends settings per image, STANDARD uses `settings` as is
            engine_factory: Builds an OCR engine for a settings value
            config: Full configuration dictionary (preprocessing, batch, reading_order sections)
        """
        self.config = config or {}
        self.settings = settings or RecognitionSettings.from_config(self.config.get('ocr', {}))
        self.mode = mode
        self.engine_factory = engine_factory

        self.recommender = ParameterRecommender()
        self.image_processor = ImageProcessor(self.config.get('preprocessing', {}))
        self.result_processor = ResultProcessor()
        self.order_analyzer = TextOrderAnalyzer()
        self.batch_defaults = BatchOptions.from_config(self.config.get('batch', {}))
        self.default_direction = ReadingDirection(
            self.config.get('reading_order', {}).get('direction', ReadingDirection.AUTO.value)
        )

        self.log_events: EventEmitter[LogEvent] = EventEmitter('log')
        self.progress_events: EventEmitter[ProgressEvent] = EventEmitter('progress')

        self._engines: Dict[RecognitionSettings, OcrEngine] = {}
        self._engine_lock = threading.Lock()
        self._executor: Optional[ThreadPoolExecutor] = None
        self._executor_lock = threading.Lock()
        self._closed = False

        logger.info(f"Manga OCR service created (mode={mode.value}, language={self.settings.language})")

    @classmethod
    def from_config(cls, config_path: PathLike = DEFAULT_CONFIG_PATH,
                    engine_factory: EngineFactory = create_paddle_engine) -> 'MangaOcrService':
        """Create a service from a YAML configuration file.

        Args:
            config_path: Path to configuration file
            engine_factory: Builds an OCR engine for a settings value

        Returns:
            Configured service
        """
        config = load_config(config_path)
        setup_logging(config.get('logging', {}))
        return cls(
            settings=RecognitionSettings.from_config(config.get('ocr', {})),
            mode=OcrMode(config.get('mode', OcrMode.ADAPTIVE.value)),
            engine_factory=engine_factory,
            config=config,
        )

    # Events

    def subscribe_log(self, callback: Callable[[LogEvent], None]) -> Callable[[], None]:
        """Subscribe to log events; returns an unsubscribe function."""
        return self.log_events.subscribe(callback)

    def subscribe_progress(self, callback: Callable[[ProgressEvent], None]) -> Callable[[], None]:
        """Subscribe to batch progress events; returns an unsubscribe function."""
        return self.progress_events.subscribe(callback)

    def _log(self, level: LogLevel, message: str, **data) -> None:
        logger.log(level.value, message)
        self.log_events.emit(LogEvent(level, message, data=data or None))

    # Lifecycle

    def _check_open(self) -> None:
        if self._closed:
            raise InvalidArgumentError("MangaOcrService is closed")

    def close(self) -> None:
        """Release engines and the async executor."""
        if self._closed:
            return
        self._closed = True
        with self._executor_lock:
            if self._executor is not None:
                self._executor.shutdown(wait=True)
                self._executor = None
        with self._engine_lock:
            self._engines.clear()
        logger.info("Manga OCR service closed")

    def __enter__(self) -> 'MangaOcrService':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # Internals

    def _get_engine(self, settings: RecognitionSettings) -> OcrEngine:
        with self._engine_lock:
            engine = self._engines.get(settings)
            if engine is None:
                self._log(
                    LogLevel.DEBUG,
                    f"Creating OCR engine (max_size={settings.max_size}, unclip_ratio={settings.unclip_ratio})",
                )
                try:
                    engine = self.engine_factory(settings)
                except Exception as e:
                    raise EngineFailureError(f"Failed to initialize OCR engine: {e}") from e
                self._engines[settings] = engine
            return engine

    def _resolve_settings(self, image: np.ndarray, image_path: Path) -> Tuple[RecognitionSettings, Optional[QualityMetrics]]:
        if self.mode is not OcrMode.ADAPTIVE:
            return self.settings, None

        metrics = self.recommender.analyzer.assess(image)
        settings = recommend_for_metrics(metrics, self.settings)
        self._log(
            LogLevel.DEBUG,
            f"{image_path.name}: quality {metrics.quality_level.value}, max_size={settings.max_size}",
            quality=metrics.to_dict(),
        )
        return settings, metrics

    def _prepare(self, image: np.ndarray, settings: RecognitionSettings) -> np.ndarray:
        if not settings.use_preprocessing:
            return image
        try:
            processed = self.image_processor.preprocess_for_ocr(image)
        except (ValueError, cv2.error) as e:
            raise EngineFailureError(f"Preprocessing failed: {e}") from e
        return ensure_color(processed)

    @staticmethod
    def _call_engine(operation: Callable, image: np.ndarray):
        try:
            return operation(image)
        except Exception as e:
            raise EngineFailureError(f"OCR engine error: {e}") from e

    # Single image

    def recognize_text(self, image_path: PathLike) -> OcrResult:
        """Detect and recognize all text in one image.

        Args:
            image_path: Path to image file

        Returns:
            OcrResult; decode and engine failures give success=False

        Raises:
            InvalidArgumentError: If the path is empty or the service is closed
            ImageNotFoundError: If the file doesn't exist
        """
        self._check_open()
        path = validate_image_path(image_path)
        start = time.perf_counter()

        try:
            image = load_image(path)
            settings, _ = self._resolve_settings(image, path)
            engine = self._get_engine(settings)
            raw = self._call_engine(engine.run_full, self._prepare(image, settings))
        except _IMAGE_FAILURES as e:
            self._log(LogLevel.ERROR, f"Recognition failed for {path}: {e}")
            return OcrResult.failure(str(e), _elapsed_ms(start))

        regions = tuple(
            TextRegion(text=text, confidence=float(score), bounding_box=BoundingBox.from_points(quad))
            for quad, text, score in raw
        )
        elapsed = _elapsed_ms(start)
        self._log(LogLevel.INFORMATION, f"Recognized {len(regions)} regions in {path.name} ({elapsed} ms)")
        return OcrResult(success=True, text_regions=regions, elapsed_ms=elapsed)

    def detect_regions_only(self, image_path: PathLike) -> List[TextRegion]:
        """Detect text regions without recognizing them.

        Unlike recognize_text, failures are raised rather than returned.

        Args:
            image_path: Path to image file

        Returns:
            Regions with empty text and NaN confidence

        Raises:
            InvalidArgumentError: If the path is empty or the service is closed
            ImageNotFoundError: If the file doesn't exist
            EngineFailureError: If decoding or detection fails
        """
        self._check_open()
        path = validate_image_path(image_path)
        start = time.perf_counter()

        try:
            image = load_image(path)
        except (UnsupportedFormatError, DecodeFailureError) as e:
            raise EngineFailureError(f"Detection failed for {path}: {e}") from e

        settings, _ = self._resolve_settings(image, path)
        engine = self._get_engine(settings)
        quads = self._call_engine(engine.detect, self._prepare(image, settings))

        regions = [
            TextRegion(text="", confidence=math.nan, bounding_box=BoundingBox.from_points(quad))
            for quad in quads
        ]
        self._log(LogLevel.DEBUG, f"Detected {len(regions)} regions in {path.name} ({_elapsed_ms(start)} ms)")
        return regions

    def recognize_region_only(self, image_path: PathLike) -> OcrResult:
        """Recognize an image that is a single cropped text region.

        Detection is skipped; the whole image becomes one region. The base
        settings are used since recognition ignores detection parameters.

        Args:
            image_path: Path to image file

        Returns:
            OcrResult with exactly one region, or success=False on failure

        Raises:
            InvalidArgumentError: If the path is empty or the service is closed
            ImageNotFoundError: If the file doesn't exist
        """
        self._check_open()
        path = validate_image_path(image_path)
        start = time.perf_counter()

        try:
            image = load_image(path)
            engine = self._get_engine(self.settings)
            text, score = self._call_engine(engine.recognize, self._prepare(image, self.settings))
        except _IMAGE_FAILURES as e:
            self._log(LogLevel.ERROR, f"Region recognition failed for {path}: {e}")
            return OcrResult.failure(str(e), _elapsed_ms(start))

        height, width = image.shape[:2]
        region = TextRegion(text=text, confidence=float(score), bounding_box=BoundingBox.full_image(width, height))
        return OcrResult(success=True, text_regions=(region,), elapsed_ms=_elapsed_ms(start))

    def read_page(self, image_path: PathLike, direction: Optional[ReadingDirection] = None) -> PageReading:
        """Recognize a page, clean the result and put it in reading order.

        Args:
            image_path: Path to image file
            direction: Reading direction; defaults to the configured one

        Returns:
            PageReading with the cleaned result and ordered regions
        """
        result = self.result_processor.process(self.recognize_text(image_path), self.settings.min_confidence)
        if not result.success:
            return PageReading(result, (), PageLayoutInfo(is_two_page=False, middle_x=0))

        direction = direction or self.default_direction
        ordered = tuple(self.order_analyzer.assign_reading_order(result.text_regions, direction))
        layout = detect_pages(result.text_regions)
        if layout.is_two_page:
            self._log(LogLevel.DEBUG, f"Two-page spread detected, split at x={layout.middle_x}")
        return PageReading(result, ordered, layout)

    # Recommendation

    def analyze_and_recommend(self, image_path: PathLike) -> Tuple[RecognitionSettings, QualityMetrics]:
        """Analyze image quality and recommend settings derived from the base settings."""
        self._check_open()
        return self.recommender.recommend(image_path, self.settings)

    def explain_recommendation(self, image_path: PathLike) -> str:
        """Human-readable rationale for the settings recommended for an image."""
        settings, metrics = self.analyze_and_recommend(image_path)
        return self.recommender.explain(metrics, settings)

    # Batches

    def _batch_item(self, full_pipeline: bool) -> Callable[[str], OcrResult]:
        return self.recognize_text if full_pipeline else self.recognize_region_only

    def recognize_batch(self, image_paths: Sequence[PathLike], full_pipeline: bool = False) -> List[OcrResult]:
        """Recognize images one after another.

        Args:
            image_paths: Image paths
            full_pipeline: Run detection too instead of treating each image as one region

        Returns:
            One OcrResult per path, in input order
        """
        self._check_open()
        if not image_paths:
            raise InvalidArgumentError("Batch must contain at least one image path")

        recognize_one = self._batch_item(full_pipeline)
        results = []
        for image_path in image_paths:
            try:
                results.append(recognize_one(image_path))
            except Exception as e:
                self._log(LogLevel.ERROR, f"Failed to process {image_path}: {e}")
                results.append(OcrResult.failure(f"Failed to process {image_path}: {e}"))
        return results

    def recognize_batch_parallel(self, image_paths: Sequence[PathLike],
                                 options: Optional[BatchOptions] = None,
                                 full_pipeline: bool = False) -> List[OcrResult]:
        """Recognize images in parallel.

        Args:
            image_paths: Image paths
            options: Scheduling options; defaults come from the `batch` config section
            full_pipeline: Run detection too instead of treating each image as one region

        Returns:
            One OcrResult per path, in input order

        Raises:
            InvalidArgumentError: If image_paths is empty or the service is closed
            BatchCancelledError: If the batch was cancelled
        """
        self._check_open()
        scheduler = BatchScheduler(self._batch_item(full_pipeline), self.log_events, self.progress_events)
        return scheduler.run_batch(image_paths, options or self.batch_defaults)

    # Async

    def _submit(self, fn: Callable, *args, **kwargs) -> Future:
        self._check_open()
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(thread_name_prefix='manga-ocr')
            return self._executor.submit(fn, *args, **kwargs)

    def recognize_text_async(self, image_path: PathLike) -> Future:
        return self._submit(self.recognize_text, image_path)

    def detect_regions_only_async(self, image_path: PathLike) -> Future:
        return self._submit(self.detect_regions_only, image_path)

    def recognize_region_only_async(self, image_path: PathLike) -> Future:
        return self._submit(self.recognize_region_only, image_path)

    def read_page_async(self, image_path: PathLike, direction: Optional[ReadingDirection] = None) -> Future:
        return self._submit(self.read_page, image_path, direction)

    def recognize_batch_async(self, image_paths: Sequence[PathLike], full_pipeline: bool = False) -> Future:
        return self._submit(self.recognize_batch, image_paths, full_pipeline)

    def recognize_batch_parallel_async(self, image_paths: Sequence[PathLike],
                                       options: Optional[BatchOptions] = None,
                                       full_pipeline: bool = False) -> Future:
        return self._submit(self.recognize_batch_parallel, image_paths, options, full_pipeline)
