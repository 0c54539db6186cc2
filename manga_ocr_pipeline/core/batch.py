"""Bounded-parallelism batch scheduling.

Work is fanned out over a thread pool and fanned back in by original input
index, so results come back in input order whatever the completion order.
"""

import logging
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from ..exceptions import BatchCancelledError, InvalidArgumentError
from ..ocr.models import OcrResult
from .events import EventEmitter, LogEvent, LogLevel, ProgressEvent

logger = logging.getLogger(__name__)

DEFAULT_LARGE_FILE_THRESHOLD = 1_000_000  # bytes

PathLike = Union[str, Path]


def default_parallelism() -> int:
    """Half the available CPUs, at least one."""
    return max(1, (os.cpu_count() or 1) // 2)


@dataclass
class BatchOptions:
    """Options for a parallel batch run."""
    max_parallelism: Optional[int] = None
    enable_smart_scheduling: bool = True
    large_file_threshold_bytes: int = DEFAULT_LARGE_FILE_THRESHOLD
    cancel_event: Optional[threading.Event] = None

    @classmethod
    def from_config(cls, config: dict) -> 'BatchOptions':
        """Build options from the `batch` config section."""
        return cls(
            max_parallelism=config.get('max_parallelism'),
            enable_smart_scheduling=config.get('enable_smart_scheduling', True),
            large_file_threshold_bytes=config.get('large_file_threshold_bytes', DEFAULT_LARGE_FILE_THRESHOLD),
        )

    def resolved_parallelism(self) -> int:
        if self.max_parallelism is None:
            return default_parallelism()
        if self.max_parallelism < 1:
            raise InvalidArgumentError(f"max_parallelism must be >= 1, got {self.max_parallelism}")
        return self.max_parallelism

    @property
    def is_cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()


@dataclass(frozen=True)
class ScheduledItem:
    """A batch path with its original index and file size."""
    path: str
    index: int
    size: int


def _file_size(path: str) -> int:
    try:
        return os.path.getsize(path)
    except OSError:
        return 0


def order_by_size(paths: Sequence[PathLike], large_file_threshold: int = DEFAULT_LARGE_FILE_THRESHOLD,
                  smart: bool = True) -> List[ScheduledItem]:
    """Order batch items for execution.

    With smart scheduling, files of at least `large_file_threshold` bytes go
    first, then the small ones, each group by descending size. Without it,
    input order is kept.

    Args:
        paths: Image paths in input order
        large_file_threshold: Size in bytes at which a file counts as large
        smart: Whether to reorder at all

    Returns:
        Scheduled items in execution order
    """
    items = [ScheduledItem(str(path), index, _file_size(str(path)) if smart else 0)
             for index, path in enumerate(paths)]
    if not smart:
        return items

    large = sorted((i for i in items if i.size >= large_file_threshold), key=lambda i: i.size, reverse=True)
    small = sorted((i for i in items if i.size < large_file_threshold), key=lambda i: i.size, reverse=True)
    return large + small


class BatchScheduler:
    """Runs a single-image recognition function over many paths in parallel."""

    def __init__(self,
                 recognize_one: Callable[[str], OcrResult],
                 log_events: Optional[EventEmitter] = None,
                 progress_events: Optional[EventEmitter] = None):
        """Initialize the scheduler.

        Args:
            recognize_one: Recognition for one image path; must be safe to call
                from several threads
            log_events: Emitter receiving LogEvent values
            progress_events: Emitter receiving ProgressEvent values
        """
        self.recognize_one = recognize_one
        self.log_events = log_events
        self.progress_events = progress_events

    def _log(self, level: LogLevel, message: str, **data) -> None:
        logger.log(level.value, message)
        if self.log_events is not None:
            self.log_events.emit(LogEvent(level, message, data=data or None))

    def run_batch(self, paths: Sequence[PathLike], options: Optional[BatchOptions] = None) -> List[OcrResult]:
        """Recognize every path and return results in input order.

        A failing item becomes a failed OcrResult and the batch carries on.

        Args:
            paths: Image paths
            options: Scheduling options

        Returns:
            One OcrResult per path, in input order

        Raises:
            InvalidArgumentError: If paths is empty
            BatchCancelledError: If the cancel event was set before the batch finished
        """
        if not paths:
            raise InvalidArgumentError("Batch must contain at least one image path")

        options = options or BatchOptions()
        parallelism = options.resolved_parallelism()
        total = len(paths)

        if options.is_cancelled:
            raise BatchCancelledError(0, total)

        schedule = order_by_size(paths, options.large_file_threshold_bytes, options.enable_smart_scheduling)
        large_count = sum(1 for item in schedule if item.size >= options.large_file_threshold_bytes)
        self._log(
            LogLevel.INFORMATION,
            f"Starting batch of {total} images with parallelism {parallelism}"
            + (f" ({large_count} large files first)" if options.enable_smart_scheduling else ""),
            total=total, parallelism=parallelism,
        )

        results: List[Optional[OcrResult]] = [None] * total
        lock = threading.Lock()
        completed = 0
        skipped = 0
        start = time.perf_counter()

        def work(item: ScheduledItem) -> None:
            nonlocal completed, skipped

            if options.is_cancelled:
                with lock:
                    skipped += 1
                return

            self._log(LogLevel.TRACE, f"Processing {item.path}", index=item.index, size=item.size)
            try:
                result = self.recognize_one(item.path)
            except Exception as e:
                self._log(LogLevel.ERROR, f"Failed to process {item.path}: {e}", index=item.index)
                result = OcrResult.failure(f"Failed to process {item.path}: {e}")

            with lock:
                results[item.index] = result
                completed += 1
                if self.progress_events is not None:
                    self.progress_events.emit(ProgressEvent(
                        current=completed,
                        total=total,
                        path=item.path,
                        message=f"Processed {Path(item.path).name}",
                    ))

        with ThreadPoolExecutor(max_workers=parallelism) as executor:
            futures = [executor.submit(work, item) for item in schedule]
            for future in futures:
                future.result()

        elapsed = time.perf_counter() - start

        if skipped or options.is_cancelled:
            self._log(LogLevel.WARNING, f"Batch cancelled after {completed}/{total} images")
            raise BatchCancelledError(completed, total)

        failed = sum(1 for r in results if not r.success)
        self._log(
            LogLevel.INFORMATION,
            f"Batch complete: {total - failed}/{total} succeeded in {elapsed:.2f}s",
            total=total, failed=failed,
        )
        return results
