"""Log and progress event streams.

Callers subscribe plain callables. Emission is safe from several worker
threads at once and costs nothing when nobody is subscribed.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

from ..utils import TRACE

logger = logging.getLogger(__name__)

T = TypeVar('T')


class LogLevel(Enum):
    """Severity of a log event, mapped onto stdlib logging levels."""
    TRACE = TRACE
    DEBUG = logging.DEBUG
    INFORMATION = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR


@dataclass(frozen=True)
class LogEvent:
    """A leveled log message."""
    level: LogLevel
    message: str
    timestamp: datetime = field(default_factory=datetime.now)
    data: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class ProgressEvent:
    """Batch progress after one item completes."""
    current: int
    total: int
    path: str
    message: str = ""

    @property
    def percentage(self) -> float:
        if self.total <= 0:
            return 0.0
        return self.current / self.total * 100


class EventEmitter(Generic[T]):
    """Lock-guarded list of subscriber callbacks."""

    def __init__(self, name: str = "event"):
        self.name = name
        self._subscribers: List[Callable[[T], None]] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Register a callback.

        Args:
            callback: Called with every emitted event

        Returns:
            Function that removes the subscription
        """
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    @property
    def has_subscribers(self) -> bool:
        with self._lock:
            return bool(self._subscribers)

    def emit(self, event: T) -> None:
        """Deliver an event to every subscriber.

        A failing subscriber is logged and skipped; the others still run.
        """
        with self._lock:
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                logger.exception(f"{self.name} subscriber {callback!r} failed")
