"""Service, batch scheduling and events."""

from .batch import BatchOptions, BatchScheduler, ScheduledItem, order_by_size
from .events import EventEmitter, LogEvent, LogLevel, ProgressEvent
from .service import MangaOcrService, PageReading

__all__ = [
    'BatchOptions', 'BatchScheduler', 'ScheduledItem', 'order_by_size',
    'EventEmitter', 'LogEvent', 'LogLevel', 'ProgressEvent',
    'MangaOcrService', 'PageReading',
]
