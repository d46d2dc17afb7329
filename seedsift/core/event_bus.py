"""
Event Bus
Search lifecycle notifications; observers never touch the source manager.
"""
from collections import defaultdict
from typing import Callable, DefaultDict, List
import logging
import threading

logger = logging.getLogger(__name__)


class Events:
    SEARCH_STARTED = "search_started"
    SEARCH_PROGRESS = "search_progress"
    SEARCH_COMPLETED = "search_completed"
    SOURCE_FAILED = "source_failed"
    SOURCES_RELOADED = "sources_reloaded"


class EventBus:
    """Thread-safe publish/subscribe; handlers run on the emitting thread"""

    def __init__(self):
        self._handlers: DefaultDict[str, List[Callable]] = defaultdict(list)
        self._lock = threading.RLock()

    def subscribe(self, event_type: str, callback: Callable):
        with self._lock:
            if callback not in self._handlers[event_type]:
                self._handlers[event_type].append(callback)

    def unsubscribe(self, event_type: str, callback: Callable):
        with self._lock:
            if callback in self._handlers.get(event_type, []):
                self._handlers[event_type].remove(callback)

    def emit(self, event_type: str, data=None):
        """Deliver data to every handler; a failing handler is logged and skipped"""
        with self._lock:
            handlers = list(self._handlers.get(event_type, []))
        for handler in handlers:
            try:
                handler(data)
            except Exception:
                logger.exception("Event handler for %s failed", event_type)
