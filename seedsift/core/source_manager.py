"""
Source Manager
Fans a search out to every registered source, settles all of them under one
deadline, then filters and ranks the merged records
"""
from typing import Dict, Iterable, List, Optional, Tuple
from dataclasses import dataclass, replace
from concurrent.futures import ThreadPoolExecutor, wait, FIRST_COMPLETED
import logging
import threading
import time

from ..models.search_result import SearchQuery, TorrentRecord
from ..sources.base import BaseSource
from .event_bus import EventBus, Events

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_TIMEOUT_SECONDS = 8.0
DEFAULT_PREFERRED_SOURCE = "YTS"


@dataclass
class SourceHealth:
    attempts: int = 0
    successes: int = 0
    failures: int = 0
    last_error: str = ""
    last_latency_ms: float = 0.0
    last_attempt_at: float = 0.0
    last_success_at: float = 0.0


def source_id(source_name: str) -> str:
    """URL-safe id for a source name, e.g. "The Pirate Bay" -> "the-pirate-bay"."""
    return "-".join(str(source_name or "").lower().split())


def filter_relevant(records: Iterable[TorrentRecord], query_text: str) -> List[TorrentRecord]:
    """
    Keep records whose lowercase title contains every query word as a substring.
    An empty query text keeps everything.
    """
    words = (query_text or "").lower().split()
    if not words:
        return list(records)
    return [r for r in records if all(word in (r.title or "").lower() for word in words)]


def rank_records(records: Iterable[TorrentRecord], preferred_source: str) -> List[TorrentRecord]:
    """Preferred source first regardless of seeders, then seeders descending."""
    return sorted(
        records,
        key=lambda r: (0 if r.source == preferred_source else 1, -r.seeders),
    )


class SourceManager:
    """Manages torrent sources with concurrent search"""

    def __init__(self, event_bus: Optional[EventBus] = None, options: Optional[Dict] = None):
        self.event_bus = event_bus or EventBus()
        self._sources: Dict[str, BaseSource] = {}
        self._enabled: Dict[str, bool] = {}
        self._health: Dict[str, SourceHealth] = {}
        self._lock = threading.RLock()

        options = options or {}
        self._search_timeout_seconds = DEFAULT_SEARCH_TIMEOUT_SECONDS
        self.preferred_source = DEFAULT_PREFERRED_SOURCE
        self.configure(options)
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, int(options.get("max_workers", 8))),
            thread_name_prefix="seedsift-source",
        )

    def configure(self, options: Dict):
        """Apply search options; the worker pool size is fixed at construction"""
        with self._lock:
            if "search_timeout_seconds" in options:
                self._search_timeout_seconds = max(0.1, float(options["search_timeout_seconds"]))
            if "preferred_source" in options:
                self.preferred_source = str(options["preferred_source"] or "")

    def register(self, source):
        """Register a search source"""
        if not isinstance(source, BaseSource):
            raise TypeError(f"Invalid source type for register(): {type(source)}. Expected BaseSource.")
        if not getattr(source, "name", ""):
            raise ValueError("Source must define non-empty 'name'.")
        with self._lock:
            self._sources[source.name] = source
            self._enabled[source.name] = True
            self._health.setdefault(source.name, SourceHealth())

    def enable_source(self, source_name: str, enabled: bool = True):
        """Enable or disable a source"""
        with self._lock:
            if source_name in self._enabled:
                self._enabled[source_name] = bool(enabled)

    def is_source_enabled(self, source_name: str) -> bool:
        with self._lock:
            return bool(self._enabled.get(source_name, False))

    def get_source_names(self) -> List[str]:
        """Get all registered source names in registration order."""
        with self._lock:
            return list(self._sources.keys())

    def get_enabled_sources(self) -> List[str]:
        """Get list of enabled source names"""
        with self._lock:
            return [name for name, enabled in self._enabled.items() if enabled]

    def reload_sources(self, enabled_dict: Optional[Dict[str, bool]] = None):
        """Re-apply enable flags and let every source re-read its settings"""
        with self._lock:
            for source_name, enabled in (enabled_dict or {}).items():
                if source_name in self._enabled:
                    self._enabled[source_name] = bool(enabled)
            sources = list(self._sources.values())
        for source in sources:
            source.reload_from_settings()
        self.event_bus.emit(Events.SOURCES_RELOADED)

    def get_source_health_snapshot(self) -> Dict[str, Dict]:
        with self._lock:
            return {
                name: {
                    "attempts": h.attempts,
                    "successes": h.successes,
                    "failures": h.failures,
                    "last_error": h.last_error,
                    "last_latency_ms": round(h.last_latency_ms, 2),
                    "last_attempt_at": h.last_attempt_at,
                    "last_success_at": h.last_success_at,
                }
                for name, h in self._health.items()
            }

    def search_torrents(self, query: SearchQuery, sources: Optional[Iterable[str]] = None) -> List[TorrentRecord]:
        """
        Search every enabled source concurrently and merge the results.

        Args:
            query: Search request shared by all sources
            sources: Optional subset of source names to query

        Never raises because of a source; if everything fails the result is [].
        """
        if query.is_empty:
            return []

        selected = self.get_enabled_sources()
        if sources is not None:
            # Either display names (any case) or the ids published by the API.
            wanted = {str(s).strip().lower() for s in sources if str(s).strip()}
            selected = [name for name in selected if name.lower() in wanted or source_id(name) in wanted]

        self.event_bus.emit(Events.SEARCH_STARTED, {"query": query, "sources": list(selected)})

        futures = {}
        with self._lock:
            for source_name in selected:
                source = self._sources.get(source_name)
                if source is not None:
                    futures[self._executor.submit(self._safe_search, source, query)] = source_name

        all_results: List[TorrentRecord] = []
        source_warnings: Dict[str, str] = {}
        completed = 0
        total = len(futures)

        pending = set(futures.keys())
        deadline = time.monotonic() + self._search_timeout_seconds

        while pending:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            done, pending = wait(pending, timeout=remaining, return_when=FIRST_COMPLETED)

            for future in done:
                source_name = futures[future]
                try:
                    results, warning, latency_ms, ok = future.result()
                except Exception as e:
                    results, warning, latency_ms, ok = [], str(e), 0.0, False
                all_results.extend(results)
                self._record_source_outcome(source_name, ok, warning or "", latency_ms)
                if warning:
                    source_warnings[source_name] = warning
                if not ok:
                    self._warn(source_warnings, source_name, warning or "failed")

                completed += 1
                self.event_bus.emit(Events.SEARCH_PROGRESS, {
                    "completed": completed,
                    "total": total,
                    "source": source_name,
                    "count": len(results),
                    "warning": source_warnings.get(source_name, ""),
                })

        for future in pending:
            source_name = futures[future]
            future.cancel()
            timeout_message = (
                f"{source_name} timed out after {self._search_timeout_seconds:g}s; "
                "results from this source were skipped."
            )
            self._record_source_outcome(source_name, False, timeout_message, self._search_timeout_seconds * 1000.0)
            self._warn(source_warnings, source_name, timeout_message)

        filtered = filter_relevant(all_results, query.text)
        ranked = rank_records(filtered, self.preferred_source)

        self.event_bus.emit(Events.SEARCH_COMPLETED, {
            "query": query,
            "count": len(ranked),
            "raw_count": len(all_results),
            "source_warnings": source_warnings,
            "source_health": self.get_source_health_snapshot(),
        })
        return ranked

    def _safe_search(self, source: BaseSource, query: SearchQuery) -> Tuple[List[TorrentRecord], Optional[str], float, bool]:
        """
        Run one source inside its own failure boundary.
        Returns: records, warning, latency_ms, ok
        """
        start = time.perf_counter()
        try:
            results, warning = source.search_with_error(query)
            results = results or []
        except Exception as e:
            latency_ms = (time.perf_counter() - start) * 1000.0
            logger.exception("Search error in %s", source.name)
            return [], str(e) or type(e).__name__, latency_ms, False
        latency_ms = (time.perf_counter() - start) * 1000.0

        records = []
        for record in results:
            if not isinstance(record, TorrentRecord):
                continue
            if not (record.source or "").strip():
                record = replace(record, source=source.name)
            records.append(record)

        # A source that found nothing and reported an error counts as a failure.
        ok = bool(records) or not warning
        logger.debug("%s returned %d records in %.0f ms", source.name, len(records), latency_ms)
        return records, (warning or None), latency_ms, ok

    def _warn(self, source_warnings: Dict[str, str], source_name: str, message: str):
        source_warnings[source_name] = message
        logger.warning("Source %s failed: %s", source_name, message)
        self.event_bus.emit(Events.SOURCE_FAILED, {"source": source_name, "error": message})

    def _record_source_outcome(self, source_name: str, ok: bool, error_message: str, latency_ms: float):
        with self._lock:
            h = self._health.setdefault(source_name, SourceHealth())
            h.attempts += 1
            h.last_attempt_at = time.time()
            h.last_latency_ms = float(latency_ms or 0.0)
            if ok:
                h.successes += 1
                h.last_error = ""
                h.last_success_at = h.last_attempt_at
            else:
                h.failures += 1
                h.last_error = error_message

    def shutdown(self):
        """Shutdown executor without waiting for stalled sources"""
        self._executor.shutdown(wait=False)
