"""SeedSift - movie torrent metasearch across several index sources."""
from __future__ import annotations

import threading
from typing import List, Optional

from .models.search_result import SearchQuery, TorrentRecord

__version__ = "0.3.0"

__all__ = ["SearchQuery", "TorrentRecord", "search_torrents", "__version__"]

_runtime = None
_runtime_lock = threading.Lock()


def _default_runtime():
    global _runtime
    with _runtime_lock:
        if _runtime is None:
            from .core.runtime import build_runtime
            _runtime = build_runtime()
        return _runtime


def search_torrents(query: SearchQuery, sources: Optional[List[str]] = None) -> List[TorrentRecord]:
    """Search all built-in sources with the default runtime."""
    if query.is_empty:
        return []
    return _default_runtime().source_manager.search_torrents(query, sources=sources)
