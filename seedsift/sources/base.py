"""
Source SDK
Versioned base interface for SeedSift torrent sources.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Tuple

from ..models.search_result import SearchQuery, TorrentRecord


class BaseSource(ABC):
    """
    Stable source contract for every torrent index integration.

    search() must never raise: failures reduce to an empty list and the
    reason is kept in last_error.
    """
    api_version = 1
    name = "UnnamedSource"
    last_error = ""

    @abstractmethod
    def search(self, query: SearchQuery) -> List[TorrentRecord]:
        """Return normalized records for a query."""
        raise NotImplementedError

    def search_with_error(self, query: SearchQuery) -> Tuple[List[TorrentRecord], str]:
        """
        Return records together with the error of this call ("" on success).

        One instance serves overlapping searches, so last_error may already
        belong to another call by the time search() returns. Sources that can
        report per call override this; the default reads last_error.
        """
        records = self.search(query)
        return records, self.last_error

    def reload_from_settings(self) -> None:
        """Optional hook called when source settings are reloaded."""
        return None

    def healthcheck(self) -> Dict[str, Any]:
        """Optional lightweight health payload for dashboards."""
        return {
            "name": self.name,
            "ok": not bool(self.last_error),
            "error": self.last_error,
            "api_version": self.api_version,
        }
