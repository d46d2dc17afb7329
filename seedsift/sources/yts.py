"""
YTS Search Source
Structured JSON API; one request per search, one record per torrent variant
"""
import logging
from typing import List, Tuple

import requests

from ..models.search_result import SearchQuery, TorrentRecord
from ..utils.torrent_utils import build_magnet, extract_quality, parse_count
from .base import BaseSource

logger = logging.getLogger(__name__)


class YTSSource(BaseSource):
    """YTS movie index - stable public API, every torrent carries a hash"""

    name = "YTS"

    API_URL = "https://yts.mx/api/v2"

    def __init__(self, settings=None):
        self.settings = settings
        self.api_url = self.API_URL
        self.timeout_seconds = 6.0
        self.last_error = ""
        self.session = requests.Session()
        self.session.headers.update({
            'User-Agent': 'Mozilla/5.0 (SeedSift; YTSSource)',
            'Accept': 'application/json,text/plain,*/*',
        })
        self.reload_from_settings()

    def reload_from_settings(self):
        if self.settings is None:
            return
        self.api_url = str(self.settings.get("yts_api_url", self.API_URL) or self.API_URL).strip().rstrip("/")
        self.timeout_seconds = max(1.0, float(self.settings.get("request_timeout_seconds", 6.0) or 6.0))

    def search(self, query: SearchQuery) -> List[TorrentRecord]:
        records, error = self.search_with_error(query)
        self.last_error = error
        return records

    def search_with_error(self, query: SearchQuery) -> Tuple[List[TorrentRecord], str]:
        term = (query.imdb_id or "").strip() or query.text
        if not term:
            return [], ""

        params = {"query_term": term}
        if query.year:
            params["year"] = query.year

        try:
            response = self.session.get(
                f"{self.api_url}/list_movies.json",
                params=params,
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning("YTS search error: %s", e)
            return [], f"YTS request failed: {e}"

        if not isinstance(payload, dict) or payload.get("status") != "ok":
            return [], ""
        data = payload.get("data") or {}
        movies = data.get("movies") if isinstance(data, dict) else None
        if not movies or not isinstance(movies, list):
            return [], ""

        results = self._parse_movies(movies)
        logger.info("Found %d results from YTS for %r", len(results), term)
        return results, ""

    def _parse_movies(self, movies: list) -> List[TorrentRecord]:
        results: List[TorrentRecord] = []
        for movie in movies:
            if not isinstance(movie, dict):
                continue
            title = str(movie.get("title") or "").strip()
            if not title:
                continue
            year = movie.get("year") or ""
            for torrent in movie.get("torrents") or []:
                try:
                    record = self._parse_torrent(title, year, torrent)
                except (AttributeError, KeyError, TypeError, ValueError):
                    continue
                if record:
                    results.append(record)
        return results

    def _parse_torrent(self, title: str, year, torrent: dict):
        info_hash = str(torrent.get("hash") or "").strip()
        if not info_hash:
            return None
        label = str(torrent.get("quality") or "").strip()
        display = f"{title} ({year}) {label}".strip() if year else f"{title} {label}".strip()
        return TorrentRecord(
            title=display,
            size=str(torrent.get("size") or ""),
            seeders=parse_count(torrent.get("seeds")),
            leechers=parse_count(torrent.get("peers")),
            quality=label or extract_quality(display),
            source=self.name,
            magnet=build_magnet(info_hash, display),
            hash=info_hash,
        )
