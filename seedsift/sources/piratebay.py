"""
PirateBay Search Source
apibay JSON API reached through the mirror/proxy chain
"""
import logging
from typing import List, Tuple
from urllib.parse import quote

from ..models.search_result import SearchQuery, TorrentRecord
from ..utils.torrent_utils import build_magnet, extract_quality, format_size, parse_count
from .http_source import ChainedHTTPSource

logger = logging.getLogger(__name__)


class PirateBaySource(ChainedHTTPSource):
    """PirateBay torrent search source via the apibay JSON endpoint"""

    name = "The Pirate Bay"

    # API endpoints in priority order
    MIRRORS = [
        "https://apibay.org",
    ]
    mirror_setting = "piratebay_api_endpoints"
    accept = "application/json,text/plain,*/*"

    # 207 = Video > HD Movies
    DEFAULT_CATEGORY = 207

    def reload_from_settings(self):
        super().reload_from_settings()
        self.category = self.DEFAULT_CATEGORY
        if self.settings is not None:
            self.category = int(self.settings.get("piratebay_category", self.DEFAULT_CATEGORY) or 0)

    def search_with_error(self, query: SearchQuery) -> Tuple[List[TorrentRecord], str]:
        term = query.search_term
        if not term:
            return [], ""

        path = f"/q.php?q={quote(term)}"
        if self.category:
            path += f"&cat={self.category}"

        response, error = self._fetch_first_ok(path)
        if response is None:
            return [], error

        try:
            rows = response.json()
        except ValueError as e:
            logger.warning("PirateBay search error: %s", e)
            return [], f"PirateBay returned malformed JSON: {e}"

        if not isinstance(rows, list):
            return [], ""
        results = self._parse_api_rows(rows)
        logger.info("Found %d results from The Pirate Bay for %r", len(results), term)
        return results, ""

    def _parse_api_rows(self, rows: list) -> List[TorrentRecord]:
        results: List[TorrentRecord] = []
        for row in rows:
            try:
                if str(row.get("id", "")) == "0":
                    # apibay answers "No results returned" as a placeholder row.
                    continue
                name = (row.get("name") or "").strip()
                infohash = (row.get("info_hash") or "").strip()
                if not name or len(infohash) != 40 or not infohash.strip("0"):
                    continue

                seeders = parse_count(row.get("seeders"))
                if seeders <= 0:
                    continue
                results.append(TorrentRecord(
                    title=name,
                    size=format_size(parse_count(row.get("size"))),
                    seeders=seeders,
                    leechers=parse_count(row.get("leechers")),
                    quality=extract_quality(name),
                    source=self.name,
                    magnet=build_magnet(infohash, name),
                    hash=infohash,
                ))
            except (AttributeError, TypeError, ValueError):
                continue
        return results
