"""
1337x Search Source
Listing-page scraping across mirrors; no detail-page fetches
"""
import logging
from typing import List, Optional, Tuple
from urllib.parse import quote

from bs4 import BeautifulSoup

from ..models.search_result import SearchQuery, TorrentRecord
from ..utils.torrent_utils import build_magnet, extract_quality, parse_count
from .http_source import ChainedHTTPSource

logger = logging.getLogger(__name__)


class X1337Source(ChainedHTTPSource):
    """1337x torrent search source"""

    name = "1337x"

    # Mirror URLs in priority order
    MIRRORS = [
        "https://1337x.to",
        "https://1337x.st",
        "https://x1337x.ws",
        "https://x1337x.eu",
        "https://1377x.to",
    ]
    mirror_setting = "x1337_mirror_order"
    check_blocked = True

    def search_with_error(self, query: SearchQuery) -> Tuple[List[TorrentRecord], str]:
        """
        Search 1337x for torrents.

        The listing page has title, seeds, leeches and size per row. Magnets
        live on detail pages, so records only carry a hash when a mirror
        happens to inline a magnet link in the row.
        """
        term = query.search_term
        if not term:
            return [], ""

        response, error = self._fetch_first_ok(f"/search/{quote(term)}/1/")
        if response is None:
            return [], error

        soup = BeautifulSoup(response.content, 'html.parser')
        results = self._parse_search_page(soup)
        logger.info("Found %d results from 1337x for %r", len(results), term)
        return results, ""

    def _parse_search_page(self, soup: BeautifulSoup) -> List[TorrentRecord]:
        results: List[TorrentRecord] = []
        for row in soup.select('table.table-list tr'):
            try:
                record = self._parse_row(row)
            except (AttributeError, KeyError, TypeError, ValueError):
                continue
            if record:
                results.append(record)
        return results

    def _parse_row(self, row) -> Optional[TorrentRecord]:
        """Parse a single listing row; header rows and broken rows yield None"""
        name_elem = row.select_one('td.name a[href^="/torrent/"]') or row.select_one('a[href^="/torrent/"]')
        if not name_elem:
            return None
        title = name_elem.get_text(strip=True)
        if not title:
            return None

        seeds_elem = row.select_one('td.seeds')
        leeches_elem = row.select_one('td.leeches')
        size_elem = row.select_one('td.size')
        if not seeds_elem or not leeches_elem or not size_elem:
            return None

        seeders = parse_count(seeds_elem.get_text(strip=True))
        if seeders <= 0:
            return None

        # The size cell also nests a mobile-only seeds <span>; keep the leading text.
        size_text = size_elem.find(string=True, recursive=False) or size_elem.get_text(" ", strip=True)

        infohash = None
        magnet = None
        magnet_elem = row.select_one('a[href^="magnet:"]')
        if magnet_elem:
            infohash = TorrentRecord.extract_infohash(magnet_elem.get('href', '')) or None
            if infohash:
                magnet = build_magnet(infohash, title)

        return TorrentRecord(
            title=title,
            size=str(size_text).strip(),
            seeders=seeders,
            leechers=parse_count(leeches_elem.get_text(strip=True)),
            quality=extract_quality(title),
            source=self.name,
            magnet=magnet,
            hash=infohash,
        )
