"""
RARBG Search Source
Listing-page scraping of RARBG-layout mirrors
"""
import logging
from typing import List, Optional, Tuple
from urllib.parse import urlencode

from bs4 import BeautifulSoup

from ..models.search_result import SearchQuery, TorrentRecord
from ..utils.torrent_utils import build_magnet, extract_quality, parse_count
from .http_source import ChainedHTTPSource

logger = logging.getLogger(__name__)


class RarbgSource(ChainedHTTPSource):
    """RARBG torrent search source (movie categories only)"""

    name = "RARBG"

    MIRRORS = [
        "https://rarbg.to",
        "https://rarbgproxy.org",
        "https://rarbgunblocked.org",
    ]
    mirror_setting = "rarbg_mirror_order"
    check_blocked = True

    # XviD, x264, x264/720, x264/3D, x264/1080, Full BD, BD Remux, x265/4k, x265/4k/HDR, x264/4k, x265/1080
    MOVIE_CATEGORIES = (14, 48, 17, 44, 45, 47, 50, 51, 52, 42, 46)

    # Column positions inside a lista2 row.
    COL_SIZE = 3
    COL_SEEDERS = 4
    COL_LEECHERS = 5

    def search_with_error(self, query: SearchQuery) -> Tuple[List[TorrentRecord], str]:
        term = query.search_term
        if not term:
            return [], ""

        params = [("search", term)] + [("category[]", c) for c in self.MOVIE_CATEGORIES]
        response, error = self._fetch_first_ok(f"/torrents.php?{urlencode(params)}")
        if response is None:
            return [], error

        soup = BeautifulSoup(response.content, 'html.parser')
        results = []
        for row in soup.select('tr.lista2'):
            try:
                record = self._parse_row(row)
            except (AttributeError, KeyError, TypeError, ValueError, IndexError):
                continue
            if record:
                results.append(record)

        logger.info("Found %d results from RARBG for %r", len(results), term)
        return results, ""

    def _parse_row(self, row) -> Optional[TorrentRecord]:
        cells = row.find_all('td', class_='lista')
        if len(cells) <= self.COL_LEECHERS:
            return None

        title_elem = row.select_one('a[href^="/torrent/"]')
        if not title_elem:
            return None
        title = (title_elem.get('title') or title_elem.get_text(strip=True) or "").strip()
        if not title:
            return None

        seeders = parse_count(cells[self.COL_SEEDERS].get_text(strip=True))
        if seeders <= 0:
            return None

        infohash = None
        magnet = None
        magnet_elem = row.select_one('a[href^="magnet:"]')
        if magnet_elem:
            infohash = TorrentRecord.extract_infohash(magnet_elem.get('href', '')) or None
            if infohash:
                magnet = build_magnet(infohash, title)

        return TorrentRecord(
            title=title,
            size=cells[self.COL_SIZE].get_text(strip=True),
            seeders=seeders,
            leechers=parse_count(cells[self.COL_LEECHERS].get_text(strip=True)),
            quality=extract_quality(title),
            source=self.name,
            magnet=magnet,
            hash=infohash,
        )
