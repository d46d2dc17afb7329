"""
Search Result Model
Normalized torrent record and the search request shared by every source
"""
from dataclasses import dataclass, asdict
from typing import Optional
import re


@dataclass(frozen=True)
class SearchQuery:
    """Search request passed unchanged to every source"""
    query: str = ""
    year: Optional[int] = None
    imdb_id: Optional[str] = None

    @property
    def text(self) -> str:
        return (self.query or "").strip()

    @property
    def is_empty(self) -> bool:
        """True when there is neither query text nor an IMDB id to search for"""
        return not self.text and not (self.imdb_id or "").strip()

    @property
    def search_term(self) -> str:
        """
        Term sent to sources that only take free text.
        Falls back to the IMDB id for id-only searches.
        """
        term = self.text or (self.imdb_id or "").strip()
        if self.year and self.text:
            return f"{term} {self.year}"
        return term


@dataclass(frozen=True)
class TorrentRecord:
    """Torrent search result, read-only once a source produced it"""
    title: str
    size: str
    seeders: int
    leechers: int
    quality: str
    source: str
    magnet: Optional[str] = None
    hash: Optional[str] = None

    def __post_init__(self):
        # Counts are availability signals; never let a bad row go negative.
        object.__setattr__(self, "seeders", max(0, int(self.seeders or 0)))
        object.__setattr__(self, "leechers", max(0, int(self.leechers or 0)))

    @staticmethod
    def extract_infohash(magnet: str) -> str:
        """Extract infohash from magnet link"""
        match = re.search(r'btih:([a-fA-F0-9]{40})', magnet or "")
        if match:
            return match.group(1)
        return ""

    @property
    def actionable(self) -> bool:
        return bool(self.magnet or self.hash)

    def to_dict(self) -> dict:
        return asdict(self)
