"""
Torrent Utilities
Quality labels, magnet links and number/size helpers shared by every source
"""
import re
from typing import Any
from urllib.parse import quote


# Resolution labels first, then encode/source labels. Declared order is the tie-break.
QUALITY_TOKENS = (
    "2160p",
    "4K",
    "1080p",
    "720p",
    "480p",
    "HDRip",
    "BRRip",
    "DVDRip",
    "BluRay",
    "WEB-DL",
    "WEBRip",
    "HDTV",
)

UNKNOWN_QUALITY = "Unknown"

TRACKERS = (
    "udp://tracker.coppersurfer.tk:6969/announce",
    "udp://9.rarbg.to:2920/announce",
    "udp://tracker.opentrackr.org:1337",
    "udp://tracker.internetwarriors.net:1337/announce",
    "udp://tracker.leechers-paradise.org:6969/announce",
    "udp://tracker.pirateparty.gr:6969/announce",
    "udp://tracker.cyberia.is:6969/announce",
    "wss://tracker.btorrent.xyz",
    "wss://tracker.openwebtorrent.com",
    "wss://tracker.webtorrent.dev",
)

_LEADING_INT = re.compile(r'^\s*([+-]?\d+)')


def extract_quality(title: str) -> str:
    """Return the first known quality token found in title, or "Unknown"."""
    lowered = (title or "").lower()
    for token in QUALITY_TOKENS:
        if token.lower() in lowered:
            return token
    return UNKNOWN_QUALITY


def build_magnet(info_hash: str, display_name: str) -> str:
    """
    Build a magnet URI for an info-hash with the static tracker list appended.

    Output is byte-identical for identical inputs.
    """
    tr = "".join(f"&tr={quote(t, safe='')}" for t in TRACKERS)
    return f"magnet:?xt=urn:btih:{info_hash}&dn={quote(display_name or '', safe='')}{tr}"


def parse_count(value: Any) -> int:
    """
    Parse a seeder/leecher count from whatever a source returned.
    Anything unparsable becomes 0.
    """
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(0, value)
    if isinstance(value, float):
        return max(0, int(value)) if value == value else 0
    text = str(value or "").replace(",", "")
    match = _LEADING_INT.match(text)
    if not match:
        return 0
    return max(0, int(match.group(1)))


def format_size(bytes_size: Any) -> str:
    """Format bytes to human readable size"""
    try:
        size = float(bytes_size or 0)
    except (TypeError, ValueError):
        size = 0.0
    if size <= 0:
        return "0 B"
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if size < 1024.0:
            return f"{size:.2f} {unit}"
        size /= 1024.0
    return f"{size:.2f} PB"
