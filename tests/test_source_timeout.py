import threading
import time
import unittest
from unittest.mock import patch

import requests

from seedsift.core.event_bus import EventBus, Events
from seedsift.core.source_manager import SourceManager
from seedsift.models.search_result import SearchQuery, TorrentRecord
from seedsift.core.runtime import search_options
from seedsift.core.settings_manager import SettingsManager
from seedsift.sources.base import BaseSource
from seedsift.sources.x1337 import X1337Source


class SlowSource(BaseSource):
    name = "SlowSource"

    def __init__(self):
        self.release = threading.Event()

    def search(self, query):
        self.release.wait(5.0)
        return []


class FastSource(BaseSource):
    name = "FastSource"

    def search(self, query):
        return [TorrentRecord(
            title="Fast Movie 2020 720p",
            size="700.00 MB",
            seeders=11,
            leechers=1,
            quality="720p",
            source=self.name,
            hash="FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFF",
        )]


class TestSourceTimeout(unittest.TestCase):
    def test_search_returns_when_one_source_hangs(self):
        bus = EventBus()
        sm = SourceManager(bus, options={"search_timeout_seconds": 1.0})
        slow = SlowSource()
        sm.register(slow)
        sm.register(FastSource())

        cap = {}
        bus.subscribe(Events.SEARCH_COMPLETED, lambda d: cap.update(d if isinstance(d, dict) else {}))

        started = time.perf_counter()
        results = sm.search_torrents(SearchQuery(query="fast movie"))
        elapsed = time.perf_counter() - started
        slow.release.set()
        sm.shutdown()

        self.assertLess(elapsed, 2.5)
        self.assertEqual(len(results), 1)
        self.assertEqual(results[0].source, "FastSource")
        warnings = cap.get("source_warnings", {})
        self.assertIn("SlowSource", warnings)
        self.assertIn("timed out", warnings["SlowSource"].lower())
        self.assertEqual(sm.get_source_health_snapshot()["SlowSource"]["failures"], 1)

    def test_mirror_chain_finishes_inside_the_search_deadline(self):
        settings = SettingsManager(environ={"SEEDSIFT_SEARCH_TIMEOUT_SECONDS": "3"})
        src = X1337Source(settings)
        sm = SourceManager(EventBus(), options=search_options(settings))
        sm.register(src)
        listing = (
            '<table class="table-list"><tr>'
            '<td class="name"><a href="/torrent/1/x/">Heat 1995 1080p BluRay</a></td>'
            '<td class="seeds">40</td><td class="leeches">2</td><td class="size">2.1 GB</td>'
            '</tr></table>'
        )
        urls = []

        class _Listing:
            status_code = 200
            text = listing
            content = listing.encode("utf-8")

            def raise_for_status(self):
                return None

        def fake_get(url, timeout):
            urls.append(url)
            if len(urls) <= 2:
                time.sleep(timeout)
                raise requests.Timeout("mirror hung")
            return _Listing()

        with patch.object(src.session, "get", side_effect=fake_get):
            results = sm.search_torrents(SearchQuery(query="heat"))
            time.sleep(0.2)
        sm.shutdown()

        self.assertEqual([r.title for r in results], ["Heat 1995 1080p BluRay"])
        self.assertEqual(urls, [m + "/search/heat/1/" for m in src.mirrors[:3]])
        self.assertEqual(sm.get_source_health_snapshot()["1337x"]["successes"], 1)


if __name__ == "__main__":
    unittest.main()
