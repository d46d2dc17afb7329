import unittest

from seedsift.core.event_bus import EventBus, Events
from seedsift.core.source_manager import SourceManager, filter_relevant, rank_records, source_id
from seedsift.models.search_result import SearchQuery, TorrentRecord
from seedsift.sources.base import BaseSource


def _record(title="Dune 2021 1080p", source="Dummy", seeders=10):
    return TorrentRecord(
        title=title,
        size="2.00 GB",
        seeders=seeders,
        leechers=1,
        quality="1080p",
        source=source,
        hash="CCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCCC",
    )


class StaticSource(BaseSource):
    def __init__(self, name, records):
        self.name = name
        self.records = records
        self.calls = 0

    def search(self, query):
        self.calls += 1
        return list(self.records)


class ExplodingSource(BaseSource):
    name = "Exploding"

    def __init__(self):
        self.calls = 0

    def search(self, query):
        self.calls += 1
        raise RuntimeError("hard fail")


class ReportingFailureSource(BaseSource):
    name = "Reporting"

    def search(self, query):
        self.last_error = "All Reporting endpoints failed: boom"
        return []


def _manager(*sources, preferred="YTS", bus=None):
    sm = SourceManager(bus or EventBus(), options={"search_timeout_seconds": 5.0, "preferred_source": preferred})
    for src in sources:
        sm.register(src)
    return sm


class TestSourceManagerContract(unittest.TestCase):
    def test_register_requires_basesource(self):
        sm = SourceManager(EventBus())

        class Invalid:
            name = "X"

            def search(self, query):
                return []

        with self.assertRaises(TypeError):
            sm.register(Invalid())
        sm.shutdown()

    def test_register_requires_name(self):
        sm = SourceManager(EventBus())
        with self.assertRaises(ValueError):
            sm.register(StaticSource("", []))
        sm.shutdown()

    def test_register_and_search(self):
        src = StaticSource("Dummy", [_record()])
        sm = _manager(src)
        results = sm.search_torrents(SearchQuery(query="dune"))
        self.assertEqual(len(results), 1)
        self.assertEqual(results[0].source, "Dummy")
        sm.shutdown()

    def test_empty_query_short_circuits(self):
        src = StaticSource("Dummy", [_record()])
        bus = EventBus()
        started = []
        bus.subscribe(Events.SEARCH_STARTED, started.append)
        sm = _manager(src, bus=bus)
        self.assertEqual(sm.search_torrents(SearchQuery(query="", imdb_id=None)), [])
        self.assertEqual(src.calls, 0)
        self.assertEqual(started, [])
        sm.shutdown()

    def test_one_failing_source_does_not_drop_others(self):
        good = StaticSource("Good", [_record(source="Good", seeders=3), _record(source="Good", seeders=9)])
        bad = ExplodingSource()
        bus = EventBus()
        failed = []
        bus.subscribe(Events.SOURCE_FAILED, failed.append)
        sm = _manager(good, bad, bus=bus)

        results = sm.search_torrents(SearchQuery(query="dune"))

        self.assertEqual([r.seeders for r in results], [9, 3])
        self.assertEqual(bad.calls, 1)
        self.assertEqual([f["source"] for f in failed], ["Exploding"])
        health = sm.get_source_health_snapshot()
        self.assertEqual(health["Exploding"]["failures"], 1)
        self.assertIn("hard fail", health["Exploding"]["last_error"])
        self.assertEqual(health["Good"]["successes"], 1)
        sm.shutdown()

    def test_all_sources_failing_returns_empty(self):
        sm = _manager(ExplodingSource(), ReportingFailureSource())
        self.assertEqual(sm.search_torrents(SearchQuery(query="dune")), [])
        health = sm.get_source_health_snapshot()
        self.assertEqual(health["Reporting"]["failures"], 1)
        sm.shutdown()

    def test_relevance_filter_requires_every_word(self):
        src = StaticSource("Dummy", [
            _record(title="The Dark Knight 2008 1080p"),
            _record(title="Dark Side 2010"),
            _record(title="Knight Rider"),
        ])
        sm = _manager(src)
        results = sm.search_torrents(SearchQuery(query="dark knight"))
        self.assertEqual([r.title for r in results], ["The Dark Knight 2008 1080p"])
        sm.shutdown()

    def test_imdb_only_search_skips_relevance_filter(self):
        src = StaticSource("Dummy", [_record(title="Anything At All")])
        sm = _manager(src)
        results = sm.search_torrents(SearchQuery(imdb_id="tt0468569"))
        self.assertEqual(len(results), 1)
        sm.shutdown()

    def test_preferred_source_first_then_seeders(self):
        src_a = StaticSource("A", [_record(source="A", seeders=5), _record(source="A", seeders=50)])
        src_p = StaticSource("Preferred", [_record(source="Preferred", seeders=1)])
        sm = _manager(src_a, src_p, preferred="Preferred")
        results = sm.search_torrents(SearchQuery(query="dune"))
        self.assertEqual(
            [(r.source, r.seeders) for r in results],
            [("Preferred", 1), ("A", 50), ("A", 5)],
        )
        sm.shutdown()

    def test_blank_source_is_tagged_with_adapter_name(self):
        src = StaticSource("Tagger", [_record(source="")])
        sm = _manager(src)
        results = sm.search_torrents(SearchQuery(query="dune"))
        self.assertEqual(results[0].source, "Tagger")
        sm.shutdown()

    def test_disabled_and_unselected_sources_are_not_called(self):
        one = StaticSource("One", [_record(source="One")])
        two = StaticSource("Two", [_record(source="Two")])
        three = StaticSource("Three", [_record(source="Three")])
        sm = _manager(one, two, three)
        sm.enable_source("Two", False)

        results = sm.search_torrents(SearchQuery(query="dune"), sources=["one", "two"])

        self.assertEqual([r.source for r in results], ["One"])
        self.assertEqual((one.calls, two.calls, three.calls), (1, 0, 0))
        sm.shutdown()

    def test_sources_can_be_selected_by_id(self):
        tpb = StaticSource("The Pirate Bay", [_record(source="The Pirate Bay")])
        yts = StaticSource("YTS", [_record(source="YTS")])
        sm = _manager(tpb, yts)
        self.assertEqual(source_id("The Pirate Bay"), "the-pirate-bay")
        results = sm.search_torrents(SearchQuery(query="dune"), sources=["the-pirate-bay"])
        self.assertEqual([r.source for r in results], ["The Pirate Bay"])
        self.assertEqual(yts.calls, 0)
        sm.shutdown()

    def test_outcome_comes_from_the_call_not_the_shared_field(self):
        class SharedInstance(BaseSource):
            name = "Shared"

            def search(self, query):
                return []

            def search_with_error(self, query):
                # Another overlapping search already reset the display field.
                self.last_error = ""
                return [], "All Shared endpoints failed: timeout"

        sm = _manager(SharedInstance())
        self.assertEqual(sm.search_torrents(SearchQuery(query="dune")), [])
        health = sm.get_source_health_snapshot()["Shared"]
        self.assertEqual((health["successes"], health["failures"]), (0, 1))
        self.assertIn("timeout", health["last_error"])
        sm.shutdown()

    def test_configure_updates_preference_and_deadline(self):
        sm = _manager(StaticSource("A", [_record(source="A", seeders=1)]), StaticSource("B", [_record(source="B", seeders=9)]))
        sm.configure({"preferred_source": "A", "search_timeout_seconds": 2.0})
        results = sm.search_torrents(SearchQuery(query="dune"))
        self.assertEqual([r.source for r in results], ["A", "B"])
        self.assertEqual(sm._search_timeout_seconds, 2.0)
        sm.shutdown()

    def test_completed_event_reports_counts(self):
        bus = EventBus()
        cap = {}
        bus.subscribe(Events.SEARCH_COMPLETED, lambda d: cap.update(d))
        sm = _manager(StaticSource("Dummy", [_record(), _record(title="Other")]), bus=bus)
        sm.search_torrents(SearchQuery(query="dune"))
        self.assertEqual(cap["count"], 1)
        self.assertEqual(cap["raw_count"], 2)
        sm.shutdown()


class TestRankingHelpers(unittest.TestCase):
    def test_zero_seeders_sort_totally(self):
        records = [
            _record(source="A", seeders=0),
            _record(source="B", seeders=7),
            _record(source="A", seeders=0),
        ]
        ranked = rank_records(records, "YTS")
        self.assertEqual([r.seeders for r in ranked], [7, 0, 0])

    def test_filter_without_words_keeps_everything(self):
        records = [_record(title="x"), _record(title="y")]
        self.assertEqual(filter_relevant(records, "   "), records)

    def test_reload_applies_flags_and_reloads_sources(self):
        class Reloadable(StaticSource):
            reloads = 0

            def reload_from_settings(self):
                self.reloads += 1

        bus = EventBus()
        seen = []
        bus.subscribe(Events.SOURCES_RELOADED, lambda _d: seen.append(True))
        src = Reloadable("YTS", [_record(source="YTS")])
        sm = _manager(src, bus=bus)
        sm.reload_sources({"YTS": False, "Unknown": True})
        self.assertEqual(sm.get_enabled_sources(), [])
        self.assertEqual(src.reloads, 1)
        self.assertEqual(seen, [True])
        self.assertEqual(sm.search_torrents(SearchQuery(query="dune")), [])
        sm.shutdown()


if __name__ == "__main__":
    unittest.main()
