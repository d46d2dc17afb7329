"""
Command line entry point.

Run:
    python -m seedsift search "the dark knight" --year 2008
    python -m seedsift search --imdb tt0468569 --json
    python -m seedsift serve --port 8000
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from .core.event_bus import Events
from .core.log import setup_logging
from .core.runtime import build_runtime
from .core.settings_manager import SettingsManager
from .models.search_result import SearchQuery, TorrentRecord

logger = logging.getLogger("seedsift")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="seedsift", description="Movie torrent metasearch")
    parser.add_argument("--settings", help="JSON settings file (overrides SEEDSIFT_SETTINGS_FILE)")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ...")
    sub = parser.add_subparsers(dest="command", required=True)

    search = sub.add_parser("search", help="Search all sources once and print the results")
    search.add_argument("query", nargs="*", help="Title words")
    search.add_argument("--year", type=int, default=None)
    search.add_argument("--imdb", dest="imdb_id", default=None, help="IMDB id, e.g. tt0468569")
    search.add_argument("--providers", default="", help="Comma-separated source names")
    search.add_argument("--limit", type=int, default=25)
    search.add_argument("--json", action="store_true", help="Print JSON instead of a table")

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    return parser


def _print_table(results: List[TorrentRecord]) -> None:
    for r in results:
        target = "magnet" if r.magnet else ("hash" if r.hash else "-")
        print(f"{r.seeders:>6} {r.leechers:>6}  {r.quality:<8} {r.size:>10}  [{r.source}] {r.title} ({target})")


def _log_progress(data) -> None:
    data = data or {}
    line = f"[{data.get('completed')}/{data.get('total')}] {data.get('source')}: {data.get('count', 0)} records"
    if data.get("warning"):
        logger.warning("%s (%s)", line, data["warning"])
    else:
        logger.info(line)


def _run_search(args, settings: SettingsManager) -> int:
    query = SearchQuery(query=" ".join(args.query).strip(), year=args.year, imdb_id=args.imdb_id)
    if query.is_empty:
        logger.error("Nothing to search for: pass title words or --imdb.")
        return 2

    runtime = build_runtime(settings)
    runtime.event_bus.subscribe(Events.SEARCH_PROGRESS, _log_progress)
    try:
        providers = [p.strip() for p in args.providers.split(",") if p.strip()] or None
        results = runtime.source_manager.search_torrents(query, sources=providers)
    finally:
        runtime.event_bus.unsubscribe(Events.SEARCH_PROGRESS, _log_progress)
        runtime.source_manager.shutdown()

    shown = results[: max(0, args.limit)] if args.limit else results
    if args.json:
        print(json.dumps([r.to_dict() for r in shown], indent=2))
    else:
        _print_table(shown)
        print(f"{len(results)} results")
    return 0


def _run_server(args, settings: SettingsManager) -> int:
    import uvicorn

    from .web.app import create_app

    app = create_app(build_runtime(settings))
    uvicorn.run(app, host=args.host, port=args.port, log_config=None)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    settings = SettingsManager(settings_file=args.settings)
    setup_logging(args.log_level or settings.get("log_level", "INFO"))

    if args.command == "search":
        return _run_search(args, settings)
    return _run_server(args, settings)


if __name__ == "__main__":
    sys.exit(main())
