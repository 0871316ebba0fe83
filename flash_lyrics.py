"""
FlashLyrics command line entry point.

    flashlyrics fetch "Daft Punk" "One More Time"
    flashlyrics search "one more time by daft punk"
    flashlyrics show "Daft Punk" "One More Time" --at 42.5
    flashlyrics cache list
    flashlyrics config set lyrics.race_timeout 5
"""

import argparse
import asyncio
import json
import sys
from typing import List, Optional

from config import DEBUG, VERSION
from exceptions import LyricsError, LyricsNotFoundError
from logging_config import get_logger, setup_logging
from lrc_parser import parse_lrc
from lyrics import LyricsFetcher
from models import Lyrics
from settings import settings

logger = get_logger(__name__)


def _print_lyrics(lyrics: Lyrics, as_json: bool = False) -> None:
    if as_json:
        print(json.dumps(lyrics.to_dict(), indent=2, ensure_ascii=False))
        return
    kind = "synced" if lyrics.is_synced else "plain"
    print(f"# {lyrics.artist_name or '?'} - {lyrics.track_name or '?'} ({lyrics.source}, {kind})")
    print(lyrics.lrc_lyrics if lyrics.is_synced else lyrics.plain_lyrics)


def _print_summary(results: List[Lyrics]) -> None:
    if not results:
        print("No results.")
        return
    for lyrics in results:
        marker = "S" if lyrics.is_synced else "P"
        print(f"[{marker}] {lyrics.id}  {lyrics.artist_name or '?'} - {lyrics.track_name or '?'}  ({lyrics.source})")


def _run_config(args: argparse.Namespace) -> int:
    if args.action == "list":
        for category, items in settings.get_all().items():
            print(f"[{category}]")
            for key, info in items.items():
                print(f"  {key} = {info['value']!r}")
        return 0

    if args.action == "reset":
        settings.reset_to_defaults()
        print("Settings reset to defaults.")
        return 0

    if args.key is None or args.value is None:
        print("Usage: flashlyrics config set KEY VALUE", file=sys.stderr)
        return 2
    if not settings.set(args.key, args.value):
        print(f"Unknown setting: {args.key}", file=sys.stderr)
        return 1
    try:
        settings.save_to_config()
    except OSError as e:
        print(f"Could not save settings: {e}", file=sys.stderr)
        return 2
    print(f"{args.key} = {settings.get(args.key)!r}")
    return 0


async def run(args: argparse.Namespace, fetcher: LyricsFetcher) -> int:
    if args.command == "fetch":
        lyrics = await fetcher.get_lyrics_for(args.artist, args.title)
        if args.synced_only and not lyrics.is_synced:
            print(f"Only plain lyrics available for {args.artist} - {args.title}", file=sys.stderr)
            return 1
        _print_lyrics(lyrics, as_json=args.json)
        return 0

    if args.command == "search":
        _print_summary(await fetcher.search_by_query(args.query))
        return 0

    if args.command == "show":
        lyrics = await fetcher.get_lyrics_for(args.artist, args.title)
        if not lyrics.is_synced:
            print(f"No synced lyrics for {args.artist} - {args.title}", file=sys.stderr)
            return 1
        line = parse_lrc(lyrics.lrc_lyrics).get_line_at_time(args.at)
        print(line.text if line else "")
        return 0

    if args.command == "cache":
        if args.action == "list":
            _print_summary(await fetcher.get_all_cached_lyrics())
        elif args.action == "search":
            _print_summary(await fetcher.search_cached_lyrics(args.query or ""))
        elif args.action == "delete":
            if not await fetcher.delete_cached_lyrics(args.query or ""):
                print(f"Nothing cached under {args.query}", file=sys.stderr)
                return 1
        elif args.action == "clear":
            removed = await fetcher.clear_cache()
            print(f"Removed {removed} cached entries.")
        return 0

    if args.command == "config":
        return _run_config(args)

    return 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="flashlyrics", description="FlashLyrics - plain and synced lyrics lookup")
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output to the console")
    subparsers = parser.add_subparsers(dest="command", required=True)

    fetch = subparsers.add_parser("fetch", help="Resolve lyrics for a song")
    fetch.add_argument("artist")
    fetch.add_argument("title")
    fetch.add_argument("--json", action="store_true", help="Print the result as JSON")
    fetch.add_argument("--synced-only", action="store_true", help="Fail unless synced lyrics are found")

    search = subparsers.add_parser("search", help="Free-form search across providers")
    search.add_argument("query")

    show = subparsers.add_parser("show", help="Print the line sung at a playback position")
    show.add_argument("artist")
    show.add_argument("title")
    show.add_argument("--at", type=float, required=True, metavar="SECONDS")

    cache = subparsers.add_parser("cache", help="Inspect the local lyrics database")
    cache.add_argument("action", choices=["list", "search", "delete", "clear"])
    cache.add_argument("query", nargs="?", help="Search text or lyrics id to delete")

    config = subparsers.add_parser("config", help="Show or change settings.json")
    config.add_argument("action", choices=["list", "set", "reset"])
    config.add_argument("key", nargs="?", help="Setting key, e.g. lyrics.race_timeout")
    config.add_argument("value", nargs="?")

    return parser


def main(argv: Optional[List[str]] = None, fetcher: Optional[LyricsFetcher] = None) -> int:
    args = build_parser().parse_args(argv)

    setup_logging(
        console_level="DEBUG" if args.verbose else DEBUG.get("log_level", "INFO"),
        file_level=DEBUG.get("file_log_level", "DEBUG"),
        console=DEBUG.get("log_to_console", True),
        log_file=DEBUG.get("log_file", "flashlyrics.log"),
        log_providers=DEBUG.get("log_providers", True),
        max_bytes=DEBUG["log_rotation"]["max_bytes"],
        backup_count=DEBUG["log_rotation"]["backup_count"],
    )

    fetcher = fetcher or LyricsFetcher.from_config()
    try:
        return asyncio.run(run(args, fetcher))
    except LyricsNotFoundError as e:
        print(str(e), file=sys.stderr)
        return 1
    except LyricsError as e:
        logger.error(f"Lyrics lookup failed: {e}")
        return 2
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt caught in main...")
        return 130
    finally:
        fetcher.close()


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
