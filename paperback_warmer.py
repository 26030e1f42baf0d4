#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# ------------------------------------------------------------------
# Paperback library  →  caching proxy warm-up
# -----------------------------------------------------------
import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from sources import build_adapters, supported_source_ids
from sources.browser import BrowserSession
from warmer import (
    CacheWarmer,
    CompletionCache,
    ProxyForwarder,
    RateLimiter,
    StartupError,
    WarmerConfig,
    find_archive_file,
    load_library_entries,
)
from warmer.session import create_scraper, make_request

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"
PROJECT_LOGGERS = ("sources", "warmer", "paperback_warmer")

log = logging.getLogger("paperback_warmer")


# -----------------------------------------------------------
# Helper Functions
# -----------------------------------------------------------
def setup_logging(log_dir: Path, verbose: bool = False, debug: bool = False) -> None:
    """Console output plus ``debug.log`` (everything) and ``error.log`` (errors)."""
    log_dir.mkdir(parents=True, exist_ok=True)
    fmt = logging.Formatter(LOG_FORMAT)
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if debug else logging.INFO)

    console = logging.StreamHandler()
    console.setLevel(logging.DEBUG if (verbose or debug) else logging.INFO)
    console.setFormatter(fmt)
    root.addHandler(console)

    debug_file = logging.FileHandler(log_dir / "debug.log", mode="a", encoding="utf-8")
    debug_file.setLevel(logging.DEBUG)
    debug_file.setFormatter(fmt)
    root.addHandler(debug_file)

    error_file = logging.FileHandler(log_dir / "error.log", mode="a", encoding="utf-8")
    error_file.setLevel(logging.ERROR)
    error_file.setFormatter(fmt)
    root.addHandler(error_file)

    if verbose or debug:
        for name in PROJECT_LOGGERS:
            logging.getLogger(name).setLevel(logging.DEBUG)


def resolve_archive(args) -> Path:
    if args.archive:
        path = Path(args.archive)
        if not path.is_file():
            raise StartupError(f"Archive file not found: {path}")
        return path
    path = find_archive_file(args.archive_dir)
    if path is None:
        raise StartupError("No paperbackarchive file found in the directory.")
    return path


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        "paperback-warmer",
        description="Forward every chapter of a Paperback library to a caching proxy.",
    )
    p.add_argument(
        "--archive",
        default=None,
        help="Path to the Paperback backup (auto-detected in --archive-dir when omitted).",
    )
    p.add_argument(
        "--archive-dir",
        default=os.getcwd(),
        help="Directory scanned for a *paperback archive* file (default: cwd).",
    )
    p.add_argument("--cache-file", default="cache.json")
    p.add_argument(
        "--log-dir",
        default=os.getcwd(),
        help="Directory receiving debug.log and error.log (default: cwd).",
    )
    p.add_argument(
        "--source",
        action="append",
        default=[],
        choices=supported_source_ids(),
        help="Only process titles of this source. May be repeated.",
    )
    p.add_argument(
        "--chunk-size",
        type=int,
        default=10,
        help="Image URLs per proxy request (default: 10).",
    )
    p.add_argument("--chapter-delay", type=float, default=0.25)
    p.add_argument("--title-delay", type=float, default=0.25)
    p.add_argument(
        "--discovery-delay",
        type=float,
        default=0.25,
        help="Seconds between paginated discovery API calls (default: 0.25).",
    )
    p.add_argument(
        "--forward-delay",
        type=float,
        default=0.1,
        help="Seconds between proxy chunk requests (default: 0.1).",
    )
    p.add_argument(
        "--headful",
        action="store_true",
        help="Show the browser window used for Batoto.",
    )
    p.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable detailed, step-by-step logging.",
    )
    p.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Also enable debug output of third-party libraries.",
    )
    return p


def run(args) -> int:
    load_dotenv()
    config = WarmerConfig.from_env(
        chunk_size=args.chunk_size,
        chapter_delay=args.chapter_delay,
        title_delay=args.title_delay,
        discovery_delay=args.discovery_delay,
        forward_delay=args.forward_delay,
    )
    archive_path = resolve_archive(args)
    log.info("Using archive %s", archive_path)
    entries = load_library_entries(archive_path)
    log.info("Loaded %d library entries", len(entries))

    cache = CompletionCache.load(args.cache_file)
    scraper = create_scraper()
    browser = BrowserSession(headless=not args.headful)
    try:
        adapters = build_adapters(
            discovery_limiter=RateLimiter(config.discovery_delay),
            browser=browser,
        )
        forwarder = ProxyForwarder(
            config.site,
            config.token,
            scraper,
            make_request,
            chunk_size=config.chunk_size,
            limiter=RateLimiter(config.forward_delay),
        )
        warmer = CacheWarmer(
            adapters,
            cache,
            forwarder,
            scraper,
            make_request,
            chapter_limiter=RateLimiter(config.chapter_delay),
            title_limiter=RateLimiter(config.title_delay),
            only_sources=args.source,
        )
        summary = warmer.run(entries)
        print(
            f"Forwarded {summary.chapters_forwarded} chapter(s); "
            f"cache now holds {cache.counts()['completed']} completed chapter(s)."
        )
    finally:
        try:
            cache.flush()
        finally:
            browser.close()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(Path(args.log_dir), verbose=args.verbose, debug=args.debug)
    try:
        return run(args)
    except StartupError as e:
        log.error("%s", e)
        return 1
    except KeyboardInterrupt:
        log.warning("Interrupted; progress up to the last finished chapter is saved.")
        return 130
    except Exception:
        log.exception("Uncaught Exception")
        return 1


if __name__ == "__main__":
    sys.exit(main())
