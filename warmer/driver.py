from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Optional

from sources import (
    EXCLUDED_SOURCE_IDS,
    BaseSourceAdapter,
    DiscoveryError,
    ResolutionError,
    SourceTitleContext,
    sanitize_source_id,
)

from .archive import LibraryEntry
from .cache import CompletionCache
from .errors import CacheWriteError, ForwardingError


class ChapterState(Enum):
    SKIPPED = "skipped"
    COMPLETED = "completed"
    PARTIALLY_FAILED = "partially_failed"
    RESOLUTION_FAILED = "resolution_failed"


@dataclass
class RunSummary:
    titles_processed: int = 0
    titles_skipped: int = 0
    titles_failed: int = 0
    chapters: Counter = field(default_factory=Counter)

    def record(self, state: ChapterState) -> None:
        self.chapters[state] += 1

    @property
    def chapters_forwarded(self) -> int:
        return (
            self.chapters[ChapterState.COMPLETED]
            + self.chapters[ChapterState.PARTIALLY_FAILED]
        )

    def describe(self) -> str:
        parts = [
            f"titles processed={self.titles_processed}",
            f"skipped={self.titles_skipped}",
            f"failed={self.titles_failed}",
        ]
        parts.extend(f"{state.value}={self.chapters[state]}" for state in ChapterState)
        return ", ".join(parts)


class CacheWarmer:
    """Walks the library and warms the proxy one chapter at a time.

    Titles and chapters are handled strictly in sequence. The cache is flushed
    after every attempted chapter and after every title, so an interrupted run
    loses at most the chapter in flight.
    """

    def __init__(
        self,
        adapters: Dict[str, BaseSourceAdapter],
        cache: CompletionCache,
        forwarder,
        scraper,
        make_request,
        chapter_limiter=None,
        title_limiter=None,
        only_sources: Optional[Iterable[str]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.adapters = adapters
        self.cache = cache
        self.forwarder = forwarder
        self.scraper = scraper
        self.make_request = make_request
        self.chapter_limiter = chapter_limiter
        self.title_limiter = title_limiter
        self.only_sources = (
            {sanitize_source_id(s) for s in only_sources} if only_sources else None
        )
        self.log = logger or logging.getLogger(__name__)

    # ------------------------------------------------------------------ entries
    def run(self, entries: Iterable[LibraryEntry]) -> RunSummary:
        summary = RunSummary()
        for entry in entries:
            self.process_entry(entry, summary)
        self.log.info("Run finished: %s", summary.describe())
        return summary

    def _select_adapter(self, entry: LibraryEntry) -> Optional[BaseSourceAdapter]:
        if not entry.source_id:
            self.log.debug("Entry %s has no sourceId, skipping.", entry.key)
            return None
        source_id = sanitize_source_id(entry.source_id)
        if source_id in EXCLUDED_SOURCE_IDS:
            self.log.debug("Entry %s belongs to excluded source %s.", entry.key, source_id)
            return None
        if self.only_sources is not None and source_id not in self.only_sources:
            self.log.debug("Entry %s: source %s not selected.", entry.key, source_id)
            return None
        adapter = self.adapters.get(source_id)
        if adapter is None:
            self.log.warning(
                "No adapter for sourceId %s (entry %s), skipping.", source_id, entry.key
            )
            return None
        if not entry.manga_id:
            self.log.warning("Entry %s has no mangaId, skipping.", entry.key)
            return None
        return adapter

    def process_entry(self, entry: LibraryEntry, summary: RunSummary) -> None:
        adapter = self._select_adapter(entry)
        if adapter is None:
            summary.titles_skipped += 1
            return

        source_id, manga_id = adapter.name, entry.manga_id
        if self.title_limiter is not None:
            self.title_limiter.wait()
        self.cache.ensure_bucket(source_id, manga_id)

        context: Optional[SourceTitleContext] = None
        try:
            context = adapter.open_title(manga_id)
            chapters = adapter.list_chapters(context, self.scraper, self.make_request)
            pending = self.cache.pending(source_id, manga_id, chapters)
            self.log.info(
                "Found %d chapter(s), %d pending, for mangaId %s from sourceId %s",
                len(chapters),
                len(pending),
                manga_id,
                source_id,
            )
            for chapter_id in chapters:
                summary.record(self.process_chapter(adapter, context, chapter_id))
            summary.titles_processed += 1
        except (DiscoveryError, CacheWriteError) as exc:
            self.log.error(
                "Error processing mangaId %s from sourceId %s: %s", manga_id, source_id, exc
            )
            summary.titles_failed += 1
        except Exception:
            self.log.exception(
                "Unexpected error processing mangaId %s from sourceId %s", manga_id, source_id
            )
            summary.titles_failed += 1
        finally:
            if context is not None:
                adapter.close_title(context)
            try:
                self.cache.flush()
            except CacheWriteError as exc:
                self.log.error("%s", exc)

    # ----------------------------------------------------------------- chapters
    def process_chapter(
        self,
        adapter: BaseSourceAdapter,
        context: SourceTitleContext,
        chapter_id: str,
    ) -> ChapterState:
        source_id, manga_id = adapter.name, context.manga_id
        if self.cache.is_completed(source_id, manga_id, chapter_id):
            self.log.info(
                "Skipping already processed chapter %s for mangaId %s from sourceId %s",
                chapter_id,
                manga_id,
                source_id,
            )
            return ChapterState.SKIPPED

        if self.chapter_limiter is not None:
            self.chapter_limiter.wait()
        self.log.info(
            "Processing chapter %s for mangaId %s from sourceId %s",
            chapter_id,
            manga_id,
            source_id,
        )

        state = ChapterState.RESOLUTION_FAILED
        try:
            outcome = adapter.warm_chapter(
                context, chapter_id, self.forwarder, self.scraper, self.make_request
            )
        except ResolutionError as exc:
            self.log.error(
                "Error resolving chapter %s for mangaId %s from sourceId %s: %s",
                chapter_id,
                manga_id,
                source_id,
                exc,
            )
        except ForwardingError as exc:
            self.log.error(
                "Error forwarding chapter %s for mangaId %s from sourceId %s: %s",
                chapter_id,
                manga_id,
                source_id,
                exc,
            )
            self.cache.mark(source_id, manga_id, chapter_id, False)
            state = ChapterState.PARTIALLY_FAILED
        except Exception:
            self.log.exception(
                "Unexpected error processing chapter %s for mangaId %s from sourceId %s",
                chapter_id,
                manga_id,
                source_id,
            )
        else:
            self.cache.mark(source_id, manga_id, chapter_id, outcome.completed)
            if outcome.completed:
                state = ChapterState.COMPLETED
                self.log.info(
                    "Chapter %s is successfully downloaded for mangaId %s from sourceId %s",
                    chapter_id,
                    manga_id,
                    source_id,
                )
            else:
                state = ChapterState.PARTIALLY_FAILED
                self.log.error(
                    "Chapter %s finished with %d failed image(s) over %d request(s)",
                    chapter_id,
                    len(outcome.failed_images),
                    outcome.requests_made,
                )
        finally:
            self.cache.flush()
        return state


__all__ = ["CacheWarmer", "ChapterState", "RunSummary"]
