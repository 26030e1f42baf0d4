import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock

from warmer import CacheWarmer, CacheWriteError, ChapterState, CompletionCache, LibraryEntry
from tests.fakes import FakeAdapter, FakeForwarder


class CountingCache(CompletionCache):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.flushes = 0

    def flush(self):
        self.flushes += 1
        super().flush()


class FailingFlushCache(CompletionCache):
    """Raises on the first ``failures`` flushes, then writes normally."""

    def __init__(self, *args, failures=0, **kwargs):
        super().__init__(*args, **kwargs)
        self.failures = failures

    def flush(self):
        if self.failures:
            self.failures -= 1
            raise CacheWriteError("disk full")
        super().flush()


def entry(manga_id, source_id="WeebCentral", key=None):
    return LibraryEntry(key=key or manga_id, source_id=source_id, manga_id=manga_id)


class TestCacheWarmer(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.cache_path = Path(self._tmp.name) / "cache.json"
        self.cache = CountingCache(self.cache_path)

    def tearDown(self):
        self._tmp.cleanup()

    def make_warmer(self, adapter, forwarder=None, **kwargs):
        self.forwarder = forwarder or FakeForwarder()
        return CacheWarmer(
            {adapter.name: adapter},
            self.cache,
            self.forwarder,
            scraper=None,
            make_request=None,
            **kwargs,
        )

    def test_second_run_forwards_nothing(self):
        adapter = FakeAdapter(["c1", "c2", "c3"])
        first = self.make_warmer(adapter).run([entry("m1")])
        self.assertEqual(first.chapters_forwarded, 3)
        self.assertEqual(self.forwarder.forwarded, ["c1", "c2", "c3"])

        reloaded = CompletionCache.load(self.cache_path)
        self.assertEqual(reloaded.data, {"weebcentral": {"m1": {"c1": True, "c2": True, "c3": True}}})

        self.cache = CountingCache.load(self.cache_path)
        second = self.make_warmer(adapter).run([entry("m1")])
        self.assertEqual(second.chapters_forwarded, 0)
        self.assertEqual(second.chapters[ChapterState.SKIPPED], 3)
        self.assertEqual(self.forwarder.forwarded, [])

    def test_failed_chapters_are_retried(self):
        self.cache.data = {"weebcentral": {"m1": {"c1": True, "c2": False}}}
        adapter = FakeAdapter(["c1", "c2", "c3"])
        summary = self.make_warmer(adapter).run([entry("m1")])
        self.assertEqual(self.forwarder.forwarded, ["c2", "c3"])
        self.assertEqual(adapter.resolved, ["c2", "c3"])
        self.assertEqual(summary.chapters[ChapterState.SKIPPED], 1)
        self.assertEqual(summary.chapters[ChapterState.COMPLETED], 2)
        self.assertTrue(self.cache.get("weebcentral", "m1", "c2"))

    def test_excluded_sources_make_no_calls(self):
        adapter = FakeAdapter(["c1"])
        summary = self.make_warmer(adapter).run(
            [entry("t1", source_id="Toonily"), entry("a1", source_id="ani-list")]
        )
        self.assertEqual(adapter.opened, [])
        self.assertEqual(self.forwarder.forwarded, [])
        self.assertEqual(self.cache.data, {})
        self.assertEqual(summary.titles_skipped, 2)

    def test_unusable_entries_are_skipped(self):
        adapter = FakeAdapter(["c1"])
        entries = [
            LibraryEntry(key="k1", source_id=None, manga_id="m1"),
            entry("m2", source_id="NotASource"),
            LibraryEntry(key="k3", source_id="weebcentral", manga_id=None),
        ]
        summary = self.make_warmer(adapter).run(entries)
        self.assertEqual(summary.titles_skipped, 3)
        self.assertEqual(adapter.opened, [])
        self.assertEqual(self.cache.data, {})

    def test_source_filter(self):
        adapter = FakeAdapter(["c1"])
        summary = self.make_warmer(adapter, only_sources=["mangadex"]).run([entry("m1")])
        self.assertEqual(summary.titles_skipped, 1)
        self.assertEqual(adapter.opened, [])

    def test_outcome_mapping(self):
        adapter = FakeAdapter(["ok", "partial", "unreachable", "noimages"], fail_resolve=["noimages"])
        forwarder = FakeForwarder(failing=["partial"], raising=["unreachable"])
        summary = self.make_warmer(adapter, forwarder).run([entry("m1")])

        bucket = self.cache.data["weebcentral"]["m1"]
        self.assertEqual(bucket, {"ok": True, "partial": False, "unreachable": False})
        self.assertNotIn("noimages", bucket)
        self.assertEqual(summary.chapters[ChapterState.COMPLETED], 1)
        self.assertEqual(summary.chapters[ChapterState.PARTIALLY_FAILED], 2)
        self.assertEqual(summary.chapters[ChapterState.RESOLUTION_FAILED], 1)
        self.assertEqual(forwarder.forwarded, ["ok", "partial", "unreachable"])

    def test_unexpected_adapter_error_leaves_chapter_unmarked(self):
        adapter = FakeAdapter(["c1", "c2"])
        adapter.resolve_pages = MagicMock(side_effect=[KeyError("boom"), []])
        forwarder = FakeForwarder()
        summary = self.make_warmer(adapter, forwarder).run([entry("m1")])
        self.assertIsNone(self.cache.get("weebcentral", "m1", "c1"))
        self.assertEqual(summary.chapters[ChapterState.RESOLUTION_FAILED], 1)
        self.assertEqual(forwarder.forwarded, ["c2"])

    def test_discovery_failure_skips_only_that_title(self):
        broken = FakeAdapter(["c1"], fail_listing=True)
        warmer = self.make_warmer(broken)
        summary = warmer.run([entry("m1")])
        self.assertEqual(summary.titles_failed, 1)
        self.assertEqual(broken.closed, ["m1"])
        self.assertEqual(self.cache.data, {"weebcentral": {"m1": {}}})

        broken.fail_listing = False
        summary = warmer.run([entry("m1"), entry("m2")])
        self.assertEqual(summary.titles_failed, 0)
        self.assertEqual(summary.titles_processed, 2)

    def test_zero_chapters_creates_empty_bucket(self):
        adapter = FakeAdapter([])
        summary = self.make_warmer(adapter).run([entry("m1")])
        self.assertEqual(self.cache.data, {"weebcentral": {"m1": {}}})
        self.assertEqual(summary.titles_processed, 1)
        self.assertTrue(self.cache_path.exists())

    def test_flush_and_pacing(self):
        self.cache.data = {"weebcentral": {"m1": {"c1": True}}}
        adapter = FakeAdapter(["c1", "c2", "c3"])
        chapter_limiter, title_limiter = MagicMock(), MagicMock()
        self.make_warmer(
            adapter, chapter_limiter=chapter_limiter, title_limiter=title_limiter
        ).run([entry("m1"), entry("t1", source_id="toonily")])

        # two attempted chapters plus the end of the title
        self.assertEqual(self.cache.flushes, 3)
        self.assertEqual(chapter_limiter.wait.call_count, 2)
        self.assertEqual(title_limiter.wait.call_count, 1)
        self.assertEqual(adapter.closed, ["m1"])

    def test_cache_write_failure_abandons_only_the_current_title(self):
        self.cache = FailingFlushCache(self.cache_path, failures=2)
        adapter = FakeAdapter(["c1", "c2"])
        summary = self.make_warmer(adapter).run([entry("m1"), entry("m2")])

        self.assertEqual(summary.titles_failed, 1)
        self.assertEqual(summary.titles_processed, 1)
        self.assertEqual(self.forwarder.forwarded, ["c1", "c1", "c2"])
        self.assertEqual(adapter.closed, ["m1", "m2"])
        saved = CompletionCache.load(self.cache_path).data
        self.assertEqual(
            saved, {"weebcentral": {"m1": {"c1": True}, "m2": {"c1": True, "c2": True}}}
        )


if __name__ == "__main__":
    unittest.main()
