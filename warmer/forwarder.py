from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import requests
from cloudscraper.exceptions import CloudflareException

from .errors import ForwardingError

DEFAULT_CHUNK_SIZE = 10


def chunk_list(items: Sequence, size: int) -> List[list]:
    """Split ``items`` into consecutive lists of at most ``size`` elements."""
    if size < 1:
        raise ValueError("Chunk size must be at least 1.")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


@dataclass
class ForwardOutcome:
    requests_made: int = 0
    failed_images: List[str] = field(default_factory=list)
    chunks_failed: int = 0

    @property
    def completed(self) -> bool:
        return self.chunks_failed == 0


class ProxyForwarder:
    """Hands resolved page URLs to the caching proxy.

    Generic chapters are sent to ``{site}/generic`` in chunks of
    ``chunk_size`` URLs; MangaDex chapters go to ``{site}/manga`` by id and
    the proxy resolves the pages itself. Each response is expected to carry a
    ``failedImages`` list, and a chunk only counts as successful when that
    list is present and empty.
    """

    def __init__(
        self,
        site: str,
        token: str,
        scraper,
        make_request,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        limiter=None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.site = site.rstrip("/")
        self.token = token
        self.scraper = scraper
        self.make_request = make_request
        self.chunk_size = chunk_size
        self.limiter = limiter
        self.log = logger or logging.getLogger(__name__)

    @property
    def headers(self) -> dict:
        return {
            "Referer": self.site,
            "Authorization": f"Bearer {self.token}",
        }

    def _call(self, endpoint: str, params) -> Optional[List[str]]:
        """Issue one proxy request and return its failed images.

        ``None`` in place of the list means the proxy omitted ``failedImages``.
        """
        if self.limiter is not None:
            self.limiter.wait()
        url = f"{self.site}{endpoint}"
        try:
            response = self.make_request(
                url, self.scraper, params=params, headers=self.headers
            )
            payload = response.json()
        except (requests.exceptions.RequestException, CloudflareException) as exc:
            raise ForwardingError(f"Proxy request to {endpoint} failed: {exc}") from exc
        except ValueError as exc:
            raise ForwardingError(f"Proxy response from {endpoint} was not JSON.") from exc
        if not isinstance(payload, dict):
            return None
        failed = payload.get("failedImages")
        if not isinstance(failed, list):
            return None
        return [str(item) for item in failed]

    def _record(self, outcome: ForwardOutcome, failed, label: str) -> None:
        outcome.requests_made += 1
        if failed is not None and not failed:
            self.log.info("%s processed successfully.", label)
            return
        outcome.chunks_failed += 1
        if failed:
            outcome.failed_images.extend(failed)
            self.log.error("%s has failed images: %s", label, failed)
        else:
            self.log.error("%s: proxy response did not list failedImages.", label)

    def forward_chapter_id(self, chapter_id: str) -> ForwardOutcome:
        outcome = ForwardOutcome()
        failed = self._call("/manga", [("chapterId", chapter_id)])
        self._record(outcome, failed, f"Chapter {chapter_id}")
        return outcome

    def forward_pages(self, chapter_id: str, pages: Sequence) -> ForwardOutcome:
        """Forward every chunk of ``pages``; failed images do not stop the loop.

        A ``ForwardingError`` on any chunk propagates and abandons the rest of
        the chapter.
        """
        urls = [page.to_url() if hasattr(page, "to_url") else str(page) for page in pages]
        outcome = ForwardOutcome()
        chunks = chunk_list(urls, self.chunk_size)
        for index, chunk in enumerate(chunks, start=1):
            failed = self._call("/generic", [("imageUrls", url) for url in chunk])
            self._record(
                outcome, failed, f"Chapter {chapter_id} chunk {index}/{len(chunks)}"
            )
        return outcome


__all__ = ["DEFAULT_CHUNK_SIZE", "ForwardOutcome", "ProxyForwarder", "chunk_list"]
