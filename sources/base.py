from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional

import requests
from cloudscraper.exceptions import CloudflareException


class DiscoveryError(RuntimeError):
    """Listing the chapters of a title failed."""


class ResolutionError(RuntimeError):
    """Extracting the page URLs of a chapter failed."""


@dataclass(frozen=True)
class PageURL:
    url: str
    token: Optional[str] = None

    def to_url(self) -> str:
        if self.token is None:
            return self.url
        return f"{self.url}?{self.token}"


@dataclass
class SourceTitleContext:
    source_id: str
    manga_id: str
    tab: Any = None


class BaseSourceAdapter:
    """Base class for source-specific adapters.

    An adapter knows how to list the chapters of one title on its site and how
    to turn one of those chapters into page URLs the caching proxy can fetch.
    HTTP access goes through the ``scraper`` session and the ``make_request``
    callable handed in by the driver, so adapters hold no connection state of
    their own (Batoto's browser session being the exception).
    """

    name: str = "base"
    base_url: str = ""

    def __init__(
        self,
        discovery_limiter=None,
        browser=None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.discovery_limiter = discovery_limiter
        self.browser = browser
        if logger is not None:
            self.log = logger.getChild(self.name)
        else:
            self.log = logging.getLogger(f"sources.{self.name}")

    # --- Title lifecycle ---------------------------------------------------
    def open_title(self, manga_id: str) -> SourceTitleContext:
        return SourceTitleContext(source_id=self.name, manga_id=manga_id)

    def close_title(self, context: SourceTitleContext) -> None:
        return None

    # --- Discovery and resolution ------------------------------------------
    def list_chapters(
        self, context: SourceTitleContext, scraper, make_request
    ) -> List[str]:
        raise NotImplementedError

    def resolve_pages(
        self, context: SourceTitleContext, chapter_id: str, scraper, make_request
    ) -> List[PageURL]:
        raise NotImplementedError

    def warm_chapter(
        self,
        context: SourceTitleContext,
        chapter_id: str,
        forwarder,
        scraper,
        make_request,
    ):
        """Resolve the chapter and hand its pages to the proxy forwarder."""
        pages = self.resolve_pages(context, chapter_id, scraper, make_request)
        self.log.debug("Resolved %d page(s) for chapter %s", len(pages), chapter_id)
        return forwarder.forward_pages(chapter_id, pages)

    # --- helpers -----------------------------------------------------------
    def _referer_headers(self) -> dict:
        return {"Referer": self.base_url}

    def _fetch_text(self, url: str, scraper, make_request, error_cls) -> str:
        try:
            response = make_request(url, scraper, headers=self._referer_headers())
        except (requests.exceptions.RequestException, CloudflareException) as exc:
            raise error_cls(f"Request to {url} failed: {exc}") from exc
        return response.text

    def _discovery_wait(self) -> None:
        if self.discovery_limiter is not None:
            self.discovery_limiter.wait()


__all__ = [
    "BaseSourceAdapter",
    "DiscoveryError",
    "PageURL",
    "ResolutionError",
    "SourceTitleContext",
]
