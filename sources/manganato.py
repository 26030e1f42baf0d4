from __future__ import annotations

from typing import List

from bs4 import BeautifulSoup

from .base import (
    BaseSourceAdapter,
    DiscoveryError,
    PageURL,
    ResolutionError,
    SourceTitleContext,
)


class ManganatoAdapter(BaseSourceAdapter):
    """Manganato keys titles and chapters by their absolute URLs."""

    name = "manganato"
    base_url = "https://manganato.com"

    # The site serves two chapter list layouts depending on the mirror.
    _CHAPTER_ROW_SELECTORS = (
        "div.panel-story-chapter-list ul.row-content-chapter li",
        "div.manga-info-chapter div.chapter-list div.row",
    )
    _PAGE_IMAGE_SELECTOR = "div.container-chapter-reader img"

    def list_chapters(
        self, context: SourceTitleContext, scraper, make_request
    ) -> List[str]:
        html = self._fetch_text(context.manga_id, scraper, make_request, DiscoveryError)
        soup = BeautifulSoup(html, "html.parser")

        chapters: List[str] = []
        for row in soup.select(", ".join(self._CHAPTER_ROW_SELECTORS)):
            anchor = row.find("a")
            href = (anchor.get("href") or "").strip() if anchor else ""
            if href:
                chapters.append(href)
        return chapters

    def resolve_pages(
        self, context: SourceTitleContext, chapter_id: str, scraper, make_request
    ) -> List[PageURL]:
        html = self._fetch_text(chapter_id, scraper, make_request, ResolutionError)
        soup = BeautifulSoup(html, "html.parser")

        pages: List[PageURL] = []
        for img in soup.select(self._PAGE_IMAGE_SELECTOR):
            src = img.get("src") or img.get("data-src")
            if not src:
                raise ResolutionError(
                    f"Unable to parse image(s) for Chapter ID: {chapter_id}"
                )
            pages.append(PageURL(src.strip().replace("?undefined", "")))
        if not pages:
            raise ResolutionError(f"Unable to locate images for chapter {chapter_id}")
        return pages


__all__ = ["ManganatoAdapter"]
