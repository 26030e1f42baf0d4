from __future__ import annotations

from typing import List, Optional

from bs4 import BeautifulSoup

from .base import (
    BaseSourceAdapter,
    DiscoveryError,
    PageURL,
    ResolutionError,
    SourceTitleContext,
)


class WeebCentralAdapter(BaseSourceAdapter):
    name = "weebcentral"
    base_url = "https://weebcentral.com"

    # ------------------------------------------------------------------ helpers
    def _chapter_id_from_href(self, href: Optional[str]) -> Optional[str]:
        if not href:
            return None
        chapter_id = href.strip().rstrip("/").split("/")[-1]
        return chapter_id or None

    def _chapter_list_url(self, manga_id: str) -> str:
        return f"{self.base_url}/series/{manga_id}/full-chapter-list"

    def _images_url(self, chapter_id: str) -> str:
        return f"{self.base_url}/chapters/{chapter_id}/images?reading_style=long_strip"

    # ----------------------------------------------------------- Base overrides
    def list_chapters(
        self, context: SourceTitleContext, scraper, make_request
    ) -> List[str]:
        html = self._fetch_text(
            self._chapter_list_url(context.manga_id),
            scraper,
            make_request,
            DiscoveryError,
        )
        soup = BeautifulSoup(html, "html.parser")

        chapters: List[str] = []
        for anchor in soup.select("a.flex.items-center"):
            chapter_id = self._chapter_id_from_href(anchor.get("href"))
            if chapter_id:
                chapters.append(chapter_id)
        return chapters

    def resolve_pages(
        self, context: SourceTitleContext, chapter_id: str, scraper, make_request
    ) -> List[PageURL]:
        html = self._fetch_text(
            self._images_url(chapter_id), scraper, make_request, ResolutionError
        )
        soup = BeautifulSoup(html, "html.parser")

        pages: List[PageURL] = []
        for img in soup.select("section.cursor-pointer img"):
            src = img.get("src") or img.get("data-src")
            if not src:
                continue
            pages.append(PageURL(src.strip().replace("?undefined", "")))
        if not pages:
            raise ResolutionError(f"Unable to locate images for chapter {chapter_id}")
        return pages


__all__ = ["WeebCentralAdapter"]
