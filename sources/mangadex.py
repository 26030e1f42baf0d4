from __future__ import annotations

from typing import Dict, List, Tuple

import requests
from cloudscraper.exceptions import CloudflareException

from .base import BaseSourceAdapter, DiscoveryError, SourceTitleContext


class MangaDexAdapter(BaseSourceAdapter):
    name = "mangadex"
    base_url = "https://api.mangadex.org"

    _PAGE_SIZE = 500
    _CONTENT_RATINGS = ("safe", "suggestive", "erotica", "pornographic")
    _LANGUAGES = ("en",)

    # ------------------------------------------------------------------ helpers
    def _feed_params(self, offset: int) -> List[Tuple[str, str]]:
        params = [("limit", str(self._PAGE_SIZE))]
        params.extend(("contentRating[]", rating) for rating in self._CONTENT_RATINGS)
        params.extend(("translatedLanguage[]", lang) for lang in self._LANGUAGES)
        params.append(("offset", str(offset)))
        return params

    def _fetch_feed_page(
        self, manga_id: str, offset: int, scraper, make_request
    ) -> List[Dict]:
        url = f"{self.base_url}/manga/{manga_id}/feed"
        try:
            resp = make_request(
                url,
                scraper,
                params=self._feed_params(offset),
                headers=self._referer_headers(),
            )
            payload = resp.json()
        except (requests.exceptions.RequestException, CloudflareException) as exc:
            raise DiscoveryError(f"MangaDex feed request failed: {exc}") from exc
        except ValueError as exc:
            raise DiscoveryError("MangaDex feed response was not JSON.") from exc
        if not isinstance(payload, dict):
            raise DiscoveryError(
                f"Unexpected MangaDex payload type: {type(payload).__name__}"
            )
        data = payload.get("data", [])
        if data is None:
            return []
        if not isinstance(data, list):
            raise DiscoveryError(f"Unexpected MangaDex data shape: {data!r}")
        return data

    # ----------------------------------------------------------- Base overrides
    def list_chapters(
        self, context: SourceTitleContext, scraper, make_request
    ) -> List[str]:
        manga_id = context.manga_id
        chapters: List[str] = []
        offset = 0
        # The feed may return short pages before the end, so only an empty page
        # terminates the listing.
        while True:
            self._discovery_wait()
            data = self._fetch_feed_page(manga_id, offset, scraper, make_request)
            if not data:
                self.log.info(
                    "No more results for mangaId %s at offset %d.", manga_id, offset
                )
                break
            self.log.info(
                "MangaDex results for mangaId %s at offset %d: %d",
                manga_id,
                offset,
                len(data),
            )
            for chapter in data:
                if not isinstance(chapter, dict):
                    continue
                if chapter.get("type") == "chapter" and chapter.get("id"):
                    chapters.append(chapter["id"])
            offset += self._PAGE_SIZE
        return chapters

    def warm_chapter(self, context, chapter_id, forwarder, scraper, make_request):
        """MangaDex chapters are sent to the proxy by id; it resolves the pages itself."""
        return forwarder.forward_chapter_id(chapter_id)


__all__ = ["MangaDexAdapter"]
