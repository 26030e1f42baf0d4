from __future__ import annotations

import json
import re
from typing import List, Optional

from bs4 import BeautifulSoup

from .base import (
    BaseSourceAdapter,
    DiscoveryError,
    PageURL,
    ResolutionError,
    SourceTitleContext,
)
from .bato_crypto import cryptojs_decrypt
from .bato_pass import ExpressionError, evaluate_to_string
from .browser import BrowserError

_BATO_PASS_RE = re.compile(r"const\s+batoPass\s*=\s*(.*?);", re.S)
_BATO_WORD_RE = re.compile(r'const\s+batoWord\s*=\s*"(.*?)";', re.S)
_IMG_HTTPS_RE = re.compile(r"const\s+imgHttps\s*=\s*(\[.*?\])\s*;", re.S)


def _find_reader_script(soup: BeautifulSoup) -> Optional[str]:
    for script in soup.find_all("script"):
        text = script.string or script.get_text()
        if text and "batoPass" in text and "batoWord" in text:
            return text
    return None


def extract_bato_pages(html: str, chapter_id: str = "") -> List[PageURL]:
    """Build the signed page URLs from a Bato chapter page.

    The reader script carries the image list (``imgHttps``), an AES-encrypted
    JSON list of access tokens (``batoWord``) and the expression producing the
    passphrase (``batoPass``). Page ``i`` is ``imgHttps[i] + "?" + token[i]``.
    """
    script = _find_reader_script(BeautifulSoup(html, "html.parser"))
    if script is None:
        raise ResolutionError(f"Reader script not found for chapter {chapter_id}")

    pass_match = _BATO_PASS_RE.search(script)
    word_match = _BATO_WORD_RE.search(script)
    imgs_match = _IMG_HTTPS_RE.search(script)
    if not pass_match or not word_match or not imgs_match:
        raise ResolutionError(
            f"Unable to find required variables in script for chapter {chapter_id}"
        )

    try:
        passphrase = evaluate_to_string(pass_match.group(1))
    except ExpressionError as exc:
        raise ResolutionError(f"Error evaluating batoPass: {exc}") from exc

    try:
        images = json.loads(imgs_match.group(1))
    except json.JSONDecodeError as exc:
        raise ResolutionError(f"imgHttps is not a JSON array: {exc}") from exc
    if not isinstance(images, list) or not all(isinstance(u, str) for u in images):
        raise ResolutionError("imgHttps does not hold a list of URLs")

    try:
        tokens = json.loads(cryptojs_decrypt(word_match.group(1), passphrase))
    except ValueError as exc:
        raise ResolutionError(f"Unable to decrypt batoWord: {exc}") from exc
    if not isinstance(tokens, list):
        raise ResolutionError("Decrypted batoWord is not a JSON array")

    pages: List[PageURL] = []
    for index, url in enumerate(images):
        token = tokens[index] if index < len(tokens) else ""
        pages.append(PageURL(url, "" if token is None else str(token)))
    if not pages:
        raise ResolutionError(f"imgHttps is empty for chapter {chapter_id}")
    return pages


class BatotoAdapter(BaseSourceAdapter):
    """Bato is scraped through a browser tab kept open for the whole title."""

    name = "batoto"
    base_url = "https://batocomic.org"

    # ------------------------------------------------------------------ helpers
    def _load(self, context: SourceTitleContext, url: str, error_cls) -> str:
        if context.tab is None:
            raise error_cls("No browser tab is open for this title.")
        try:
            return self.browser.fetch_html(context.tab, url)
        except BrowserError as exc:
            raise error_cls(str(exc)) from exc

    # ------------------------------------------------------------------ context
    def open_title(self, manga_id: str) -> SourceTitleContext:
        if self.browser is None:
            raise DiscoveryError("Batoto requires a browser session.")
        try:
            tab = self.browser.new_tab(referer=self.base_url)
        except BrowserError as exc:
            raise DiscoveryError(str(exc)) from exc
        return SourceTitleContext(source_id=self.name, manga_id=manga_id, tab=tab)

    def close_title(self, context: SourceTitleContext) -> None:
        if context.tab is not None:
            self.browser.close_tab(context.tab)
            context.tab = None

    # ---------------------------------------------------------------- chapters
    def list_chapters(
        self, context: SourceTitleContext, scraper, make_request
    ) -> List[str]:
        html = self._load(
            context, f"{self.base_url}/series/{context.manga_id}", DiscoveryError
        )
        soup = BeautifulSoup(html, "html.parser")

        chapters: List[str] = []
        for item in soup.select("div.episode-list div.main .item"):
            anchor = item.find("a")
            href = (anchor.get("href") or "") if anchor else ""
            chapter_id = href.strip().rstrip("/").split("/")[-1]
            if chapter_id:
                chapters.append(chapter_id)
        return chapters

    # --------------------------------------------------------------- page data
    def resolve_pages(
        self, context: SourceTitleContext, chapter_id: str, scraper, make_request
    ) -> List[PageURL]:
        html = self._load(
            context, f"{self.base_url}/chapter/{chapter_id}", ResolutionError
        )
        return extract_bato_pages(html, chapter_id)


__all__ = ["BatotoAdapter", "extract_bato_pages"]
