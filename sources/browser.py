"""Shared headless Chromium session for sources that need a real browser."""
from __future__ import annotations

import logging
from typing import Optional

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/125.0.0.0 Safari/537.36"
)


class BrowserError(RuntimeError):
    """The browser could not be started or a navigation failed."""


class BrowserSession:
    """Lazily started Playwright browser handing out one tab per title.

    Nothing is launched until the first tab is requested, so runs without any
    browser-backed title never pay for a Chromium start.
    """

    def __init__(
        self,
        headless: bool = True,
        user_agent: str = DEFAULT_USER_AGENT,
        navigation_timeout: int = 60000,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.headless = headless
        self.user_agent = user_agent
        self.navigation_timeout = navigation_timeout
        self.log = logger or logging.getLogger(__name__)

        self._playwright = None
        self._browser = None
        self._context = None

    def _initialize(self) -> None:
        if self._context is not None:
            return
        self.log.info("Starting headless browser (headless=%s)", self.headless)
        try:
            self._playwright = sync_playwright().start()
            self._browser = self._playwright.chromium.launch(headless=self.headless)
            self._context = self._browser.new_context(user_agent=self.user_agent)
        except PlaywrightError as exc:
            self.close()
            raise BrowserError(f"Unable to start browser: {exc}") from exc

    def new_tab(self, referer: Optional[str] = None):
        self._initialize()
        try:
            tab = self._context.new_page()
            if referer:
                tab.set_extra_http_headers({"Referer": referer})
        except PlaywrightError as exc:
            raise BrowserError(f"Unable to open browser tab: {exc}") from exc
        return tab

    def fetch_html(self, tab, url: str) -> str:
        """Navigate ``tab`` to ``url``, wait for the network to settle, return the DOM."""
        self.log.debug("Browser navigating to %s", url)
        try:
            tab.goto(url, wait_until="networkidle", timeout=self.navigation_timeout)
            return tab.content()
        except PlaywrightError as exc:
            raise BrowserError(f"Navigation to {url} failed: {exc}") from exc

    def close_tab(self, tab) -> None:
        try:
            tab.close()
        except PlaywrightError as exc:
            self.log.warning("Failed to close browser tab: %s", exc)

    def close(self) -> None:
        for closer in (self._context, self._browser):
            if closer is None:
                continue
            try:
                closer.close()
            except PlaywrightError as exc:
                self.log.debug("Ignoring browser shutdown error: %s", exc)
        if self._playwright is not None:
            try:
                self._playwright.stop()
            except Exception as exc:
                self.log.warning("Failed to stop Playwright: %s", exc)
        self._playwright = None
        self._browser = None
        self._context = None


__all__ = ["BrowserError", "BrowserSession", "DEFAULT_USER_AGENT"]
