from __future__ import annotations

import logging

import cloudscraper
import requests

DEFAULT_TIMEOUT = 30

log = logging.getLogger(__name__)


def create_scraper():
    """HTTP session shared by the adapters and the proxy forwarder.

    cloudscraper gets past the lighter Cloudflare checks some sources use;
    if it cannot be initialised a plain ``requests.Session`` is used.
    """
    try:
        return cloudscraper.create_scraper(
            browser={
                "browser": "chrome",
                "platform": "windows",
                "mobile": False,
            }
        )
    except Exception as e:
        log.warning(
            "cloudscraper init failed (%s). Falling back to requests.Session()", e
        )
        return requests.Session()


def make_request(url: str, scraper, params=None, headers=None, timeout=DEFAULT_TIMEOUT):
    """GET ``url`` through ``scraper`` and raise on any non-2xx status."""
    log.debug("GET %s params=%s", url, params)
    r = scraper.get(url, params=params, headers=headers, timeout=timeout)
    r.raise_for_status()
    return r


__all__ = ["DEFAULT_TIMEOUT", "create_scraper", "make_request"]
