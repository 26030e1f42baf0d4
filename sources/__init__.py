"""Source adapters for the cache warmer."""

from __future__ import annotations

import re
from typing import Dict, Iterable, Type

from .base import (
    BaseSourceAdapter,
    DiscoveryError,
    PageURL,
    ResolutionError,
    SourceTitleContext,
)
from .batoto import BatotoAdapter
from .mangadex import MangaDexAdapter
from .manganato import ManganatoAdapter
from .weebcentral import WeebCentralAdapter

_ADAPTER_TYPES: Iterable[Type[BaseSourceAdapter]] = (
    MangaDexAdapter,
    WeebCentralAdapter,
    ManganatoAdapter,
    BatotoAdapter,
)

# Library sources that carry no chapters for the proxy to warm.
EXCLUDED_SOURCE_IDS = frozenset({"toonily", "anilist"})

_SEPARATORS_RE = re.compile(r"[\s_\-]")


def sanitize_source_id(source_id: str) -> str:
    return _SEPARATORS_RE.sub("", source_id.lower()).strip()


def supported_source_ids() -> tuple:
    return tuple(adapter.name for adapter in _ADAPTER_TYPES)


def build_adapters(
    discovery_limiter=None, browser=None, logger=None
) -> Dict[str, BaseSourceAdapter]:
    return {
        adapter_type.name: adapter_type(
            discovery_limiter=discovery_limiter, browser=browser, logger=logger
        )
        for adapter_type in _ADAPTER_TYPES
    }


__all__ = [
    "BaseSourceAdapter",
    "DiscoveryError",
    "EXCLUDED_SOURCE_IDS",
    "PageURL",
    "ResolutionError",
    "SourceTitleContext",
    "build_adapters",
    "sanitize_source_id",
    "supported_source_ids",
]
