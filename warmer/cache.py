from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from .errors import CacheWriteError, StartupError

CacheData = Dict[str, Dict[str, Dict[str, bool]]]


class CompletionCache:
    """Durable ``sourceId -> mangaId -> chapterId -> bool`` ledger.

    ``True`` marks a chapter the proxy accepted without failed images,
    ``False`` one that was attempted and failed. Missing chapters have not
    been attempted yet. Only ``True`` chapters are skipped on later runs.
    """

    def __init__(
        self,
        path: Union[str, Path],
        data: Optional[CacheData] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.path = Path(path)
        self.data: CacheData = data if data is not None else {}
        self.log = logger or logging.getLogger(__name__)

    @classmethod
    def load(
        cls, path: Union[str, Path], logger: Optional[logging.Logger] = None
    ) -> "CompletionCache":
        path = Path(path)
        if not path.exists():
            return cls(path, {}, logger)
        try:
            with open(path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as exc:
            raise StartupError(f"Unable to read cache file {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StartupError(f"Cache file {path} does not hold a JSON object.")
        return cls(path, data, logger)

    # ------------------------------------------------------------------ lookups
    def ensure_bucket(self, source_id: str, manga_id: str) -> Dict[str, bool]:
        return self.data.setdefault(source_id, {}).setdefault(manga_id, {})

    def get(self, source_id: str, manga_id: str, chapter_id: str) -> Optional[bool]:
        return self.data.get(source_id, {}).get(manga_id, {}).get(chapter_id)

    def is_completed(self, source_id: str, manga_id: str, chapter_id: str) -> bool:
        return self.get(source_id, manga_id, chapter_id) is True

    def pending(
        self, source_id: str, manga_id: str, chapter_ids: Iterable[str]
    ) -> List[str]:
        return [
            chapter_id
            for chapter_id in chapter_ids
            if not self.is_completed(source_id, manga_id, chapter_id)
        ]

    # ---------------------------------------------------------------- mutation
    def mark(
        self, source_id: str, manga_id: str, chapter_id: str, completed: bool
    ) -> None:
        self.ensure_bucket(source_id, manga_id)[chapter_id] = bool(completed)

    def flush(self) -> None:
        """Rewrite the cache file; a temporary sibling is renamed into place."""
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as fh:
                json.dump(self.data, fh, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise CacheWriteError(f"Unable to write cache file {self.path}: {exc}") from exc
        self.log.debug("Cache saved to %s", self.path)

    def counts(self) -> Dict[str, int]:
        completed = failed = 0
        for titles in self.data.values():
            for chapters in titles.values():
                for value in chapters.values():
                    if value:
                        completed += 1
                    else:
                        failed += 1
        return {"completed": completed, "failed": failed}


__all__ = ["CacheData", "CompletionCache"]
