"""Reading the library out of a Paperback backup archive."""
from __future__ import annotations

import json
import re
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .errors import StartupError

ARCHIVE_MARKER = "paperbackarchive"
SOURCE_MANGA_MARKER = "sourcemanga"

_SEPARATORS_RE = re.compile(r"[\s_\-]")


def sanitize_filename(filename: str) -> str:
    return _SEPARATORS_RE.sub("", filename).lower()


@dataclass(frozen=True)
class LibraryEntry:
    key: str
    source_id: Optional[str]
    manga_id: Optional[str]
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_record(cls, key: str, record: Dict[str, Any]) -> "LibraryEntry":
        source_id = record.get("sourceId")
        manga_id = record.get("mangaId")
        return cls(
            key=key,
            source_id=str(source_id) if source_id else None,
            manga_id=str(manga_id) if manga_id else None,
            raw=record,
        )


def find_archive_file(directory: Union[str, Path]) -> Optional[Path]:
    """Return the first regular file in ``directory`` named like a Paperback archive."""
    directory = Path(directory)
    for path in sorted(directory.iterdir()):
        if ARCHIVE_MARKER in sanitize_filename(path.name) and path.is_file():
            return path
    return None


def _find_source_manga_member(archive: zipfile.ZipFile) -> Optional[str]:
    for name in archive.namelist():
        if SOURCE_MANGA_MARKER in sanitize_filename(name):
            return name
    return None


def load_library_entries(archive_path: Union[str, Path]) -> List[LibraryEntry]:
    """Parse the source-manga records of a backup, in archive order."""
    try:
        with zipfile.ZipFile(archive_path) as archive:
            member = _find_source_manga_member(archive)
            if member is None:
                raise StartupError("No sourcemanga file found in the zip archive.")
            content = archive.read(member)
    except zipfile.BadZipFile as exc:
        raise StartupError(f"{archive_path} is not a valid zip archive: {exc}") from exc
    except OSError as exc:
        raise StartupError(f"Unable to read {archive_path}: {exc}") from exc

    try:
        payload = json.loads(content.decode("utf-8-sig"))
    except ValueError as exc:
        raise StartupError(f"{member} does not contain valid JSON: {exc}") from exc

    if isinstance(payload, dict):
        items = [(str(key), value) for key, value in payload.items()]
    elif isinstance(payload, list):
        items = [(str(index), value) for index, value in enumerate(payload)]
    else:
        raise StartupError(f"{member} holds neither a JSON object nor an array.")

    return [
        LibraryEntry.from_record(key, record)
        for key, record in items
        if isinstance(record, dict)
    ]


__all__ = [
    "LibraryEntry",
    "find_archive_file",
    "load_library_entries",
    "sanitize_filename",
]
