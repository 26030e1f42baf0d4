"""Discovery and cache-warming pipeline for Paperback libraries."""

from .archive import LibraryEntry, find_archive_file, load_library_entries
from .cache import CompletionCache
from .config import WarmerConfig
from .driver import CacheWarmer, ChapterState, RunSummary
from .errors import CacheWriteError, ForwardingError, StartupError, WarmerError
from .forwarder import ForwardOutcome, ProxyForwarder
from .rate_limit import RateLimiter

__all__ = [
    "CacheWarmer",
    "CacheWriteError",
    "ChapterState",
    "CompletionCache",
    "ForwardOutcome",
    "ForwardingError",
    "LibraryEntry",
    "ProxyForwarder",
    "RateLimiter",
    "RunSummary",
    "StartupError",
    "WarmerConfig",
    "WarmerError",
    "find_archive_file",
    "load_library_entries",
]
