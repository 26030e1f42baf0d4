from __future__ import annotations


class WarmerError(RuntimeError):
    """Base class for pipeline-level failures."""


class StartupError(WarmerError):
    """A required input is missing; the run cannot start."""


class ForwardingError(WarmerError):
    """A call to the caching proxy failed outright."""


class CacheWriteError(WarmerError):
    """The completion cache could not be written to disk."""


__all__ = ["CacheWriteError", "ForwardingError", "StartupError", "WarmerError"]
