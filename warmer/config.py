from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .errors import StartupError
from .forwarder import DEFAULT_CHUNK_SIZE


@dataclass
class WarmerConfig:
    site: str
    token: str
    chunk_size: int = DEFAULT_CHUNK_SIZE
    chapter_delay: float = 0.25
    title_delay: float = 0.25
    discovery_delay: float = 0.25
    forward_delay: float = 0.1

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "WarmerConfig":
        """Read the proxy URL (``SITE``) and bearer token (``TOKEN``)."""
        environ = os.environ if environ is None else environ
        site = (environ.get("SITE") or "").strip().rstrip("/")
        token = (environ.get("TOKEN") or "").strip()
        missing = [name for name, value in (("SITE", site), ("TOKEN", token)) if not value]
        if missing:
            raise StartupError(
                f"Missing {', '.join(missing)} in the environment or .env file."
            )
        config = cls(site=site, token=token, **overrides)
        config.validate()
        return config

    def validate(self) -> None:
        if self.chunk_size < 1:
            raise StartupError("--chunk-size must be at least 1.")
        for name in ("chapter_delay", "title_delay", "discovery_delay", "forward_delay"):
            if getattr(self, name) < 0:
                raise StartupError(f"--{name.replace('_', '-')} must not be negative.")


__all__ = ["WarmerConfig"]
