"""
Runtime configuration from environment variables.

    FORMULA_SUGGESTIONS_URL    tag catalog URL
    FORMULA_TAGS_FILE          JSON file of tags; used instead of the URL when set
    FORMULA_SUGGESTIONS_STALE  seconds a fetched catalog is reused (default 5)
    FORMULA_FETCH_TIMEOUT      HTTP timeout in seconds (default 5)
    FORMULA_LOG_LEVEL          logging level name (default WARNING)

Bad values fall back to the defaults with a warning.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .constants import DEFAULT_FETCH_TIMEOUT, DEFAULT_STALE_TIME, DEFAULT_SUGGESTIONS_URL
from .suggestions import RemoteSuggestionSource, StaticSuggestionSource, SuggestionSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    suggestions_url: str = DEFAULT_SUGGESTIONS_URL
    tags_file: Optional[Path] = None
    stale_time: float = DEFAULT_STALE_TIME
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
    log_level: int = logging.WARNING

    def make_suggestion_source(self) -> SuggestionSource:
        """Static source for a tags file, otherwise the remote catalog"""
        if self.tags_file is not None:
            return StaticSuggestionSource.from_file(self.tags_file)
        return RemoteSuggestionSource(
            self.suggestions_url,
            stale_time=self.stale_time,
            timeout=self.fetch_timeout,
        )


def _seconds(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"{name}={raw!r} is not a number, using {default}")
        return default
    if value < 0:
        logger.warning(f"{name}={raw!r} is negative, using {default}")
        return default
    return value


def _log_level(environ: Mapping[str, str]) -> int:
    raw = environ.get("FORMULA_LOG_LEVEL", "").strip().upper()
    if not raw:
        return logging.WARNING
    level = logging.getLevelName(raw)
    if not isinstance(level, int):
        logger.warning(f"Unknown FORMULA_LOG_LEVEL {raw!r}, using WARNING")
        return logging.WARNING
    return level


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Read settings from environ (os.environ by default)"""
    if environ is None:
        environ = os.environ

    tags_file = environ.get("FORMULA_TAGS_FILE", "").strip()

    return Settings(
        suggestions_url=environ.get("FORMULA_SUGGESTIONS_URL", "").strip() or DEFAULT_SUGGESTIONS_URL,
        tags_file=Path(tags_file).expanduser() if tags_file else None,
        stale_time=_seconds(environ, "FORMULA_SUGGESTIONS_STALE", DEFAULT_STALE_TIME),
        fetch_timeout=_seconds(environ, "FORMULA_FETCH_TIMEOUT", DEFAULT_FETCH_TIMEOUT),
        log_level=_log_level(environ),
    )
