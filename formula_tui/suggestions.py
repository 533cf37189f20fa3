"""
Tag suggestions for autocomplete.

A suggestion source answers search(query) with the tags whose name or
category contains the query (case-insensitive). Sources never raise:
a failed fetch means "no suggestions" and is logged.

- RemoteSuggestionSource: fetches the tag catalog (a JSON list) over HTTP
  and reuses it for a few seconds before fetching again.
- StaticSuggestionSource: a fixed list, e.g. loaded from a JSON file.
"""

import json
import logging
import time
import urllib.error
import urllib.request
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Optional, Protocol

from .constants import DEFAULT_FETCH_TIMEOUT, DEFAULT_STALE_TIME
from .formula import Tag

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SuggestionItem:
    """One autocomplete candidate. Same fields as a Tag."""
    id: str
    name: str
    value: float
    category: str

    @classmethod
    def from_dict(cls, data: dict) -> "SuggestionItem":
        """Build from a catalog record. Raises KeyError/TypeError/ValueError if malformed."""
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            value=float(data["value"]),
            category=str(data["category"]),
        )

    def to_tag(self) -> Tag:
        return Tag(id=self.id, name=self.name, value=self.value, category=self.category)

    def matches(self, query: str) -> bool:
        query = query.lower()
        return query in self.name.lower() or query in self.category.lower()


class SuggestionSource(Protocol):
    def search(self, query: str) -> list[SuggestionItem]:
        ...


def parse_catalog(records: Iterable) -> list[SuggestionItem]:
    """Parse catalog records, skipping malformed ones"""
    items = []
    for record in records:
        try:
            items.append(SuggestionItem.from_dict(record))
        except (KeyError, TypeError, ValueError):
            logger.debug(f"Skipping malformed suggestion: {record!r}")
    return items


def filter_suggestions(items: Iterable[SuggestionItem], query: str) -> list[SuggestionItem]:
    """Items whose name or category contains query. Blank query matches nothing."""
    query = query.strip()
    if not query:
        return []
    return [item for item in items if item.matches(query)]


class StaticSuggestionSource:
    """Suggestions from a fixed list of items"""

    def __init__(self, items: Iterable[SuggestionItem]):
        self.items = list(items)

    @classmethod
    def from_file(cls, path: Path) -> "StaticSuggestionSource":
        """Load a JSON list of {id, name, value, category} records.

        A missing or unreadable file gives an empty source.
        """
        try:
            with open(path, encoding="utf-8") as f:
                records = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not load tags from {path}: {e}")
            return cls([])
        if not isinstance(records, list):
            logger.warning(f"Tags file {path} does not hold a list")
            return cls([])
        return cls(parse_catalog(records))

    def search(self, query: str) -> list[SuggestionItem]:
        return filter_suggestions(self.items, query)


class RemoteSuggestionSource:
    """
    Suggestions from a remote tag catalog.

    The endpoint returns the whole catalog, so it is fetched once and
    filtered locally. A fetched catalog is reused for stale_time seconds.
    """

    def __init__(
        self,
        url: str,
        stale_time: float = DEFAULT_STALE_TIME,
        timeout: float = DEFAULT_FETCH_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.url = url
        self.stale_time = stale_time
        self.timeout = timeout
        self._clock = clock
        self._catalog: Optional[list[SuggestionItem]] = None
        self._fetched_at = 0.0

    def fetch_catalog(self) -> Optional[list]:
        """Fetch the raw catalog. Returns None on any failure."""
        try:
            with urllib.request.urlopen(self.url, timeout=self.timeout) as resp:
                data = json.loads(resp.read().decode("utf-8"))
        except (urllib.error.URLError, json.JSONDecodeError, TimeoutError, OSError, UnicodeDecodeError) as e:
            logger.warning(f"Failed to fetch suggestions from {self.url}: {e}")
            return None
        if not isinstance(data, list):
            logger.warning(f"Unexpected suggestions payload from {self.url}: {type(data).__name__}")
            return None
        return data

    def _is_stale(self) -> bool:
        return self._catalog is None or self._clock() - self._fetched_at > self.stale_time

    def catalog(self) -> list[SuggestionItem]:
        """Cached catalog, refetched when stale. Empty if it cannot be fetched."""
        if self._is_stale():
            records = self.fetch_catalog()
            if records is None:
                # Keep serving an older catalog rather than nothing
                return self._catalog or []
            self._catalog = parse_catalog(records)
            self._fetched_at = self._clock()
        return self._catalog

    def search(self, query: str) -> list[SuggestionItem]:
        if not query.strip():
            return []
        return filter_suggestions(self.catalog(), query)
