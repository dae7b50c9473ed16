from __future__ import annotations

import logging
import tomllib
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

import httpx

from dreamcpp.config import DEFAULT_INDEX_URL
from dreamcpp.errors import NETWORK, PARSE, Failure

logger = logging.getLogger(__name__)

# The published core index predates the long key names; both spellings are read.
_SOURCE_KEYS = ("source_location", "git")
_HEADER_ONLY_KEYS = ("header_only", "header")


@dataclass(frozen=True)
class IndexEntry:
    key: str
    source_location: str
    aliases: tuple[str, ...] = ()
    branch: str | None = None
    header_only: bool = False


@dataclass(frozen=True)
class IndexSnapshot:
    """One fetched index document; `entries` keeps document order."""

    entries: tuple[IndexEntry, ...]

    def __iter__(self) -> Iterator[IndexEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def get(self, key: str) -> IndexEntry | None:
        for entry in self.entries:
            if entry.key == key:
                return entry
        return None


def _first_of(table: dict[str, Any], keys: tuple[str, ...], kind: type) -> Any:
    for key in keys:
        value = table.get(key)
        if isinstance(value, kind) and value != "":
            return value
    return None


def _parse_entry(key: str, value: Any) -> IndexEntry | None:
    if not isinstance(value, dict):
        return None
    source = _first_of(value, _SOURCE_KEYS, str)
    if not source:
        return None

    raw_aliases = value.get("aliases")
    aliases: tuple[str, ...] = ()
    if isinstance(raw_aliases, list):
        aliases = tuple(a for a in raw_aliases if isinstance(a, str))

    branch = value.get("branch")
    header_only = _first_of(value, _HEADER_ONLY_KEYS, bool)
    return IndexEntry(
        key=key,
        source_location=source,
        aliases=aliases,
        branch=branch if isinstance(branch, str) else None,
        header_only=bool(header_only),
    )


def parse_index(text: str) -> IndexSnapshot | Failure:
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        logger.error("Couldn't parse repository index.")
        logger.error("TOML parse error: %s", e)
        return Failure(PARSE, f"Failed to parse repository index: {e}", {"error": str(e)})

    entries: list[IndexEntry] = []
    for key, value in data.items():
        entry = _parse_entry(key, value)
        if entry is None:
            logger.debug("Dropping index entry without a source location: %s", key)
            continue
        entries.append(entry)
    return IndexSnapshot(entries=tuple(entries))


class RemoteIndexFetcher:
    def __init__(
        self,
        url: str = DEFAULT_INDEX_URL,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.url = url
        self._transport = transport

    def fetch(self) -> tuple[int, str] | Failure:
        try:
            with httpx.Client(
                transport=self._transport, follow_redirects=True, timeout=None
            ) as client:
                response = client.get(self.url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("Failed to fetch remote index: %s", e)
            return Failure(NETWORK, f"Failed to fetch {self.url}: {e}", {"url": self.url})

        if not response.is_success:
            logger.warning("Failed to fetch remote index (HTTP %d)", response.status_code)
            return Failure(
                NETWORK,
                f"Failed to fetch {self.url} (HTTP {response.status_code})",
                {"url": self.url, "status": response.status_code},
            )
        return response.status_code, response.text

    def load(self) -> IndexSnapshot | Failure:
        fetched = self.fetch()
        if isinstance(fetched, Failure):
            return fetched
        _status, body = fetched
        return parse_index(body)
