from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from dreamcpp.config import Settings, default_local_index_dirs
from dreamcpp.errors import NOT_FOUND, Failure
from dreamcpp.index import IndexEntry, IndexSnapshot, RemoteIndexFetcher

logger = logging.getLogger(__name__)


def lookup(snapshot: IndexSnapshot, name: str) -> IndexEntry | None:
    """Exact key match first, then the first entry in document order listing `name` as an alias."""
    direct = snapshot.get(name)
    if direct is not None:
        return direct
    for entry in snapshot:
        if name in entry.aliases:
            return entry
    return None


class ResolutionStrategy(Protocol):
    label: str

    def resolve(self, name: str) -> IndexEntry | Failure | None:
        """Return an entry, a Failure if this source is unusable, or None on a plain miss."""
        ...


class LocalIndexStrategy:
    label = "local index"

    def __init__(self, search_dirs: Sequence[Path]) -> None:
        self.search_dirs = tuple(search_dirs)

    def resolve(self, name: str) -> IndexEntry | Failure | None:
        # Local index documents have no format yet; this stage only reports where it looked.
        for path in self.search_dirs:
            if path.exists():
                logger.debug("Local index at %s present but not searched for '%s'", path, name)
        return None


class RemoteIndexStrategy:
    def __init__(self, fetcher: RemoteIndexFetcher) -> None:
        self.fetcher = fetcher
        self.label = fetcher.url

    def resolve(self, name: str) -> IndexEntry | Failure | None:
        snapshot = self.fetcher.load()
        if isinstance(snapshot, Failure):
            return snapshot
        return lookup(snapshot, name)


class Resolver:
    def __init__(self, strategies: Sequence[ResolutionStrategy]) -> None:
        self.strategies = tuple(strategies)

    def resolve(self, name: str) -> IndexEntry | Failure:
        failures: list[Failure] = []
        for strategy in self.strategies:
            result = strategy.resolve(name)
            if isinstance(result, IndexEntry):
                logger.debug(
                    "Resolved '%s' via %s -> %s", name, strategy.label, result.source_location
                )
                return result
            if isinstance(result, Failure):
                failures.append(result)

        checked = [s.label for s in self.strategies]
        if failures:
            # A fetch/parse failure outranks a plain miss.
            last = failures[-1]
            details = {**last.details, "name": name, "checked": checked}
            return Failure(last.kind, last.message, details)
        return Failure(
            NOT_FOUND,
            f"Dependency not found: {name}",
            {"name": name, "checked": checked},
        )


def default_resolver(settings: Settings) -> Resolver:
    local_dirs = (*default_local_index_dirs(), *settings.local_index_dirs)
    return Resolver(
        [
            LocalIndexStrategy(local_dirs),
            RemoteIndexStrategy(RemoteIndexFetcher(settings.index_url)),
        ]
    )
