from __future__ import annotations

from pathlib import Path

import httpx

from dreamcpp.config import Settings
from dreamcpp.errors import NETWORK, NOT_FOUND, Failure
from dreamcpp.index import IndexEntry, IndexSnapshot, RemoteIndexFetcher, parse_index
from dreamcpp.resolver import (
    LocalIndexStrategy,
    RemoteIndexStrategy,
    Resolver,
    default_resolver,
    lookup,
)

CORE_INDEX = '[core]\nsource_location = "https://example/core.git"\naliases = ["c"]\n'


def _remote_resolver(body: str, *, status: int = 200, calls: list[str] | None = None) -> Resolver:
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(str(request.url))
        return httpx.Response(status, text=body)

    fetcher = RemoteIndexFetcher(
        "https://index.test/core.toml", transport=httpx.MockTransport(handler)
    )
    return Resolver([RemoteIndexStrategy(fetcher)])


def _snapshot(body: str) -> IndexSnapshot:
    snapshot = parse_index(body)
    assert isinstance(snapshot, IndexSnapshot)
    return snapshot


def test_resolve_by_alias_and_not_found() -> None:
    resolver = _remote_resolver(CORE_INDEX)

    entry = resolver.resolve("c")
    assert isinstance(entry, IndexEntry)
    assert entry.key == "core"
    assert entry.source_location == "https://example/core.git"

    missing = resolver.resolve("missing")
    assert isinstance(missing, Failure)
    assert missing.kind == NOT_FOUND
    assert missing.details["name"] == "missing"


def test_alias_without_matching_key() -> None:
    snapshot = _snapshot(
        '[lib]\nsource_location = "https://example/lib.git"\naliases = ["a", "b"]\n'
    )
    entry = lookup(snapshot, "a")
    assert entry is not None
    assert entry.key == "lib"
    assert lookup(snapshot, "b") == entry


def test_exact_key_wins_over_earlier_alias() -> None:
    snapshot = _snapshot(
        "\n".join(
            [
                "[first]",
                'source_location = "https://example/first.git"',
                'aliases = ["second"]',
                "[second]",
                'source_location = "https://example/second.git"',
                "",
            ]
        )
    )
    entry = lookup(snapshot, "second")
    assert entry is not None
    assert entry.source_location == "https://example/second.git"


def test_first_alias_hit_in_document_order_wins() -> None:
    snapshot = _snapshot(
        "\n".join(
            [
                "[one]",
                'source_location = "https://example/one.git"',
                'aliases = ["shared"]',
                "[two]",
                'source_location = "https://example/two.git"',
                'aliases = ["shared"]',
                "",
            ]
        )
    )
    entry = lookup(snapshot, "shared")
    assert entry is not None
    assert entry.key == "one"


def test_matching_is_exact_and_case_sensitive() -> None:
    snapshot = _snapshot(CORE_INDEX)
    assert lookup(snapshot, "Core") is None
    assert lookup(snapshot, "C") is None
    assert lookup(snapshot, "cor") is None


def test_lookup_is_deterministic_for_one_snapshot() -> None:
    snapshot = _snapshot(CORE_INDEX)
    assert lookup(snapshot, "c") == lookup(snapshot, "c")
    assert lookup(snapshot, "missing") == lookup(snapshot, "missing")


def test_every_resolve_refetches_the_index() -> None:
    calls: list[str] = []
    resolver = _remote_resolver(CORE_INDEX, calls=calls)
    first = resolver.resolve("core")
    second = resolver.resolve("core")
    assert first == second
    assert len(calls) == 2


def test_fetch_failure_is_reported_instead_of_not_found() -> None:
    resolver = _remote_resolver("", status=503)
    result = resolver.resolve("core")
    assert isinstance(result, Failure)
    assert result.kind == NETWORK
    assert result.details["name"] == "core"


def test_local_index_stage_never_matches(tmp_path: Path) -> None:
    local_dir = tmp_path / "index"
    local_dir.mkdir()
    (local_dir / "core.toml").write_text(CORE_INDEX, encoding="utf-8")

    local = LocalIndexStrategy([local_dir, tmp_path / "absent"])
    assert local.resolve("core") is None

    resolver = Resolver([local])
    result = resolver.resolve("core")
    assert isinstance(result, Failure)
    assert result.kind == NOT_FOUND
    assert result.details["checked"] == ["local index"]


def test_chain_falls_through_local_stage_to_remote(tmp_path: Path) -> None:
    fetcher = RemoteIndexFetcher(
        "https://index.test/core.toml",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, text=CORE_INDEX)),
    )
    resolver = Resolver([LocalIndexStrategy([tmp_path]), RemoteIndexStrategy(fetcher)])
    entry = resolver.resolve("c")
    assert isinstance(entry, IndexEntry)
    assert entry.key == "core"


def test_default_resolver_uses_configured_index(tmp_path: Path) -> None:
    settings = Settings(index_url="https://mirror.test/index.toml", local_index_dirs=(tmp_path,))
    resolver = default_resolver(settings)

    assert isinstance(resolver.strategies[0], LocalIndexStrategy)
    assert tmp_path in resolver.strategies[0].search_dirs
    remote = resolver.strategies[-1]
    assert isinstance(remote, RemoteIndexStrategy)
    assert remote.fetcher.url == "https://mirror.test/index.toml"
