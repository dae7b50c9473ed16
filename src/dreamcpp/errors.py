from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

PARSE = "parse"
NOT_FOUND = "not_found"
NETWORK = "network"
FILESYSTEM = "filesystem"
PROCESS = "process"

FAILURE_KINDS: frozenset[str] = frozenset({PARSE, NOT_FOUND, NETWORK, FILESYSTEM, PROCESS})


@dataclass(frozen=True)
class Failure:
    """
    Result value for a fallible operation.

    Components return a `Failure` instead of raising, so callers decide whether a
    failure is fatal (the command aborts) or local (one dependency in a batch).
    """

    kind: str  # "parse" | "not_found" | "network" | "filesystem" | "process"
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.kind not in FAILURE_KINDS:
            raise ValueError(f"Unknown failure kind: {self.kind!r}")

    def __str__(self) -> str:
        return self.message
