from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

SRC_DIRNAME = "src"
BUILD_DIRNAME = "build"

# Relative to the project root; the compiler runs with the root as cwd.
INCLUDES_REL = f"{BUILD_DIRNAME}/includes"
LIB_REL = f"{BUILD_DIRNAME}/lib"
DEPS_REL = f"{BUILD_DIRNAME}/deps"

NATIVE_SOURCE_SUFFIXES: frozenset[str] = frozenset({".cpp", ".cc", ".cxx", ".c++"})


@dataclass(frozen=True)
class ProjectLayout:
    root: Path

    @property
    def src_dir(self) -> Path:
        return self.root / SRC_DIRNAME

    @property
    def build_dir(self) -> Path:
        return self.root / BUILD_DIRNAME

    @property
    def includes_dir(self) -> Path:
        return self.root / INCLUDES_REL

    @property
    def lib_dir(self) -> Path:
        return self.root / LIB_REL

    @property
    def deps_dir(self) -> Path:
        return self.root / DEPS_REL

    def dependency_dir(self, name: str) -> Path:
        return self.deps_dir / name

    def header_include_dir(self, name: str) -> Path:
        """Where a cloned header-only dependency keeps its public headers."""
        return self.dependency_dir(name) / "include" / name

    def shared_include_dir(self, name: str) -> Path:
        return self.includes_dir / name

    def source_files(self) -> list[Path]:
        if not self.src_dir.is_dir():
            return []
        return sorted(
            p
            for p in self.src_dir.iterdir()
            if p.is_file() and p.suffix.lower() in NATIVE_SOURCE_SUFFIXES
        )


def binary_rel(project_name: str) -> str:
    return f"{BUILD_DIRNAME}/{project_name}"


_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._+-]*$")


def is_valid_name(value: str) -> bool:
    """Project and dependency names become single path components under the project root."""
    return bool(_NAME_RE.match(value))
