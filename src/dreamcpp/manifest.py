from __future__ import annotations

import logging
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from dreamcpp.errors import FILESYSTEM, PARSE, Failure

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "dreamcpp.toml"

DEFAULT_VERSION = "1.0.0"
DEFAULT_STANDARD = "c++20"
DEFAULT_COMPILER = "clang++"
DEFAULT_DEPENDENCY_VERSION = "latest"


@dataclass
class Dependency:
    name: str
    version: str = DEFAULT_DEPENDENCY_VERSION
    system: bool = False  # linked with -l<name> instead of cloned


@dataclass
class Manifest:
    name: str
    version: str = DEFAULT_VERSION
    standard: str = DEFAULT_STANDARD
    preferred_compiler: str = DEFAULT_COMPILER
    includes: list[str] = field(default_factory=list)
    dependencies: list[Dependency] = field(default_factory=list)

    def find_dependency(self, name: str) -> Dependency | None:
        for dep in self.dependencies:
            if dep.name == name:
                return dep
        return None

    def system_libraries(self) -> list[str]:
        return [dep.name for dep in self.dependencies if dep.system]


def _str_or(value: Any, default: str) -> str:
    if isinstance(value, str):
        return value
    return default


def _parse_dependency(raw: Any) -> Dependency | None:
    if not isinstance(raw, dict):
        return None
    name = raw.get("name")
    if not isinstance(name, str) or not name.strip():
        return None
    system = raw.get("system", False)
    return Dependency(
        name=name,
        version=_str_or(raw.get("version"), DEFAULT_DEPENDENCY_VERSION),
        system=system if isinstance(system, bool) else False,
    )


def manifest_from_dict(data: dict[str, Any], *, default_name: str) -> Manifest:
    """Build a Manifest from a parsed TOML table, keeping defaults for absent or mistyped keys."""
    manifest = Manifest(name=_str_or(data.get("name"), default_name) or default_name)
    manifest.version = _str_or(data.get("version"), manifest.version)
    manifest.standard = _str_or(data.get("standard"), manifest.standard)
    manifest.preferred_compiler = _str_or(
        data.get("preferred_compiler"), manifest.preferred_compiler
    )

    includes = data.get("includes")
    if isinstance(includes, list):
        manifest.includes = [item for item in includes if isinstance(item, str)]

    deps = data.get("dependencies")
    if isinstance(deps, list):
        for raw in deps:
            dep = _parse_dependency(raw)
            if dep is None:
                logger.debug("Ignoring dependency entry without a name: %r", raw)
                continue
            manifest.dependencies.append(dep)
    return manifest


def parse_manifest(text: str, *, default_name: str) -> Manifest | Failure:
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        return Failure(PARSE, f"TOML parse error: {e}", {"error": str(e)})
    return manifest_from_dict(data, default_name=default_name)


def load_manifest(path: Path) -> Manifest | Failure:
    default_name = path.resolve().parent.name
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        logger.error("Couldn't read manifest '%s': %s", path, e)
        return Failure(FILESYSTEM, f"Failed to read {path}: {e}", {"path": str(path)})

    result = parse_manifest(text, default_name=default_name)
    if isinstance(result, Failure):
        logger.error("Couldn't parse manifest '%s'.", path)
        logger.error("%s", result.message)
        return Failure(PARSE, f"Failed to parse {path}: {result.message}", {"path": str(path)})
    return result


_TOML_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\b": "\\b",
    "\t": "\\t",
    "\n": "\\n",
    "\f": "\\f",
    "\r": "\\r",
}


def _toml_quote_string(value: str) -> str:
    out: list[str] = []
    for ch in value:
        escaped = _TOML_ESCAPES.get(ch)
        if escaped is None and (ch < " " or ch == "\x7f"):
            # Raw control characters are illegal in TOML basic strings.
            escaped = f"\\u{ord(ch):04x}"
        out.append(escaped if escaped is not None else ch)
    return '"' + "".join(out) + '"'


_TOML_BARE_KEY_RE = re.compile(r"^[a-zA-Z0-9_-]+$")


def _toml_format_key(key: str) -> str:
    if _TOML_BARE_KEY_RE.match(key):
        return key
    return _toml_quote_string(key)


def _toml_format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return _toml_quote_string(value)
    if isinstance(value, list):
        return "[" + ", ".join(_toml_format_value(v) for v in value) + "]"
    raise TypeError(f"Unsupported TOML value type: {type(value).__name__}")


def render_manifest(manifest: Manifest) -> str:
    lines: list[str] = []
    for key in ("name", "version", "standard", "preferred_compiler", "includes"):
        lines.append(f"{_toml_format_key(key)} = {_toml_format_value(getattr(manifest, key))}")
    lines.append("")

    for dep in manifest.dependencies:
        lines.append("[[dependencies]]")
        lines.append(f"name = {_toml_format_value(dep.name)}")
        lines.append(f"version = {_toml_format_value(dep.version)}")
        lines.append(f"system = {_toml_format_value(dep.system)}")
        lines.append("")

    return "\n".join(lines).rstrip() + "\n"


def save_manifest(manifest: Manifest, path: Path) -> Failure | None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(render_manifest(manifest), encoding="utf-8")
    except OSError as e:
        logger.error("Failed to write manifest '%s': %s", path, e)
        return Failure(FILESYSTEM, f"Failed to write {path}: {e}", {"path": str(path)})
    logger.debug("Wrote manifest '%s'.", path)
    return None
