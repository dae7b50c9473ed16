from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

DEFAULT_INDEX_URL = (
    "https://raw.githubusercontent.com/frinkifail/dreamcpp/refs/heads/main/index/dcpp%3Acore.toml"
)

CONFIG_ENV_VAR = "DREAMCPP_CONFIG"
INDEX_URL_ENV_VAR = "DREAMCPP_INDEX_URL"

_ALLOWED_KEYS: frozenset[str] = frozenset({"index_url", "local_index_dirs"})


class SettingsError(ValueError):
    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code or "invalid_settings"
        self.details = details or {}


def default_local_index_dirs(home: Path | None = None) -> tuple[Path, ...]:
    base = home if home is not None else Path.home()
    return (base / ".dreamcpp" / "index", Path("..") / "index")


@dataclass(frozen=True)
class Settings:
    index_url: str = DEFAULT_INDEX_URL
    local_index_dirs: tuple[Path, ...] = ()


def default_settings_path(env: Mapping[str, str] | None = None) -> Path:
    env = os.environ if env is None else env
    raw = env.get(CONFIG_ENV_VAR, "").strip()
    if raw:
        return Path(raw).expanduser()
    return Path.home() / ".dreamcpp" / "config.yaml"


def _load_yaml_mapping(path: Path) -> dict[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise SettingsError(
            f"Failed to read {path}: {e}", code="settings_read_failed", details={"path": str(path)}
        ) from e
    except yaml.YAMLError as e:
        raise SettingsError(
            f"Failed to parse YAML in {path}: {e}",
            code="settings_parse_failed",
            details={"path": str(path)},
        ) from e

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise SettingsError(
            f"Expected a YAML mapping in {path}, got {type(raw).__name__}.",
            code="settings_not_mapping",
            details={"path": str(path)},
        )
    return raw


def _parse_dir_list(value: Any, *, path: Path) -> tuple[Path, ...]:
    if value is None:
        return ()
    if not isinstance(value, list):
        raise SettingsError(f"Expected list for local_index_dirs in {path}.")
    out: list[Path] = []
    for idx, item in enumerate(value):
        if not isinstance(item, str) or not item.strip():
            raise SettingsError(f"Expected non-empty string for local_index_dirs[{idx}] in {path}.")
        out.append(Path(item).expanduser())
    return tuple(out)


def load_settings(
    path: Path | None = None, *, env: Mapping[str, str] | None = None
) -> Settings:
    env = os.environ if env is None else env
    settings_path = path if path is not None else default_settings_path(env)

    data: dict[str, Any] = {}
    if settings_path.exists():
        data = _load_yaml_mapping(settings_path)

    unknown = set(data) - _ALLOWED_KEYS
    if unknown:
        raise SettingsError(
            f"Unknown keys in {settings_path}: {', '.join(sorted(unknown))}. "
            f"Allowed: {', '.join(sorted(_ALLOWED_KEYS))}.",
            code="settings_unknown_keys",
            details={"path": str(settings_path), "unknown": sorted(unknown)},
        )

    index_url = DEFAULT_INDEX_URL
    raw_url = data.get("index_url")
    if raw_url is not None:
        if not isinstance(raw_url, str) or not raw_url.strip():
            raise SettingsError(f"index_url must be a non-empty string in {settings_path}.")
        index_url = raw_url.strip()

    env_url = env.get(INDEX_URL_ENV_VAR, "").strip()
    if env_url:
        index_url = env_url

    return Settings(
        index_url=index_url,
        local_index_dirs=_parse_dir_list(data.get("local_index_dirs"), path=settings_path),
    )
