from __future__ import annotations

import logging
import subprocess
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

from dreamcpp import build as build_ops
from dreamcpp.cli import build_parser, main
from dreamcpp.manifest import Dependency, Manifest, load_manifest, save_manifest


@pytest.fixture(autouse=True)
def _isolated(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.setenv("DREAMCPP_CONFIG", str(tmp_path / "no-settings.yaml"))
    monkeypatch.delenv("DREAMCPP_INDEX_URL", raising=False)
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def _exit_code(argv: list[str]) -> int:
    with pytest.raises(SystemExit) as excinfo:
        main(argv)
    code = excinfo.value.code
    assert isinstance(code, int)
    return code


def _write_project(root: Path, deps: list[Dependency], *, filename: str = "dreamcpp.toml") -> Path:
    path = root / filename
    assert save_manifest(Manifest(name=root.name, dependencies=deps), path) is None
    return path


def test_parser_defaults() -> None:
    args = build_parser().parse_args(["add", "fmt"])
    assert args.config == "dreamcpp.toml"
    assert args.settings is None
    assert args.system is False
    assert args.verbose is False


def test_parser_add_system_and_overrides() -> None:
    args = build_parser().parse_args(
        ["-v", "-c", "other.toml", "--settings", "s.yaml", "add", "m", "--system"]
    )
    assert args.config == "other.toml"
    assert args.settings == Path("s.yaml")
    assert args.system is True
    assert args.verbose is True


def test_new_scaffolds_project(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.chdir(tmp_path)
    assert _exit_code(["new", "demo"]) == 0

    root = tmp_path / "demo"
    assert Path(capsys.readouterr().out.strip()).resolve() == root.resolve()
    for rel in ("src", "build", "build/includes", "build/lib"):
        assert (root / rel).is_dir()
    assert (root / "src" / "main.cpp").is_file()

    manifest = load_manifest(root / "dreamcpp.toml")
    assert isinstance(manifest, Manifest)
    assert manifest == Manifest(name="demo")


def test_new_refuses_existing_directory(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    assert _exit_code(["new", "demo"]) == 0
    manifest_text = (tmp_path / "demo" / "dreamcpp.toml").read_text(encoding="utf-8")

    assert _exit_code(["new", "demo"]) == 1
    assert (tmp_path / "demo" / "dreamcpp.toml").read_text(encoding="utf-8") == manifest_text


def test_new_honours_manifest_filename(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    assert _exit_code(["-c", "project.toml", "new", "demo"]) == 0
    assert (tmp_path / "demo" / "project.toml").is_file()
    assert not (tmp_path / "demo" / "dreamcpp.toml").exists()


def test_commands_outside_a_project_fail(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    for cmd in ("build", "run", "sync"):
        assert _exit_code([cmd]) == 1
    assert _exit_code(["add", "fmt"]) == 1


def test_add_existing_dependency_is_success(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.chdir(tmp_path)
    _write_project(tmp_path, [Dependency(name="fmt")])
    assert _exit_code(["add", "fmt"]) == 0


def test_add_system_dependency_through_config_path(tmp_path: Path) -> None:
    project = tmp_path / "proj"
    path = _write_project(project, [], filename="custom.toml")

    assert _exit_code(["-c", str(path), "add", "pthread", "--system"]) == 0
    manifest = load_manifest(path)
    assert isinstance(manifest, Manifest)
    assert manifest.dependencies == [Dependency(name="pthread", system=True)]


def test_sync_system_only_project_is_success(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.chdir(tmp_path)
    _write_project(tmp_path, [Dependency(name="m", system=True)])
    assert _exit_code(["sync"]) == 0
    assert not (tmp_path / "build" / "deps").exists()


def test_invalid_settings_file_fails_add(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    _write_project(tmp_path, [])
    settings = tmp_path / "settings.yaml"
    settings.write_text("bogus: 1\n", encoding="utf-8")

    assert _exit_code(["--settings", str(settings), "add", "fmt"]) == 1
    manifest = load_manifest(tmp_path / "dreamcpp.toml")
    assert isinstance(manifest, Manifest)
    assert manifest.dependencies == []


def test_help_smoke() -> None:
    proc = subprocess.run(
        [sys.executable, "-m", "dreamcpp", "--help"],
        capture_output=True,
        text=True,
        check=False,
    )
    assert proc.returncode == 0
    assert "dreamcpp" in proc.stdout


@pytest.mark.parametrize(("returncode", "expected"), [(3, 3), (0, 0), (-11, 139), (-9, 137)])
def test_run_exit_status_follows_the_program(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, returncode: int, expected: int
) -> None:
    monkeypatch.chdir(tmp_path)
    _write_project(tmp_path, [])
    monkeypatch.setattr(build_ops, "run", lambda ctx: returncode)
    assert _exit_code(["run"]) == expected
