from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

from dreamcpp.errors import PROCESS, Failure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecResult:
    argv: list[str]
    exit_code: int
    output: str  # stdout and stderr, interleaved

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


def format_argv(argv: list[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def _launch_failure(argv: list[str], exc: OSError) -> Failure:
    msg = f"Failed to launch {argv[0]}: {exc}"
    logger.error("%s", msg)
    return Failure(PROCESS, msg, {"argv": list(argv), "error": str(exc)})


def exec_capture(argv: list[str], *, cwd: Path | None = None) -> ExecResult | Failure:
    """Run `argv` to completion, capturing combined output and the exit code."""
    if not argv:
        raise ValueError("argv must be non-empty")
    logger.debug("+ (%s) %s", cwd or ".", format_argv(argv))
    try:
        proc = subprocess.run(
            argv,
            cwd=str(cwd) if cwd is not None else None,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
            check=False,
        )
    except OSError as e:
        return _launch_failure(argv, e)
    return ExecResult(argv=list(argv), exit_code=proc.returncode, output=proc.stdout or "")


def exec_stream(argv: list[str], *, cwd: Path | None = None) -> int | Failure:
    """Run `argv` with inherited stdio and return its exit code."""
    if not argv:
        raise ValueError("argv must be non-empty")
    logger.debug("+ (%s) %s", cwd or ".", format_argv(argv))
    try:
        proc = subprocess.run(argv, cwd=str(cwd) if cwd is not None else None, check=False)
    except OSError as e:
        return _launch_failure(argv, e)
    return proc.returncode


def git_available(git: str = "git") -> bool:
    if shutil.which(git) is None:
        return False
    result = exec_capture([git, "--version"])
    return isinstance(result, ExecResult) and result.ok
