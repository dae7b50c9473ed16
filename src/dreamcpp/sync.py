from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from dreamcpp.errors import FILESYSTEM, PROCESS, Failure
from dreamcpp.index import IndexEntry
from dreamcpp.manifest import Dependency
from dreamcpp.pathing import ProjectLayout, is_valid_name
from dreamcpp.process import ExecResult, exec_capture, git_available
from dreamcpp.project import ProjectContext
from dreamcpp.resolver import Resolver

logger = logging.getLogger(__name__)

SKIPPED_SYSTEM = "skipped_system"
SKIPPED_PRESENT = "skipped_present"
CLONED = "cloned"
FAILED = "failed"


@dataclass(frozen=True)
class DependencyOutcome:
    name: str
    status: str  # "skipped_system" | "skipped_present" | "cloned" | "failed"
    failure: Failure | None = None
    warning: str | None = None

    @property
    def ok(self) -> bool:
        return self.status != FAILED


@dataclass(frozen=True)
class SyncReport:
    outcomes: tuple[DependencyOutcome, ...]

    @property
    def ok(self) -> bool:
        return all(o.ok for o in self.outcomes)

    @property
    def failed(self) -> list[DependencyOutcome]:
        return [o for o in self.outcomes if not o.ok]


def _git_missing() -> Failure:
    logger.error("You don't have git installed.")
    return Failure(PROCESS, "git is not available on PATH", {"tool": "git"})


def _invalid_name(name: str) -> Failure:
    logger.error("Invalid dependency name: %r", name)
    return Failure(FILESYSTEM, f"Invalid dependency name: {name!r}", {"name": name})


def clone_dependency(entry: IndexEntry, dest: Path, *, git: str = "git") -> Failure | None:
    argv = [git, "clone"]
    if entry.branch:
        argv += ["--branch", entry.branch]
    argv += [entry.source_location, str(dest)]

    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error("Failed to create '%s': %s", dest.parent, e)
        return Failure(
            FILESYSTEM, f"Failed to create {dest.parent}: {e}", {"path": str(dest.parent)}
        )

    result = exec_capture(argv)
    if isinstance(result, ExecResult) and result.ok:
        return None

    shutil.rmtree(dest, ignore_errors=True)
    if isinstance(result, Failure):
        return result
    output = result.output.strip()
    logger.error("Failed to clone dependency: %s", entry.key)
    logger.error("Git output: %s", output)
    return Failure(
        PROCESS,
        f"git clone failed (exit {result.exit_code}): {output or entry.source_location}",
        {"argv": result.argv, "exit_code": result.exit_code, "output": result.output},
    )


def relocate_headers(layout: ProjectLayout, name: str) -> str | None:
    """Move `<dep>/include/<name>` into build/includes; returns a warning message on failure."""
    src = layout.header_include_dir(name)
    dest = layout.shared_include_dir(name)
    try:
        layout.includes_dir.mkdir(parents=True, exist_ok=True)
        src.rename(dest)
    except OSError as e:
        msg = f"Couldn't move header-only include for '{name}': {e}"
        logger.warning("%s", msg)
        return msg
    logger.debug("Moved %s -> %s", src, dest)
    return None


def sync_dependency(
    layout: ProjectLayout, dep: Dependency, resolver: Resolver, *, git: str = "git"
) -> DependencyOutcome:
    if dep.system:
        logger.info("Skipping '%s', is a system library.", dep.name)
        return DependencyOutcome(dep.name, SKIPPED_SYSTEM)

    if not is_valid_name(dep.name):
        return DependencyOutcome(dep.name, FAILED, failure=_invalid_name(dep.name))

    dest = layout.dependency_dir(dep.name)
    if dest.exists():
        logger.info("Skipping '%s' (already exists)", dep.name)
        return DependencyOutcome(dep.name, SKIPPED_PRESENT)

    entry = resolver.resolve(dep.name)
    if isinstance(entry, Failure):
        logger.warning("Failed to resolve dependency: %s", dep.name)
        return DependencyOutcome(dep.name, FAILED, failure=entry)

    logger.info("Cloning '%s'...", dep.name)
    failure = clone_dependency(entry, dest, git=git)
    if failure is not None:
        return DependencyOutcome(dep.name, FAILED, failure=failure)

    warning = relocate_headers(layout, dep.name) if entry.header_only else None
    logger.info("Successfully cloned: %s", dep.name)
    return DependencyOutcome(dep.name, CLONED, warning=warning)


def sync(ctx: ProjectContext, resolver: Resolver, *, git: str = "git") -> SyncReport | Failure:
    """
    Materialize every non-system dependency under build/deps, one at a time.

    A dependency directory that already exists is never touched again. A dependency
    that fails to resolve or clone is recorded and the remaining ones are still
    attempted.
    """
    logger.info("Syncing project dependencies...")
    deps = ctx.manifest.dependencies
    if not deps:
        logger.info("No dependencies to sync")
        return SyncReport(outcomes=())

    if any(not d.system for d in deps):
        if not git_available(git):
            return _git_missing()
        layout = ctx.layout
        for path in (layout.deps_dir, layout.includes_dir):
            try:
                path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                logger.error("Failed to create '%s': %s", path, e)
                return Failure(FILESYSTEM, f"Failed to create {path}: {e}", {"path": str(path)})

    # TODO: dependencies are independent once resolved; clone them concurrently.
    outcomes = tuple(sync_dependency(ctx.layout, dep, resolver, git=git) for dep in deps)
    report = SyncReport(outcomes=outcomes)
    if report.ok:
        logger.info("All dependencies synced successfully")
    else:
        names = ", ".join(o.name for o in report.failed)
        logger.warning("Some dependencies failed to sync: %s", names)
    return report


def add(
    ctx: ProjectContext,
    name: str,
    resolver: Resolver,
    *,
    system: bool = False,
    git: str = "git",
) -> Failure | None:
    """Record `name` in the manifest once it resolves; the resolved location is not stored."""
    logger.info("Adding dependency: %s", name)
    if ctx.manifest.find_dependency(name) is not None:
        logger.warning("Dependency '%s' already exists", name)
        return None

    if not is_valid_name(name):
        return _invalid_name(name)

    if not system:
        if not git_available(git):
            return _git_missing()
        entry = resolver.resolve(name)
        if isinstance(entry, Failure):
            logger.error("Dependency not found: %s", name)
            checked = entry.details.get("checked")
            if checked:
                logger.info("Checked: [%s]", ", ".join(checked))
            return entry

    ctx.manifest.dependencies.append(Dependency(name=name, system=system))
    failure = ctx.save()
    if failure is not None:
        ctx.manifest.dependencies.pop()
        return failure

    logger.info("Added dependency '%s' to project", name)
    if not system:
        logger.info("Run 'dreamcpp sync' to install dependencies")
    return None
