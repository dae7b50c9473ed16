from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from dreamcpp.errors import FILESYSTEM, Failure
from dreamcpp.manifest import MANIFEST_FILENAME, Manifest, load_manifest, save_manifest
from dreamcpp.pathing import (
    BUILD_DIRNAME,
    INCLUDES_REL,
    LIB_REL,
    SRC_DIRNAME,
    ProjectLayout,
    is_valid_name,
)

logger = logging.getLogger(__name__)

STARTER_MAIN_CPP = """\
#include <iostream>

int main() {
    std::cout << "Hello from dreamcpp!" << std::endl;
    return 0;
}
"""


@dataclass
class ProjectContext:
    """Explicit project state handed to every operation instead of relying on the cwd."""

    root: Path
    manifest_path: Path
    manifest: Manifest

    @property
    def layout(self) -> ProjectLayout:
        return ProjectLayout(self.root)

    def save(self) -> Failure | None:
        return save_manifest(self.manifest, self.manifest_path)


def open_project(manifest_path: Path) -> ProjectContext | Failure:
    manifest_path = manifest_path.expanduser().resolve()
    if not manifest_path.is_file():
        logger.error("This... isn't a dreamcpp project (no %s).", manifest_path)
        return Failure(
            FILESYSTEM,
            f"Manifest not found: {manifest_path}",
            {"path": str(manifest_path)},
        )
    manifest = load_manifest(manifest_path)
    if isinstance(manifest, Failure):
        return manifest
    return ProjectContext(root=manifest_path.parent, manifest_path=manifest_path, manifest=manifest)


def create_project(
    parent: Path, name: str, *, manifest_filename: str = MANIFEST_FILENAME
) -> ProjectContext | Failure:
    """Scaffold `<parent>/<name>`: standard layout, default manifest, starter source."""
    if not is_valid_name(name):
        logger.error("Invalid project name: %r", name)
        return Failure(FILESYSTEM, f"Invalid project name: {name!r}", {"name": name})

    root = parent / name
    try:
        root.mkdir(parents=False, exist_ok=False)
    except OSError as e:
        logger.error("Failed to create project directory '%s': %s", root, e)
        return Failure(FILESYSTEM, f"Failed to create {root}: {e}", {"path": str(root)})

    for rel in (SRC_DIRNAME, BUILD_DIRNAME, INCLUDES_REL, LIB_REL):
        try:
            (root / rel).mkdir(parents=True, exist_ok=False)
        except OSError as e:
            logger.warning("Something went wrong creating '%s': %s", root / rel, e)

    ctx = ProjectContext(
        root=root, manifest_path=root / manifest_filename, manifest=Manifest(name=name)
    )
    failure = ctx.save()
    if failure is not None:
        return failure

    main_cpp = ctx.layout.src_dir / "main.cpp"
    try:
        main_cpp.write_text(STARTER_MAIN_CPP, encoding="utf-8")
    except OSError as e:
        logger.warning("Couldn't write starter source '%s': %s", main_cpp, e)

    logger.info("Project '%s' created successfully!", name)
    return ctx
