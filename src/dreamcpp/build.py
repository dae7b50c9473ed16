from __future__ import annotations

import logging

from dreamcpp.errors import FILESYSTEM, PROCESS, Failure
from dreamcpp.manifest import Manifest
from dreamcpp.pathing import INCLUDES_REL, LIB_REL, SRC_DIRNAME, binary_rel, is_valid_name
from dreamcpp.process import ExecResult, exec_capture, exec_stream, format_argv
from dreamcpp.project import ProjectContext

logger = logging.getLogger(__name__)


def assemble_build_command(manifest: Manifest, sources: list[str]) -> list[str]:
    """
    Compiler argv for one whole-program build, relative to the project root.

    Order: compiler, sources, output, standard, manifest includes, shared includes,
    shared lib dir, then one -l per system dependency in manifest order.
    """
    argv = [manifest.preferred_compiler, *sources]
    argv += ["-o", binary_rel(manifest.name)]
    argv.append(f"-std={manifest.standard}")
    argv += [f"-I{inc}" for inc in manifest.includes]
    argv.append(f"-I{INCLUDES_REL}")
    argv.append(f"-L{LIB_REL}")
    argv += [f"-l{lib}" for lib in manifest.system_libraries()]
    return argv


def plan_build(ctx: ProjectContext) -> list[str] | Failure:
    if not ctx.manifest_path.is_file():
        logger.error("This... isn't a dreamcpp project.")
        return Failure(FILESYSTEM, f"Manifest not found: {ctx.manifest_path}")

    if not is_valid_name(ctx.manifest.name):
        logger.error("Invalid project name in manifest: %r", ctx.manifest.name)
        return Failure(
            FILESYSTEM,
            f"Invalid project name: {ctx.manifest.name!r}",
            {"name": ctx.manifest.name},
        )

    layout = ctx.layout
    if not layout.src_dir.is_dir():
        logger.error("No src directory found")
        return Failure(FILESYSTEM, f"No src directory found in {ctx.root}")

    sources = [f"{SRC_DIRNAME}/{p.name}" for p in layout.source_files()]
    if not sources:
        logger.error("No source files found in %s", layout.src_dir)
        return Failure(FILESYSTEM, f"No source files found in {layout.src_dir}")
    return assemble_build_command(ctx.manifest, sources)


def build(ctx: ProjectContext) -> ExecResult | Failure:
    logger.info("Building this project...")
    argv = plan_build(ctx)
    if isinstance(argv, Failure):
        return argv

    try:
        ctx.layout.build_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error("Failed to create '%s': %s", ctx.layout.build_dir, e)
        return Failure(FILESYSTEM, f"Failed to create {ctx.layout.build_dir}: {e}")

    logger.info("Running: %s", format_argv(argv))
    result = exec_capture(argv, cwd=ctx.root)
    if isinstance(result, Failure):
        logger.error("Failed to compile.")
        return result
    if not result.ok:
        logger.error("Failed to compile.")
        logger.error("%s", result.output.rstrip())
        return Failure(
            PROCESS,
            f"Compiler exited with status {result.exit_code}",
            {"argv": result.argv, "exit_code": result.exit_code, "output": result.output},
        )

    logger.info("Build successful!")
    return result


def run(ctx: ProjectContext) -> int | Failure:
    """Build unconditionally, then execute the produced binary with inherited stdio."""
    built = build(ctx)
    if isinstance(built, Failure):
        return built

    binary = ctx.root / binary_rel(ctx.manifest.name)
    logger.info("Running: %s", binary)
    return exec_stream([str(binary)], cwd=ctx.root)
