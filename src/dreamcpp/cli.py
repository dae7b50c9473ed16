from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

from dreamcpp import build as build_ops
from dreamcpp import sync as sync_ops
from dreamcpp.config import SettingsError, load_settings
from dreamcpp.errors import Failure
from dreamcpp.manifest import MANIFEST_FILENAME
from dreamcpp.project import ProjectContext, create_project, open_project
from dreamcpp.resolver import Resolver, default_resolver

logger = logging.getLogger("dreamcpp")

EXIT_OK = 0
EXIT_FAILURE = 1


def _enable_console_backslashreplace(stream: Any) -> None:
    reconfigure = getattr(stream, "reconfigure", None)
    if not callable(reconfigure):
        return
    try:
        if str(getattr(stream, "errors", "")).lower() == "backslashreplace":
            return
        reconfigure(errors="backslashreplace")
    except (OSError, ValueError):
        return


def _configure_logging(verbose: bool) -> None:
    _enable_console_backslashreplace(sys.stdout)
    _enable_console_backslashreplace(sys.stderr)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


def _open(args: argparse.Namespace) -> ProjectContext | None:
    ctx = open_project(Path(args.config))
    if isinstance(ctx, Failure):
        return None
    return ctx


def _resolver(args: argparse.Namespace) -> Resolver | None:
    try:
        settings = load_settings(args.settings)
    except SettingsError as e:
        logger.error("%s", e)
        return None
    return default_resolver(settings)


def _cmd_new(args: argparse.Namespace) -> int:
    name = str(args.project_name)
    logger.info("Creating new project '%s'", name)
    ctx = create_project(Path.cwd(), name, manifest_filename=Path(args.config).name)
    if isinstance(ctx, Failure):
        return EXIT_FAILURE
    print(str(ctx.root))
    return EXIT_OK


def _cmd_build(args: argparse.Namespace) -> int:
    ctx = _open(args)
    if ctx is None:
        return EXIT_FAILURE
    result = build_ops.build(ctx)
    return EXIT_FAILURE if isinstance(result, Failure) else EXIT_OK


def _exit_status(returncode: int) -> int:
    """Map a child return code to a shell exit status; signal deaths become 128 + signum."""
    if returncode < 0:
        logger.error("Program terminated by signal %d", -returncode)
        return 128 - returncode
    return returncode


def _cmd_run(args: argparse.Namespace) -> int:
    ctx = _open(args)
    if ctx is None:
        return EXIT_FAILURE
    result = build_ops.run(ctx)
    if isinstance(result, Failure):
        return EXIT_FAILURE
    return _exit_status(result)


def _cmd_add(args: argparse.Namespace) -> int:
    ctx = _open(args)
    if ctx is None:
        return EXIT_FAILURE
    resolver = _resolver(args)
    if resolver is None:
        return EXIT_FAILURE
    failure = sync_ops.add(ctx, str(args.dep_name), resolver, system=bool(args.system))
    return EXIT_FAILURE if failure is not None else EXIT_OK


def _cmd_sync(args: argparse.Namespace) -> int:
    ctx = _open(args)
    if ctx is None:
        return EXIT_FAILURE
    resolver = _resolver(args)
    if resolver is None:
        return EXIT_FAILURE

    report = sync_ops.sync(ctx, resolver)
    if isinstance(report, Failure):
        return EXIT_FAILURE
    for outcome in report.failed:
        reason = outcome.failure.message if outcome.failure is not None else "unknown error"
        logger.error("  - %s: %s", outcome.name, reason)
    for outcome in report.outcomes:
        if outcome.warning:
            logger.warning("  - %s: %s", outcome.name, outcome.warning)
    return EXIT_OK if report.ok else EXIT_FAILURE


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dreamcpp", description="DreamCPP project manager.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose output.")
    parser.add_argument(
        "-c",
        "--config",
        default=MANIFEST_FILENAME,
        help=f"Path to the project manifest (default: {MANIFEST_FILENAME}).",
    )
    parser.add_argument(
        "--settings",
        type=Path,
        help="User settings YAML (default: $DREAMCPP_CONFIG or ~/.dreamcpp/config.yaml).",
    )

    sub = parser.add_subparsers(dest="cmd", required=True)

    new_p = sub.add_parser("new", help="Create a new project.")
    new_p.add_argument("project_name", help="Name of the new project.")
    new_p.set_defaults(func=_cmd_new)

    build_p = sub.add_parser("build", help="Build the project.")
    build_p.set_defaults(func=_cmd_build)

    run_p = sub.add_parser("run", help="Build the project, then run it.")
    run_p.set_defaults(func=_cmd_run)

    add_p = sub.add_parser("add", help="Add a dependency to the project.")
    add_p.add_argument("dep_name", help="The name of the dependency.")
    add_p.add_argument(
        "--system",
        action="store_true",
        help="Link against a host library (-l<name>) instead of cloning source.",
    )
    add_p.set_defaults(func=_cmd_add)

    sync_p = sub.add_parser("sync", help="Sync/install project dependencies.")
    sync_p.set_defaults(func=_cmd_sync)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(bool(args.verbose))
    raise SystemExit(args.func(args))


if __name__ == "__main__":
    main()
