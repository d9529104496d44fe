"""Public CLI contract and entrypoint."""

from __future__ import annotations

import argparse
import logging as py_logging
import sys
from collections.abc import Callable, Sequence
from pathlib import Path

from .config import AppConfig, load_config
from .devcontainer import ResolutionStatus
from .errors import DevNexusError, ExitCode, ProvisionError, RuntimeCommandError, user_facing_error
from .logging import configure_logging, default_log_path
from .orchestrator import DevSessionOrchestrator

_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARN", "ERROR")

OrchestratorFactory = Callable[[AppConfig], DevSessionOrchestrator]


def _log_level_type(value: str) -> str:
    normalized = value.upper()
    if normalized == "WARNING":
        normalized = "WARN"
    if normalized not in _VALID_LOG_LEVELS:
        accepted = ", ".join(_VALID_LOG_LEVELS)
        raise argparse.ArgumentTypeError(f"--log-level must be one of: {accepted}")
    return normalized


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="devnexus")
    parser.add_argument("--config", type=Path, default=None)
    parser.add_argument("--log-level", type=_log_level_type, default="INFO")
    parser.add_argument("--log-file", type=Path, default=None)
    commands = parser.add_subparsers(dest="command", required=True)

    check = commands.add_parser("check", help="Locate and validate the project's container configuration")
    check.add_argument("project", type=Path)

    up = commands.add_parser("up", help="Build and start the project's development container")
    up.add_argument("project", type=Path)
    up.add_argument("--rebuild", action="store_true", help="Force a no-cache image build")
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = build_parser()
    return parser.parse_args(argv)


def run_check(namespace: argparse.Namespace, orchestrator: DevSessionOrchestrator) -> int:
    resolution = orchestrator.resolve_config(namespace.project)
    if resolution.status == ResolutionStatus.NOT_FOUND:
        print(f"No dev container configuration found in {namespace.project}")
        return int(ExitCode.SUCCESS)
    if resolution.error is not None:
        print(user_facing_error(resolution.error.message, hint=resolution.error.hint), file=sys.stderr)
        return int(resolution.error.code)
    assert resolution.spec is not None
    print(f"{resolution.path}: {resolution.spec.summary()}")
    if not resolution.spec.is_launchable:
        print("Configuration can be inspected but not launched (no image or build.dockerfile).")
    return int(ExitCode.SUCCESS)


def run_up(namespace: argparse.Namespace, orchestrator: DevSessionOrchestrator) -> int:
    resolution = orchestrator.resolve_config(namespace.project)
    if resolution.error is not None:
        raise resolution.error
    if resolution.spec is None:
        raise DevNexusError(
            f"No dev container configuration found in {namespace.project}",
            code=ExitCode.CONFIG_ERROR,
            hint="Add .devcontainer/devcontainer.json or .devcontainer.json.",
        )
    try:
        container_id = orchestrator.up(str(namespace.project), resolution.spec, rebuild=namespace.rebuild)
    except ProvisionError as exc:
        print(exc.container_id)
        _print_runtime_error(exc)
        return int(exc.code)
    print(container_id)
    return int(ExitCode.SUCCESS)


def _print_runtime_error(exc: RuntimeCommandError) -> None:
    print(user_facing_error(exc.message, hint=exc.hint), file=sys.stderr)
    if exc.output:
        print(exc.output, file=sys.stderr)


def main(
    argv: Sequence[str] | None = None,
    *,
    orchestrator_factory: OrchestratorFactory | None = None,
) -> int:
    log_path = default_log_path()
    logger = configure_logging(log_file=log_path)
    parser = build_parser()
    try:
        namespace = parser.parse_args(argv)
    except SystemExit as exc:
        if exc.code not in (None, 0):
            logger.warning("Argument parsing failed with exit code %s", exc.code)
        return int(exc.code or 0)

    if namespace.log_file is not None:
        log_path = namespace.log_file.expanduser()
    logger = configure_logging(level=namespace.log_level, log_file=log_path)

    factory = orchestrator_factory or DevSessionOrchestrator.from_config
    try:
        orchestrator = factory(load_config(namespace.config))
        try:
            if namespace.command == "check":
                return run_check(namespace, orchestrator)
            return run_up(namespace, orchestrator)
        finally:
            orchestrator.shutdown()
    except RuntimeCommandError as exc:
        logger.error("Container command failed (code=%s): %s", int(exc.code), exc.message)
        _print_runtime_error(exc)
        return int(exc.code)
    except DevNexusError as exc:
        logger.error(
            "Handled DevNexusError (code=%s): %s",
            int(exc.code),
            exc.message,
            exc_info=logger.isEnabledFor(py_logging.DEBUG),
        )
        print(user_facing_error(exc.message, hint=exc.hint), file=sys.stderr)
        return int(exc.code)
    except Exception:
        logger.exception("Unhandled exception in CLI entrypoint")
        print(user_facing_error("Unexpected runtime failure", hint=f"Inspect logs: {log_path}"), file=sys.stderr)
        return int(ExitCode.RUNTIME_ERROR)


def run(argv: Sequence[str] | None = None) -> int:
    return main(argv)
