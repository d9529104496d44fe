"""Deterministic error model and exit code contract."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class ExitCode(IntEnum):
    SUCCESS = 0
    INVALID_ARGS = 2
    CONFIG_ERROR = 3
    RUNTIME_ERROR = 4
    CONTAINER_ERROR = 5
    TERMINAL_ERROR = 6
    VALIDATION_ERROR = 7


@dataclass
class DevNexusError(Exception):
    message: str
    code: ExitCode = ExitCode.RUNTIME_ERROR
    hint: str = ""

    def __str__(self) -> str:
        if self.hint:
            return f"{self.message} Hint: {self.hint}"
        return self.message


@dataclass
class ConfigParseError(DevNexusError):
    code: ExitCode = ExitCode.CONFIG_ERROR
    path: str = ""


@dataclass
class ConfigInvalidError(DevNexusError):
    code: ExitCode = ExitCode.CONFIG_ERROR


@dataclass
class RuntimeCommandError(DevNexusError):
    """Container runtime command failed; ``output`` holds its raw diagnostics."""

    code: ExitCode = ExitCode.CONTAINER_ERROR
    output: str = ""


@dataclass
class BuildError(RuntimeCommandError):
    pass


@dataclass
class LaunchError(RuntimeCommandError):
    pass


@dataclass
class ProvisionError(RuntimeCommandError):
    container_id: str = ""


@dataclass
class SpawnError(DevNexusError):
    code: ExitCode = ExitCode.TERMINAL_ERROR


def user_facing_error(message: str, *, hint: str = "") -> str:
    if hint:
        return f"Error: {message}. Next step: {hint}"
    return f"Error: {message}."
