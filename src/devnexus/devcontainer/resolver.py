"""Locate and parse a project's dev container configuration."""

from __future__ import annotations

import json
import logging as py_logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from pydantic import ValidationError

from devnexus.devcontainer.spec import ContainerSpec
from devnexus.errors import ConfigParseError, ExitCode

logger = py_logging.getLogger(__name__)

# Order matters: the folder form wins over the root file.
CONFIG_CANDIDATES: tuple[tuple[str, ...], ...] = (
    (".devcontainer", "devcontainer.json"),
    (".devcontainer.json",),
)


class ResolutionStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not-found"
    PARSE_ERROR = "parse-error"


@dataclass(frozen=True)
class ConfigResolution:
    status: ResolutionStatus
    path: str = ""
    spec: ContainerSpec | None = None
    error: ConfigParseError | None = None

    @property
    def found(self) -> bool:
        return self.status == ResolutionStatus.FOUND


def find_config_path(project_path: str | Path) -> Path | None:
    root = Path(project_path).expanduser()
    for parts in CONFIG_CANDIDATES:
        candidate = root.joinpath(*parts)
        if candidate.is_file():
            return candidate
    return None


def strip_jsonc_comments(text: str) -> str:
    """Remove ``//`` and ``/* */`` comments outside of string literals."""
    out: list[str] = []
    index = 0
    length = len(text)
    in_string = False
    while index < length:
        char = text[index]
        if in_string:
            out.append(char)
            if char == "\\" and index + 1 < length:
                out.append(text[index + 1])
                index += 2
                continue
            if char == '"':
                in_string = False
            index += 1
            continue

        if char == '"':
            in_string = True
            out.append(char)
            index += 1
            continue

        pair = text[index : index + 2]
        if pair == "//":
            end = text.find("\n", index)
            index = length if end == -1 else end
            continue
        if pair == "/*":
            end = text.find("*/", index + 2)
            index = length if end == -1 else end + 2
            out.append(" ")
            continue

        out.append(char)
        index += 1
    return "".join(out)


def parse_config_text(text: str, *, path: str = "") -> ContainerSpec:
    stripped = strip_jsonc_comments(text)
    try:
        payload = json.loads(stripped)
    except json.JSONDecodeError as exc:
        raise ConfigParseError(
            f"Malformed container configuration: {exc.msg} (line {exc.lineno}, column {exc.colno})",
            hint="Fix the JSON syntax in the configuration file.",
            path=path,
        ) from exc
    if not isinstance(payload, dict):
        raise ConfigParseError(
            "Container configuration must be a JSON object.",
            hint="Wrap the configuration in { ... }.",
            path=path,
        )
    try:
        return ContainerSpec.model_validate(payload)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(item) for item in first.get("loc", ())) or "<root>"
        raise ConfigParseError(
            f"Invalid container configuration field '{location}': {first.get('msg', 'invalid value')}",
            code=ExitCode.CONFIG_ERROR,
            hint="Check the field types against the devcontainer.json schema.",
            path=path,
        ) from exc


def resolve_config(project_path: str | Path) -> ConfigResolution:
    config_path = find_config_path(project_path)
    if config_path is None:
        logger.debug("No container configuration under project=%s", project_path)
        return ConfigResolution(status=ResolutionStatus.NOT_FOUND)

    try:
        text = config_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        error = ConfigParseError(
            f"Unable to read container configuration: {exc}",
            hint="Check file permissions and encoding.",
            path=str(config_path),
        )
        logger.error("Container configuration unreadable path=%s error=%s", config_path, exc)
        return ConfigResolution(status=ResolutionStatus.PARSE_ERROR, path=str(config_path), error=error)

    try:
        spec = parse_config_text(text, path=str(config_path))
    except ConfigParseError as exc:
        logger.error("Container configuration parse failed path=%s error=%s", config_path, exc.message)
        return ConfigResolution(status=ResolutionStatus.PARSE_ERROR, path=str(config_path), error=exc)

    logger.debug("Resolved container configuration path=%s spec=%s", config_path, spec.summary())
    return ConfigResolution(status=ResolutionStatus.FOUND, path=str(config_path), spec=spec)
