"""XDG config loading/saving."""

from __future__ import annotations

import os
import sys
from contextlib import suppress
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, PositiveFloat, ValidationError

if sys.version_info >= (3, 11):
    import tomllib
else:  # pragma: no cover
    import tomli as tomllib

DEFAULT_CONFIG_PATH = Path("~/.config/devnexus/config.toml").expanduser()
DEFAULT_RUNTIME_BINARY = "docker"
DEFAULT_WORKSPACE_MOUNT = "/workspace"
DEFAULT_NETWORK_MODE = "host"
DEFAULT_IMAGE_TAG_PREFIX = "vsc-devnexus"
RUNTIME_BINARY_ENV = "DEVNEXUS_RUNTIME"


class AppConfig(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    runtime_binary: str = Field(default=DEFAULT_RUNTIME_BINARY, min_length=1)
    workspace_mount: str = Field(default=DEFAULT_WORKSPACE_MOUNT, pattern=r"^/")
    network_mode: str = DEFAULT_NETWORK_MODE
    image_tag_prefix: str = Field(default=DEFAULT_IMAGE_TAG_PREFIX, min_length=1)
    post_create_shell: str = "/bin/sh"
    container_shell: str = "/bin/bash"
    host_shell: str = ""
    build_timeout_seconds: PositiveFloat | None = 1800.0
    launch_timeout_seconds: PositiveFloat | None = 300.0
    provision_timeout_seconds: PositiveFloat | None = 1800.0
    stop_superseded_containers: bool = False
    default_cols: int = Field(default=80, ge=1, le=1000)
    default_rows: int = Field(default=24, ge=1, le=1000)


def get_config_path(path: str | Path | None = None) -> Path:
    if path is None:
        return DEFAULT_CONFIG_PATH
    return Path(path).expanduser()


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _toml_scalar(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return f'"{_escape(value)}"'
    raise TypeError(f"Unsupported TOML scalar type: {type(value)!r}")


def _sanitize(raw: dict[str, object]) -> AppConfig:
    cfg = AppConfig()
    for name in AppConfig.model_fields:
        if name not in raw:
            continue
        value = raw[name]
        if isinstance(value, str) and name.endswith("_timeout_seconds") and value.strip().lower() == "none":
            value = None
        try:
            setattr(cfg, name, value)
        except ValidationError:
            continue

    env_runtime = os.getenv(RUNTIME_BINARY_ENV, "").strip()
    if env_runtime:
        cfg.runtime_binary = env_runtime
    return cfg


def load_config(path: str | Path | None = None) -> AppConfig:
    resolved = get_config_path(path)
    if not resolved.exists():
        return _sanitize({})
    try:
        with resolved.open("rb") as handle:
            raw = tomllib.load(handle)
    except (tomllib.TOMLDecodeError, OSError):
        return _sanitize({})
    if not isinstance(raw, dict):
        return _sanitize({})
    return _sanitize(raw)


def save_config(config: AppConfig, path: str | Path | None = None) -> Path:
    resolved = get_config_path(path)
    resolved.parent.mkdir(parents=True, exist_ok=True)

    lines: list[str] = []
    for name, value in config.model_dump().items():
        if value is None:
            # TOML has no null; the string sentinel disables the timeout.
            lines.append(f'{name} = "none"')
            continue
        lines.append(f"{name} = {_toml_scalar(value)}")

    resolved.write_text("\n".join(lines) + "\n", encoding="utf-8")
    with suppress(OSError):
        resolved.chmod(0o600)
    return resolved
