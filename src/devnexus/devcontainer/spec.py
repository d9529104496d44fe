"""Parsed per-project container configuration."""

from __future__ import annotations

import shlex

from pydantic import BaseModel, ConfigDict, Field, field_validator

_FROZEN = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class BuildSpec(BaseModel):
    model_config = _FROZEN

    dockerfile: str = ""
    context: str = ""
    args: dict[str, str] = Field(default_factory=dict)


class ContainerSpec(BaseModel):
    """Value object for a ``devcontainer.json`` document.

    Keys that this tool does not act on (``features``, ``mounts``,
    ``customizations``...) are ignored rather than rejected.
    """

    model_config = _FROZEN

    name: str | None = None
    image: str | None = None
    build: BuildSpec | None = None
    run_args: tuple[str, ...] = Field(default=(), alias="runArgs")
    post_create_command: str | None = Field(default=None, alias="postCreateCommand")
    forward_ports: tuple[int, ...] = Field(default=(), alias="forwardPorts")
    remote_user: str | None = Field(default=None, alias="remoteUser")

    @field_validator("post_create_command", mode="before")
    @classmethod
    def _join_argv_form(cls, value: object) -> object:
        if isinstance(value, (list, tuple)) and all(isinstance(item, str) for item in value):
            return shlex.join(value)
        return value

    @property
    def is_launchable(self) -> bool:
        if self.image and self.image.strip():
            return True
        return self.build is not None and bool(self.build.dockerfile.strip())

    def summary(self) -> str:
        label = self.name or "(unnamed)"
        if self.image:
            source = f"image={self.image}"
        elif self.build is not None and self.build.dockerfile:
            source = f"dockerfile={self.build.dockerfile}"
        else:
            source = "no image or build"
        return f"{label} {source}"
