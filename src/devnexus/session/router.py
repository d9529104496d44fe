"""Decide whether a terminal session runs on the host or in a container."""

from __future__ import annotations

import logging as py_logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from devnexus.container.bindings import BindingStore, canonical_path, is_within

logger = py_logging.getLogger(__name__)


class SessionTarget(str, Enum):
    HOST = "host"
    CONTAINER = "container"


@dataclass(frozen=True)
class RouteDecision:
    target: SessionTarget
    working_directory: str
    container_id: str = ""
    remote_user: str = ""

    @property
    def is_container(self) -> bool:
        return self.target == SessionTarget.CONTAINER


class SessionRouter:
    def __init__(
        self,
        bindings: BindingStore,
        *,
        workspace_mount: str = "/workspace",
        home_directory: Callable[[], Path] = Path.home,
    ) -> None:
        self.bindings = bindings
        self.workspace_mount = workspace_mount
        self._home_directory = home_directory

    def route(self, working_directory: str | None = None) -> RouteDecision:
        if working_directory and working_directory.strip():
            cwd = canonical_path(working_directory.strip())
            # First match wins; overlapping project roots are not ranked.
            for binding in self.bindings.list():
                if is_within(cwd, binding.project_path):
                    logger.debug("Routing cwd=%s to container=%s", cwd, binding.container_id)
                    return RouteDecision(
                        target=SessionTarget.CONTAINER,
                        working_directory=self.workspace_mount,
                        container_id=binding.container_id,
                        remote_user=binding.remote_user,
                    )
            return RouteDecision(target=SessionTarget.HOST, working_directory=working_directory.strip())

        return RouteDecision(target=SessionTarget.HOST, working_directory=str(self._home_directory()))
