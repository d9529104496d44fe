"""Development session orchestrator: config, containers and terminals wired together."""

from __future__ import annotations

import logging as py_logging
import subprocess
from concurrent.futures import Future
from pathlib import Path

from devnexus.config import AppConfig
from devnexus.container.bindings import BindingStore, ContainerBinding
from devnexus.container.lifecycle import ContainerLifecycleController
from devnexus.container.runtime import ContainerRuntime, SubprocessRunner
from devnexus.devcontainer import ConfigResolution, ContainerSpec, resolve_config
from devnexus.session.router import RouteDecision, SessionRouter
from devnexus.terminal.channel import EventChannel
from devnexus.terminal.manager import TerminalSessionManager
from devnexus.terminal.pty_backend import PtyBackend

logger = py_logging.getLogger(__name__)


class DevSessionOrchestrator:
    """Single per-process owner of the binding store and the live sessions."""

    def __init__(
        self,
        lifecycle: ContainerLifecycleController,
        router: SessionRouter,
        terminals: TerminalSessionManager,
    ) -> None:
        self.lifecycle = lifecycle
        self.router = router
        self.terminals = terminals

    @classmethod
    def from_config(
        cls,
        config: AppConfig | None = None,
        *,
        runner: SubprocessRunner | None = None,
        pty_backend: PtyBackend | None = None,
    ) -> DevSessionOrchestrator:
        cfg = config or AppConfig()
        runtime = ContainerRuntime(cfg.runtime_binary, runner=runner or subprocess.run)
        bindings = BindingStore()
        lifecycle = ContainerLifecycleController(
            runtime,
            bindings,
            workspace_mount=cfg.workspace_mount,
            network_mode=cfg.network_mode,
            image_tag_prefix=cfg.image_tag_prefix,
            post_create_shell=cfg.post_create_shell,
            build_timeout=cfg.build_timeout_seconds,
            launch_timeout=cfg.launch_timeout_seconds,
            provision_timeout=cfg.provision_timeout_seconds,
            stop_superseded=cfg.stop_superseded_containers,
        )
        router = SessionRouter(bindings, workspace_mount=cfg.workspace_mount)
        terminals = TerminalSessionManager(
            router,
            runtime=runtime,
            pty_backend=pty_backend,
            host_shell=cfg.host_shell,
            container_shell=cfg.container_shell,
            default_cols=cfg.default_cols,
            default_rows=cfg.default_rows,
        )
        return cls(lifecycle, router, terminals)

    def resolve_config(self, project_path: str | Path) -> ConfigResolution:
        return resolve_config(project_path)

    def up(self, project_path: str, spec: ContainerSpec, *, rebuild: bool = False) -> str:
        return self.lifecycle.up(project_path, spec, rebuild=rebuild)

    def up_async(self, project_path: str, spec: ContainerSpec, *, rebuild: bool = False) -> Future[str]:
        return self.lifecycle.up_async(project_path, spec, rebuild=rebuild)

    def bindings(self) -> list[ContainerBinding]:
        return self.lifecycle.bindings.list()

    def route(self, working_directory: str | None = None) -> RouteDecision:
        return self.router.route(working_directory)

    def create_terminal(self, working_directory: str | None = None) -> int:
        return self.terminals.create(working_directory)

    def write(self, session_id: int, data: bytes | str) -> None:
        self.terminals.write(session_id, data)

    def resize(self, session_id: int, cols: int, rows: int) -> None:
        self.terminals.resize(session_id, cols, rows)

    def dispose(self, session_id: int) -> None:
        self.terminals.dispose(session_id)

    def channel(self, session_id: int) -> EventChannel | None:
        return self.terminals.channel(session_id)

    def subscribe(self) -> EventChannel:
        return self.terminals.subscribe()

    def shutdown(self) -> None:
        logger.debug("Shutting down orchestrator sessions=%s", len(self.terminals.list_sessions()))
        self.terminals.dispose_all()
        self.lifecycle.shutdown(wait=False)
