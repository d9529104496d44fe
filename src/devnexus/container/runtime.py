"""Container runtime command surface (docker-compatible CLI)."""

from __future__ import annotations

import logging as py_logging
import subprocess
from collections.abc import Callable, Mapping, Sequence

from devnexus.errors import RuntimeCommandError

logger = py_logging.getLogger(__name__)

SubprocessRunner = Callable[..., subprocess.CompletedProcess]
KEEPALIVE_COMMAND = ("sleep", "infinity")


def combined_output(result: subprocess.CompletedProcess) -> str:
    stdout = result.stdout or ""
    stderr = result.stderr or ""
    return f"{stdout}{stderr}".strip()


class ContainerRuntime:
    def __init__(self, binary: str = "docker", *, runner: SubprocessRunner = subprocess.run) -> None:
        self.binary = binary
        self.runner = runner

    def build_command(
        self,
        *,
        tag: str,
        dockerfile: str,
        context: str,
        no_cache: bool = False,
        build_args: Mapping[str, str] | None = None,
    ) -> list[str]:
        cmd = [self.binary, "build"]
        if no_cache:
            cmd.append("--no-cache")
        for key, value in (build_args or {}).items():
            cmd.extend(["--build-arg", f"{key}={value}"])
        cmd.extend(["-t", tag, "-f", dockerfile, context])
        return cmd

    def run_command(
        self,
        *,
        image: str,
        project_path: str,
        workspace_mount: str,
        network_mode: str = "",
        extra_args: Sequence[str] = (),
    ) -> list[str]:
        cmd = [
            self.binary,
            "run",
            "-d",
            "-v",
            f"{project_path}:{workspace_mount}",
            "-w",
            workspace_mount,
        ]
        if network_mode:
            cmd.extend(["--network", network_mode])
        cmd.extend(extra_args)
        cmd.append(image)
        cmd.extend(KEEPALIVE_COMMAND)
        return cmd

    def exec_command(
        self,
        container_id: str,
        command: str,
        *,
        shell: str = "/bin/sh",
        workdir: str = "",
        user: str = "",
    ) -> list[str]:
        cmd = [self.binary, "exec"]
        cmd.extend(_exec_options(workdir=workdir, user=user))
        cmd.extend([container_id, shell, "-c", command])
        return cmd

    def interactive_shell_command(
        self,
        container_id: str,
        *,
        shell: str = "/bin/bash",
        workdir: str = "",
        user: str = "",
    ) -> list[str]:
        cmd = [self.binary, "exec", "-it"]
        cmd.extend(_exec_options(workdir=workdir, user=user))
        cmd.extend([container_id, shell])
        return cmd

    def build_image(
        self,
        *,
        tag: str,
        dockerfile: str,
        context: str,
        no_cache: bool = False,
        build_args: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> subprocess.CompletedProcess:
        cmd = self.build_command(
            tag=tag,
            dockerfile=dockerfile,
            context=context,
            no_cache=no_cache,
            build_args=build_args,
        )
        return self._invoke(cmd, timeout=timeout)

    def run_detached(
        self,
        *,
        image: str,
        project_path: str,
        workspace_mount: str,
        network_mode: str = "",
        extra_args: Sequence[str] = (),
        timeout: float | None = None,
    ) -> subprocess.CompletedProcess:
        cmd = self.run_command(
            image=image,
            project_path=project_path,
            workspace_mount=workspace_mount,
            network_mode=network_mode,
            extra_args=extra_args,
        )
        return self._invoke(cmd, timeout=timeout)

    def exec_shell(
        self,
        container_id: str,
        command: str,
        *,
        shell: str = "/bin/sh",
        workdir: str = "",
        user: str = "",
        timeout: float | None = None,
    ) -> subprocess.CompletedProcess:
        cmd = self.exec_command(container_id, command, shell=shell, workdir=workdir, user=user)
        return self._invoke(cmd, timeout=timeout)

    def remove_container(self, container_id: str, *, timeout: float | None = None) -> subprocess.CompletedProcess:
        return self._invoke([self.binary, "rm", "-f", container_id], timeout=timeout)

    def _invoke(self, cmd: list[str], *, timeout: float | None) -> subprocess.CompletedProcess:
        logger.debug("Running container runtime command=%s", cmd)
        try:
            return self.runner(cmd, capture_output=True, text=True, check=False, timeout=timeout)
        except FileNotFoundError as exc:
            raise RuntimeCommandError(
                f"Container runtime not found: {self.binary}",
                hint="Install docker (or set runtime_binary) and make sure it is on PATH.",
                output=str(exc),
            ) from exc


def _exec_options(*, workdir: str, user: str) -> list[str]:
    options: list[str] = []
    if workdir:
        options.extend(["-w", workdir])
    if user:
        options.extend(["-u", user])
    return options
