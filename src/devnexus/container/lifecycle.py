"""Container lifecycle: image build, launch, post-create, binding."""

from __future__ import annotations

import logging as py_logging
import re
import subprocess
import threading
import time
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path

from devnexus.container.bindings import BindingStore, ContainerBinding, canonical_path
from devnexus.container.runtime import ContainerRuntime, combined_output
from devnexus.devcontainer.spec import ContainerSpec
from devnexus.errors import (
    BuildError,
    ConfigInvalidError,
    LaunchError,
    ProvisionError,
    RuntimeCommandError,
)

logger = py_logging.getLogger(__name__)

_SANITIZE = re.compile(r"[^a-z0-9_.-]+")


def image_tag(prefix: str, project_path: str, *, clock: Callable[[], float] = time.time) -> str:
    base = _SANITIZE.sub("-", Path(project_path).name.lower()).strip("-.") or "project"
    return f"{prefix}-{base}-{int(clock() * 1000)}"


class ContainerLifecycleController:
    def __init__(
        self,
        runtime: ContainerRuntime,
        bindings: BindingStore | None = None,
        *,
        workspace_mount: str = "/workspace",
        network_mode: str = "host",
        image_tag_prefix: str = "vsc-devnexus",
        post_create_shell: str = "/bin/sh",
        build_timeout: float | None = None,
        launch_timeout: float | None = None,
        provision_timeout: float | None = None,
        stop_superseded: bool = False,
        clock: Callable[[], float] = time.time,
        max_workers: int = 4,
    ) -> None:
        self.runtime = runtime
        self.bindings = bindings if bindings is not None else BindingStore()
        self.workspace_mount = workspace_mount
        self.network_mode = network_mode
        self.image_tag_prefix = image_tag_prefix
        self.post_create_shell = post_create_shell
        self.build_timeout = build_timeout
        self.launch_timeout = launch_timeout
        self.provision_timeout = provision_timeout
        self.stop_superseded = stop_superseded
        self._clock = clock
        self._max_workers = max_workers
        self._executor: ThreadPoolExecutor | None = None
        self._locks_guard = threading.Lock()
        self._project_locks: dict[str, threading.Lock] = {}

    def up(self, project_path: str, spec: ContainerSpec, *, rebuild: bool = False) -> str:
        project = canonical_path(project_path)
        if not spec.is_launchable:
            raise ConfigInvalidError(
                "No image specified and no valid build configuration found.",
                hint="Set 'image' or 'build.dockerfile' in devcontainer.json.",
            )

        with self._project_lock(project):
            image = self._resolve_image(project, spec, rebuild=rebuild)
            container_id = self._launch(project, spec, image)
            remote_user = (spec.remote_user or "").strip()
            binding, previous = self.bindings.record(
                project,
                container_id,
                image=image,
                remote_user=remote_user,
            )
            logger.info("Bound project=%s container=%s image=%s", project, container_id, image)
            if previous is not None and previous.container_id != container_id:
                self._handle_superseded(previous)

            if spec.post_create_command and spec.post_create_command.strip():
                self._provision(binding, spec.post_create_command)
        return container_id

    def up_async(self, project_path: str, spec: ContainerSpec, *, rebuild: bool = False) -> Future[str]:
        executor = self._ensure_executor()
        return executor.submit(self.up, project_path, spec, rebuild=rebuild)

    def shutdown(self, *, wait: bool = True) -> None:
        executor = self._executor
        self._executor = None
        if executor is not None:
            executor.shutdown(wait=wait)

    def _resolve_image(self, project: str, spec: ContainerSpec, *, rebuild: bool) -> str:
        if spec.image and spec.image.strip():
            return spec.image.strip()

        assert spec.build is not None
        root = Path(project)
        context = root / spec.build.context if spec.build.context else root
        dockerfile = root / spec.build.dockerfile
        tag = image_tag(self.image_tag_prefix, project, clock=self._clock)
        logger.info("Building image=%s dockerfile=%s context=%s no_cache=%s", tag, dockerfile, context, rebuild)

        try:
            result = self.runtime.build_image(
                tag=tag,
                dockerfile=str(dockerfile),
                context=str(context),
                no_cache=rebuild,
                build_args=spec.build.args,
                timeout=self.build_timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise BuildError(
                f"Image build timed out after {exc.timeout}s",
                hint="Raise build_timeout_seconds or inspect the Dockerfile.",
                output=_timeout_output(exc),
            ) from exc
        except RuntimeCommandError as exc:
            raise BuildError(exc.message, hint=exc.hint, output=exc.output) from exc

        if result.returncode != 0:
            output = combined_output(result)
            logger.error("Image build failed project=%s stderr=%s", project, (result.stderr or "").strip())
            raise BuildError(
                f"Docker build failed for {project}",
                hint="Inspect the build output.",
                output=output,
            )
        return tag

    def _launch(self, project: str, spec: ContainerSpec, image: str) -> str:
        try:
            result = self.runtime.run_detached(
                image=image,
                project_path=project,
                workspace_mount=self.workspace_mount,
                network_mode=self.network_mode,
                extra_args=spec.run_args,
                timeout=self.launch_timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise LaunchError(
                f"Container launch timed out after {exc.timeout}s",
                hint="Check that the container runtime daemon is responsive.",
                output=_timeout_output(exc),
            ) from exc
        except RuntimeCommandError as exc:
            raise LaunchError(exc.message, hint=exc.hint, output=exc.output) from exc

        if result.returncode != 0:
            logger.error("Container launch failed project=%s stderr=%s", project, (result.stderr or "").strip())
            raise LaunchError(
                f"Failed to start container for {project}",
                hint="Inspect the container runtime output.",
                output=combined_output(result),
            )
        container_id = (result.stdout or "").strip()
        if not container_id:
            raise LaunchError(
                f"Container runtime reported no container id for {project}",
                hint="Inspect the container runtime output.",
                output=combined_output(result),
            )
        return container_id

    def _provision(self, binding: ContainerBinding, command: str) -> None:
        logger.info("Running postCreateCommand container=%s command=%s", binding.container_id, command)
        try:
            result = self.runtime.exec_shell(
                binding.container_id,
                command,
                shell=self.post_create_shell,
                workdir=self.workspace_mount,
                user=binding.remote_user,
                timeout=self.provision_timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise ProvisionError(
                f"postCreateCommand timed out after {exc.timeout}s",
                hint="The container is running; rerun the command from a terminal.",
                output=_timeout_output(exc),
                container_id=binding.container_id,
            ) from exc
        except RuntimeCommandError as exc:
            raise ProvisionError(
                exc.message,
                hint=exc.hint,
                output=exc.output,
                container_id=binding.container_id,
            ) from exc

        if result.returncode != 0:
            logger.warning(
                "postCreateCommand failed container=%s returncode=%s",
                binding.container_id,
                result.returncode,
            )
            raise ProvisionError(
                f"postCreateCommand exited with code {result.returncode}",
                hint="The container is running; inspect the command output.",
                output=combined_output(result),
                container_id=binding.container_id,
            )

    def _handle_superseded(self, previous: ContainerBinding) -> None:
        if not self.stop_superseded:
            logger.warning(
                "Container superseded but left running project=%s container=%s",
                previous.project_path,
                previous.container_id,
            )
            return
        try:
            result = self.runtime.remove_container(previous.container_id, timeout=self.launch_timeout)
        except (subprocess.TimeoutExpired, RuntimeCommandError) as exc:
            logger.warning("Failed to remove superseded container=%s error=%s", previous.container_id, exc)
            return
        if result.returncode != 0:
            logger.warning(
                "Failed to remove superseded container=%s stderr=%s",
                previous.container_id,
                (result.stderr or "").strip(),
            )
            return
        logger.info("Removed superseded container=%s", previous.container_id)

    def _project_lock(self, project: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._project_locks.get(project)
            if lock is None:
                lock = threading.Lock()
                self._project_locks[project] = lock
            return lock

    def _ensure_executor(self) -> ThreadPoolExecutor:
        with self._locks_guard:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._max_workers,
                    thread_name_prefix="devnexus-up",
                )
            return self._executor


def _timeout_output(exc: subprocess.TimeoutExpired) -> str:
    parts: list[str] = []
    for chunk in (exc.stdout, exc.stderr):
        if isinstance(chunk, bytes):
            parts.append(chunk.decode("utf-8", errors="replace"))
        elif chunk:
            parts.append(str(chunk))
    return "".join(parts).strip()
