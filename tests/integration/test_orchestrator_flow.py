from __future__ import annotations

import itertools
import json
import subprocess
from pathlib import Path

import pytest

from devnexus.config import AppConfig
from devnexus.devcontainer import ContainerSpec
from devnexus.errors import ProvisionError
from devnexus.orchestrator import DevSessionOrchestrator
from devnexus.session.router import SessionTarget
from devnexus.terminal import ExitEvent, PtyBackend

_PIDS = itertools.count(9000)


def _cp(returncode: int, stdout: str = "", stderr: str = "") -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


class _ExitingPty:
    def __init__(self) -> None:
        self.pid = next(_PIDS)
        self.closed = False

    def read(self, _size: int = 4096) -> bytes:
        raise EOFError

    def write(self, payload: bytes) -> int:
        return len(payload)

    def setwinsize(self, rows: int, cols: int) -> None:
        pass

    def isalive(self) -> bool:
        return False

    def wait(self) -> int:
        return 0

    def close(self, force: bool = True) -> None:
        self.closed = True


def test_resolve_up_and_route_terminals(tmp_path: Path) -> None:
    project = tmp_path / "webapp"
    (project / ".devcontainer").mkdir(parents=True)
    (project / ".devcontainer" / "devcontainer.json").write_text(
        json.dumps({"image": "node:18", "postCreateCommand": "npm ci", "remoteUser": "node"}),
        encoding="utf-8",
    )
    commands: list[list[str]] = []

    def runner(cmd: list[str], **_: object) -> subprocess.CompletedProcess:
        commands.append(cmd)
        if cmd[1] == "run":
            return _cp(0, stdout="c0ffee\n")
        return _cp(0)

    spawned: list[list[str]] = []

    def spawn(command: list[str], _cwd: str | None, _env: dict[str, str] | None, _dims: tuple[int, int]) -> _ExitingPty:
        spawned.append(command)
        return _ExitingPty()

    orchestrator = DevSessionOrchestrator.from_config(
        AppConfig(runtime_binary="podman", host_shell="/bin/sh"),
        runner=runner,
        pty_backend=PtyBackend(spawn=spawn),
    )
    try:
        resolution = orchestrator.resolve_config(project)
        assert resolution.found and resolution.spec is not None

        container_id = orchestrator.up_async(str(project), resolution.spec).result(timeout=5)

        assert container_id == "c0ffee"
        assert [cmd[:2] for cmd in commands] == [["podman", "run"], ["podman", "exec"]]
        assert orchestrator.route(str(project / "src")).container_id == "c0ffee"
        assert orchestrator.route(str(tmp_path)).target == SessionTarget.HOST

        feed = orchestrator.subscribe()
        contained = orchestrator.create_terminal(str(project / "src"))
        host = orchestrator.create_terminal()

        assert spawned[0] == ["podman", "exec", "-it", "-w", "/workspace", "-u", "node", "c0ffee", "/bin/bash"]
        assert spawned[1] == ["/bin/sh"]
        exits = {feed.get(timeout=5), feed.get(timeout=5)}
        assert exits == {ExitEvent(contained, 0), ExitEvent(host, 0)}
    finally:
        orchestrator.shutdown()


def test_provision_failure_still_routes_into_container(tmp_path: Path) -> None:
    def runner(cmd: list[str], **_: object) -> subprocess.CompletedProcess:
        if cmd[1] == "run":
            return _cp(0, stdout="live1\n")
        return _cp(127, stderr="sh: make: not found\n")

    orchestrator = DevSessionOrchestrator.from_config(runner=runner, pty_backend=PtyBackend(spawn=lambda *_: _ExitingPty()))
    assert orchestrator.resolve_config(tmp_path).spec is None

    with pytest.raises(ProvisionError):
        orchestrator.up(str(tmp_path), ContainerSpec(image="alpine", postCreateCommand="make"))

    assert orchestrator.route(str(tmp_path)).container_id == "live1"
    assert [binding.container_id for binding in orchestrator.bindings()] == ["live1"]
    orchestrator.shutdown()
