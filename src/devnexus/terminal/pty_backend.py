"""PTY process lifecycle: ptyprocess on POSIX, pywinpty on Windows."""

from __future__ import annotations

import atexit
import os
import shlex
import subprocess
import sys
import threading
from collections.abc import Callable, Mapping
from contextlib import suppress
from dataclasses import dataclass

from devnexus.errors import DevNexusError, ExitCode, SpawnError


@dataclass(frozen=True)
class PtyHandle:
    session_id: int
    command: tuple[str, ...]
    cwd: str | None = None


PtySpawn = Callable[[list[str], str | None, dict[str, str] | None, tuple[int, int]], object]


def build_host_shell_command(
    *,
    platform: str | None = None,
    override: str = "",
    environ: Mapping[str, str] | None = None,
) -> list[str]:
    if override.strip():
        return shlex.split(override, posix=not (platform or sys.platform).startswith("win"))
    resolved_platform = platform or sys.platform
    if resolved_platform.startswith("win"):
        return ["powershell.exe", "-NoLogo", "-NoProfile"]
    env = os.environ if environ is None else environ
    shell = env.get("SHELL", "").strip()
    return [shell or "bash"]


def host_shell_environment(environ: Mapping[str, str] | None = None) -> dict[str, str]:
    env = dict(os.environ if environ is None else environ)
    env.setdefault("TERM", "xterm-256color")
    return env


class _TextPtyProcess:
    """Byte-oriented view over pywinpty's text ``PtyProcess``."""

    def __init__(self, process: object) -> None:
        self._process = process
        self.pid = process.pid

    def read(self, size: int = 4096) -> bytes:
        return self._process.read(size).encode("utf-8", errors="replace")

    def write(self, payload: bytes) -> object:
        return self._process.write(payload.decode("utf-8", errors="replace"))

    def setwinsize(self, rows: int, cols: int) -> None:
        self._process.setwinsize(rows, cols)

    def isalive(self) -> bool:
        return bool(self._process.isalive())

    def wait(self) -> object:
        return self._process.wait()

    def close(self, force: bool = True) -> None:
        self._process.close(force)

    def terminate(self, force: bool = False) -> object:
        return self._process.terminate(force)

    @property
    def exitstatus(self) -> int | None:
        return getattr(self._process, "exitstatus", None)


def _spawn_with_pywinpty(
    command: list[str],
    cwd: str | None,
    env: dict[str, str] | None,
    dimensions: tuple[int, int],
) -> object:
    try:
        from winpty import PtyProcess
    except Exception as exc:
        raise SpawnError(
            "pywinpty backend is unavailable.",
            hint="Install pywinpty on Windows.",
        ) from exc

    kwargs: dict[str, object] = {"dimensions": dimensions}
    if cwd:
        kwargs["cwd"] = cwd
    if env:
        kwargs["env"] = env
    return _TextPtyProcess(PtyProcess.spawn(subprocess.list2cmdline(command), **kwargs))


def _spawn_with_ptyprocess(
    command: list[str],
    cwd: str | None,
    env: dict[str, str] | None,
    dimensions: tuple[int, int],
) -> object:
    try:
        from ptyprocess import PtyProcess
    except Exception as exc:
        raise SpawnError(
            "ptyprocess backend is unavailable.",
            hint="Install the ptyprocess package.",
        ) from exc
    return PtyProcess.spawn(command, cwd=cwd, env=env, dimensions=dimensions)


def default_spawn() -> PtySpawn:
    if sys.platform.startswith("win"):
        return _spawn_with_pywinpty
    return _spawn_with_ptyprocess


class PtyBackend:
    def __init__(self, spawn: PtySpawn | None = None) -> None:
        self._spawn = spawn or default_spawn()
        self._lock = threading.Lock()
        self._sessions: dict[int, object] = {}
        self._handles: dict[int, PtyHandle] = {}
        atexit.register(self.stop_all)

    def start(
        self,
        command: list[str],
        *,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
        cols: int = 80,
        rows: int = 24,
    ) -> PtyHandle:
        if not command:
            raise SpawnError(
                "PTY command cannot be empty.",
                code=ExitCode.VALIDATION_ERROR,
                hint="Provide a shell command for the session.",
            )

        try:
            process = self._spawn(list(command), cwd, env, (rows, cols))
        except DevNexusError:
            raise
        except Exception as exc:
            raise SpawnError(
                f"Failed to start shell process: {command[0]}",
                hint=str(exc) or "Check shell installation and working directory.",
            ) from exc

        session_id = int(process.pid)
        handle = PtyHandle(session_id=session_id, command=tuple(command), cwd=cwd)
        with self._lock:
            self._sessions[session_id] = process
            self._handles[session_id] = handle
        return handle

    def write(self, session_id: int, payload: bytes) -> None:
        process = self._require_session(session_id)
        try:
            process.write(payload)
        except Exception as exc:
            raise DevNexusError(
                f"Failed to write to session {session_id}.",
                code=ExitCode.TERMINAL_ERROR,
                hint=str(exc) or "Verify terminal process health.",
            ) from exc

    def read(self, session_id: int, *, max_bytes: int = 4096) -> bytes:
        """Block for the next output chunk; raises ``EOFError`` at end of stream."""
        process = self._require_session(session_id)
        try:
            chunk = process.read(max_bytes)
        except EOFError:
            raise
        except Exception as exc:
            raise DevNexusError(
                f"Failed to read from session {session_id}.",
                code=ExitCode.TERMINAL_ERROR,
                hint=str(exc) or "Verify PTY stream state.",
            ) from exc

        if chunk is None:
            return b""
        if isinstance(chunk, str):
            return chunk.encode("utf-8", errors="replace")
        return bytes(chunk)

    def resize(self, session_id: int, *, cols: int, rows: int) -> None:
        if cols <= 0 or rows <= 0:
            raise DevNexusError(
                f"Invalid PTY size: {cols}x{rows}",
                code=ExitCode.VALIDATION_ERROR,
                hint="Use positive terminal row/column values.",
            )
        process = self._require_session(session_id)
        try:
            process.setwinsize(rows, cols)
        except Exception as exc:
            raise DevNexusError(
                f"Failed to resize session {session_id}.",
                code=ExitCode.TERMINAL_ERROR,
                hint=str(exc) or "Verify PTY backend supports resizing.",
            ) from exc

    def stop(self, session_id: int) -> None:
        process = self._pop(session_id)
        if process is None:
            raise DevNexusError(
                f"Session not running: {session_id}",
                code=ExitCode.VALIDATION_ERROR,
                hint="Select an active terminal session.",
            )
        self._close_session(process)

    def reap(self, session_id: int) -> int | None:
        """Release an exited process and return its exit status if known."""
        process = self._pop(session_id)
        if process is None:
            return None
        status: object = None
        if not _is_alive(process):
            with suppress(Exception):
                status = process.wait()
        if status is None:
            status = getattr(process, "exitstatus", None)
        self._close_session(process)
        return status if isinstance(status, int) else None

    def stop_all(self) -> None:
        with self._lock:
            ids = list(self._sessions)
        for session_id in ids:
            process = self._pop(session_id)
            if process is None:
                continue
            self._close_session(process)

    def list_handles(self) -> list[PtyHandle]:
        with self._lock:
            return [self._handles[key] for key in sorted(self._handles)]

    def _pop(self, session_id: int) -> object | None:
        with self._lock:
            self._handles.pop(session_id, None)
            return self._sessions.pop(session_id, None)

    def _require_session(self, session_id: int) -> object:
        with self._lock:
            process = self._sessions.get(session_id)
        if process is None:
            raise DevNexusError(
                f"Session not running: {session_id}",
                code=ExitCode.VALIDATION_ERROR,
                hint="Start the session before PTY I/O operations.",
            )
        return process

    def _close_session(self, process: object) -> None:
        alive = _is_alive(process)
        if hasattr(process, "close"):
            try:
                process.close()
            except TypeError:
                process.close(True)
            except Exception:
                pass
        if alive and _is_alive(process):
            if hasattr(process, "terminate"):
                with suppress(Exception):
                    process.terminate(True)
            elif hasattr(process, "kill"):
                with suppress(Exception):
                    process.kill()


def _is_alive(process: object) -> bool:
    if hasattr(process, "isalive"):
        try:
            return bool(process.isalive())
        except Exception:
            return True
    return True
