"""Terminal session multiplexer: spawn, route, stream, resize, dispose."""

from __future__ import annotations

import logging as py_logging
import threading
from dataclasses import dataclass, field, replace

from devnexus.container.runtime import ContainerRuntime
from devnexus.errors import DevNexusError
from devnexus.session.router import RouteDecision, SessionRouter
from devnexus.terminal.channel import EventChannel
from devnexus.terminal.models import (
    ExitEvent,
    OutputEvent,
    SessionState,
    SessionTarget,
    TerminalSession,
)
from devnexus.terminal.pty_backend import (
    PtyBackend,
    build_host_shell_command,
    host_shell_environment,
)

logger = py_logging.getLogger(__name__)

READ_CHUNK_BYTES = 4096


@dataclass
class _LiveSession:
    session: TerminalSession
    channel: EventChannel
    write_lock: threading.Lock = field(default_factory=threading.Lock)


class TerminalSessionManager:
    def __init__(
        self,
        router: SessionRouter,
        *,
        runtime: ContainerRuntime | None = None,
        pty_backend: PtyBackend | None = None,
        host_shell: str = "",
        container_shell: str = "/bin/bash",
        default_cols: int = 80,
        default_rows: int = 24,
    ) -> None:
        self.router = router
        self.runtime = runtime or ContainerRuntime()
        self._backend = pty_backend or PtyBackend()
        self.host_shell = host_shell
        self.container_shell = container_shell
        self.default_cols = default_cols
        self.default_rows = default_rows
        self._lock = threading.Lock()
        self._live: dict[int, _LiveSession] = {}
        self._subscribers: list[EventChannel] = []

    def create(self, working_directory: str | None = None) -> int:
        decision = self.router.route(working_directory)
        command, cwd = self._command_for(decision)
        handle = self._backend.start(
            command,
            cwd=cwd,
            env=host_shell_environment(),
            cols=self.default_cols,
            rows=self.default_rows,
        )
        session_id = handle.session_id
        session = TerminalSession(
            session_id=session_id,
            target=decision.target,
            working_directory=decision.working_directory,
            container_id=decision.container_id,
            cols=self.default_cols,
            rows=self.default_rows,
        )
        live = _LiveSession(session=session, channel=EventChannel(session_id))
        with self._lock:
            self._live[session_id] = live

        reader = threading.Thread(
            target=self._pump,
            args=(session_id, live),
            name=f"devnexus-pty-{session_id}",
            daemon=True,
        )
        session.state = SessionState.STREAMING
        reader.start()
        logger.info(
            "session-event session=%s step=create target=%s cwd=%s container=%s",
            session_id,
            decision.target.value,
            decision.working_directory,
            decision.container_id or "-",
        )
        return session_id

    def write(self, session_id: int, data: bytes | str) -> None:
        live = self._get_live(session_id)
        if live is None:
            return
        payload = data.encode("utf-8") if isinstance(data, str) else bytes(data)
        with live.write_lock:
            try:
                self._backend.write(session_id, payload)
            except DevNexusError as exc:
                logger.debug("Dropped write to exiting session=%s: %s", session_id, exc.message)

    def resize(self, session_id: int, cols: int, rows: int) -> None:
        live = self._get_live(session_id)
        if live is None:
            return
        try:
            self._backend.resize(session_id, cols=cols, rows=rows)
        except DevNexusError:
            if self._get_live(session_id) is None:
                return
            raise
        live.session.cols = cols
        live.session.rows = rows

    def dispose(self, session_id: int) -> None:
        with self._lock:
            live = self._live.pop(session_id, None)
        if live is None:
            return
        live.session.state = SessionState.TERMINATED
        try:
            self._backend.stop(session_id)
        except DevNexusError:
            logger.debug("Session already reaped before dispose session=%s", session_id)
        logger.info("session-event session=%s step=dispose", session_id)

    def dispose_all(self) -> None:
        with self._lock:
            ids = list(self._live)
        for session_id in ids:
            self.dispose(session_id)

    def channel(self, session_id: int) -> EventChannel | None:
        live = self._get_live(session_id)
        return live.channel if live is not None else None

    def subscribe(self) -> EventChannel:
        channel = EventChannel()
        with self._lock:
            self._subscribers.append(channel)
        return channel

    def unsubscribe(self, channel: EventChannel) -> None:
        channel.close()
        with self._lock:
            if channel in self._subscribers:
                self._subscribers.remove(channel)

    def get(self, session_id: int) -> TerminalSession | None:
        live = self._get_live(session_id)
        return replace(live.session, metadata=dict(live.session.metadata)) if live else None

    def list_sessions(self) -> list[TerminalSession]:
        with self._lock:
            sessions = [live.session for _, live in sorted(self._live.items())]
        return [replace(session, metadata=dict(session.metadata)) for session in sessions]

    def _command_for(self, decision: RouteDecision) -> tuple[list[str], str | None]:
        if decision.target == SessionTarget.CONTAINER:
            command = self.runtime.interactive_shell_command(
                decision.container_id,
                shell=self.container_shell,
                workdir=decision.working_directory,
                user=decision.remote_user,
            )
            return command, None
        return build_host_shell_command(override=self.host_shell), decision.working_directory

    def _get_live(self, session_id: int) -> _LiveSession | None:
        with self._lock:
            return self._live.get(session_id)

    def _pump(self, session_id: int, live: _LiveSession) -> None:
        while True:
            try:
                chunk = self._backend.read(session_id, max_bytes=READ_CHUNK_BYTES)
            except (EOFError, DevNexusError):
                break
            if chunk:
                self._publish(live.channel, OutputEvent(session_id=session_id, data=chunk))

        exit_code = self._backend.reap(session_id)
        with self._lock:
            if self._live.get(session_id) is live:
                del self._live[session_id]
        live.session.state = SessionState.TERMINATED
        self._publish(live.channel, ExitEvent(session_id=session_id, exit_code=exit_code))
        logger.info("session-event session=%s step=exit code=%s", session_id, exit_code)

    def _publish(self, channel: EventChannel, event: OutputEvent | ExitEvent) -> None:
        channel.publish(event)
        with self._lock:
            subscribers = [item for item in self._subscribers if not item.closed]
            self._subscribers = subscribers
        for subscriber in subscribers:
            subscriber.publish(event)
