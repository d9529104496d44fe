"""Terminal session domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from devnexus.session.router import SessionTarget


class SessionState(str, Enum):
    CREATED = "created"
    STREAMING = "streaming"
    TERMINATED = "terminated"


@dataclass
class TerminalSession:
    session_id: int
    target: SessionTarget
    working_directory: str
    container_id: str = ""
    state: SessionState = SessionState.CREATED
    cols: int = 80
    rows: int = 24
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class OutputEvent:
    session_id: int
    data: bytes


@dataclass(frozen=True)
class ExitEvent:
    session_id: int
    exit_code: int | None = None


SessionEvent = OutputEvent | ExitEvent
