"""Terminal session multiplexing."""

from .channel import EventChannel
from .manager import TerminalSessionManager
from .models import ExitEvent, OutputEvent, SessionState, SessionTarget, TerminalSession
from .pty_backend import PtyBackend, PtyHandle, build_host_shell_command

__all__ = [
    "build_host_shell_command",
    "EventChannel",
    "ExitEvent",
    "OutputEvent",
    "PtyBackend",
    "PtyHandle",
    "SessionState",
    "SessionTarget",
    "TerminalSession",
    "TerminalSessionManager",
]
