"""Custom exceptions for the GDB annotation MCP server."""

from __future__ import annotations


class DebuggerError(Exception):
    """Base exception for all debugger errors."""

    def __init__(self, message: str, is_retryable: bool = False) -> None:
        super().__init__(message)
        self.message = message
        self.is_retryable = is_retryable


class SessionNotFoundError(DebuggerError):
    """Raised when a session ID is not found."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class LaunchError(DebuggerError):
    """Raised when the gdb subprocess cannot be started."""

    def __init__(self, error_string: str) -> None:
        super().__init__(f"Launch failed: {error_string}")
        self.error_string = error_string


class ProtocolError(DebuggerError):
    """Raised when an annotation arrives in a sink state that cannot accept it.

    The sink has already been reset to ``SinkState.USER`` by the time this
    is raised.
    """

    def __init__(self, tag: str, sink: str) -> None:
        super().__init__(f"Unexpected annotation '{tag}' (sink was {sink})")
        self.tag = tag
        self.sink = sink


class QueueUnderflowError(DebuggerError):
    """Raised when a command queue is popped while empty."""

    def __init__(self, queue_name: str) -> None:
        super().__init__(f"Command queue underflow: {queue_name}")
        self.queue_name = queue_name


class SessionTornDownError(DebuggerError):
    """Raised when a torn-down session is fed or sent commands."""

    def __init__(self) -> None:
        super().__init__("Session has been torn down")


class UnknownViewError(DebuggerError):
    """Raised when a view id is not registered."""

    def __init__(self, view_id: str) -> None:
        super().__init__(f"Unknown view: {view_id}")
        self.view_id = view_id
