"""MCP server driving gdb through its annotation protocol."""

from .annotations import ANNOTATION_HANDLERS, dispatch
from .burst import feed, flush_partial
from .commands import enqueue_high, enqueue_idle
from .constants import (
    CLEANUP_TIMEOUT,
    DEFAULT_PAGINATION_LIMIT,
    DEFAULT_PAGINATION_OFFSET,
    FINISH_TIMEOUT,
    POLL_INTERVAL,
    RUN_TIMEOUT,
    STEP_TIMEOUT,
)
from .exceptions import (
    DebuggerError,
    LaunchError,
    ProtocolError,
    QueueUnderflowError,
    SessionNotFoundError,
    SessionTornDownError,
    UnknownViewError,
)
from .gdb_client import BufferHost, Config, DebugSession, GdbDebugClient
from .router import route
from .server import debug_client, ensure_debug_client, main, mcp
from .session import (
    Command,
    FrameLocation,
    Host,
    Session,
    SinkState,
    create_session,
    teardown,
)
from .tools import (
    close_view,
    continue_execution,
    finish,
    get_view,
    list_breakpoints,
    list_sessions,
    list_views,
    next,
    open_view,
    read_inferior_output,
    read_transcript,
    remove_breakpoint,
    run,
    send_command,
    session_diagnostics,
    set_breakpoint,
    start_debug,
    step,
    stop_debug,
)
from .views import (
    ViewDescriptor,
    ViewRegistry,
    default_registry,
    make_view,
    trigger,
)

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Constants
    "RUN_TIMEOUT",
    "STEP_TIMEOUT",
    "FINISH_TIMEOUT",
    "CLEANUP_TIMEOUT",
    "POLL_INTERVAL",
    "DEFAULT_PAGINATION_LIMIT",
    "DEFAULT_PAGINATION_OFFSET",
    # Exceptions
    "DebuggerError",
    "SessionNotFoundError",
    "LaunchError",
    "ProtocolError",
    "QueueUnderflowError",
    "SessionTornDownError",
    "UnknownViewError",
    # Protocol engine
    "Session",
    "SinkState",
    "Command",
    "FrameLocation",
    "Host",
    "create_session",
    "teardown",
    "feed",
    "flush_partial",
    "route",
    "dispatch",
    "ANNOTATION_HANDLERS",
    "enqueue_high",
    "enqueue_idle",
    "ViewDescriptor",
    "ViewRegistry",
    "default_registry",
    "make_view",
    "trigger",
    # Client classes
    "Config",
    "BufferHost",
    "DebugSession",
    "GdbDebugClient",
    # Server
    "mcp",
    "debug_client",
    "ensure_debug_client",
    "main",
    # Tools - Session management
    "start_debug",
    "stop_debug",
    "list_sessions",
    # Tools - Commands and execution control
    "send_command",
    "run",
    "continue_execution",
    "step",
    "next",
    "finish",
    # Tools - Breakpoints
    "set_breakpoint",
    "remove_breakpoint",
    "list_breakpoints",
    # Tools - Views
    "open_view",
    "close_view",
    "get_view",
    "list_views",
    # Tools - Output and diagnostics
    "read_transcript",
    "read_inferior_output",
    "session_diagnostics",
]
