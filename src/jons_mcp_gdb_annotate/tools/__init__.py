"""MCP tools for gdb debugging."""

from .breakpoints import list_breakpoints, remove_breakpoint, set_breakpoint
from .diagnostics import read_inferior_output, read_transcript, session_diagnostics
from .execution import continue_execution, finish, next, run, send_command, step
from .session import list_sessions, start_debug, stop_debug
from .views import close_view, get_view, list_views, open_view

__all__ = [
    # Session management
    "start_debug",
    "stop_debug",
    "list_sessions",
    # Commands and execution control
    "send_command",
    "run",
    "continue_execution",
    "step",
    "next",
    "finish",
    # Breakpoints
    "set_breakpoint",
    "remove_breakpoint",
    "list_breakpoints",
    # Views
    "open_view",
    "close_view",
    "get_view",
    "list_views",
    # Output and diagnostics
    "read_transcript",
    "read_inferior_output",
    "session_diagnostics",
]
