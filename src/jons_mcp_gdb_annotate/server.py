"""FastMCP server for debugging through GDB's annotation protocol."""

from __future__ import annotations

import functools
import logging
import os
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from mcp.server.fastmcp import FastMCP

from .exceptions import (
    DebuggerError,
    LaunchError,
    SessionNotFoundError,
    SessionTornDownError,
    UnknownViewError,
)
from .gdb_client import CONFIG_FILE, GdbDebugClient
from .utils import format_error_response

# Configure logging
logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "WARNING"),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Global debug client (set during lifespan)
debug_client: GdbDebugClient | None = None


@asynccontextmanager
async def lifespan(mcp: FastMCP) -> AsyncIterator[None]:
    """Manage lifecycle of the gdb debug client."""
    global debug_client

    debug_client = GdbDebugClient()

    try:
        yield
    finally:
        if debug_client:
            debug_client._cleanup_all_sessions()
        debug_client = None


def ensure_debug_client() -> GdbDebugClient:
    """Get the debug client or raise if not initialized.

    Returns:
        The global GdbDebugClient instance.

    Raises:
        RuntimeError: If debug client is not initialized.
    """
    if debug_client is None:
        raise RuntimeError("Debug client not initialized")
    return debug_client


def _error_details(error: DebuggerError) -> dict[str, Any]:
    """Extra response fields telling the caller how to recover."""
    details: dict[str, Any] = {"error_type": type(error).__name__}
    if error.is_retryable:
        details["retryable"] = True

    if isinstance(error, SessionTornDownError):
        # gdb is gone; the session id is only good for stop_debug now
        details["session_alive"] = False
        details["hint"] = "gdb has exited, use start_debug to begin a new session"
    elif isinstance(error, SessionNotFoundError):
        details["session_id"] = error.session_id
        details["hint"] = "Use list_sessions to see active sessions"
    elif isinstance(error, UnknownViewError):
        details["view"] = error.view_id
        details["hint"] = "Use list_views to see the views this session keeps"
    elif isinstance(error, LaunchError):
        details["hint"] = f"Set gdb_path in {CONFIG_FILE} if gdb is not on PATH"
    return details


def handle_debugger_error(func):
    """Decorator to convert DebuggerError to error response dict."""

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> dict[str, Any]:
        try:
            return await func(*args, **kwargs)
        except DebuggerError as e:
            logger.debug(f"{func.__name__} failed: {e}")
            return format_error_response(str(e), **_error_details(e))

    return wrapper


# Create FastMCP server with lifespan
mcp = FastMCP(
    "gdb-annotate-mcp",
    lifespan=lifespan,
)


def _register_tools() -> None:
    """Register all MCP tools with the server."""
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

    # Session management (3 tools)
    mcp.tool()(start_debug)
    mcp.tool()(stop_debug)
    mcp.tool()(list_sessions)

    # Commands and execution control (6 tools)
    mcp.tool()(send_command)
    mcp.tool()(run)
    mcp.tool()(continue_execution)
    mcp.tool()(step)
    mcp.tool()(next)
    mcp.tool()(finish)

    # Breakpoints (3 tools)
    mcp.tool()(set_breakpoint)
    mcp.tool()(remove_breakpoint)
    mcp.tool()(list_breakpoints)

    # Views (4 tools)
    mcp.tool()(open_view)
    mcp.tool()(close_view)
    mcp.tool()(get_view)
    mcp.tool()(list_views)

    # Output and diagnostics (3 tools)
    mcp.tool()(read_transcript)
    mcp.tool()(read_inferior_output)
    mcp.tool()(session_diagnostics)


# Register tools at module load time
_register_tools()


def main() -> None:
    """Main entry point for the MCP server."""
    mcp.run()


if __name__ == "__main__":
    main()
