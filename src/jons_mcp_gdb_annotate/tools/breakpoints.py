"""Breakpoint management tools for gdb debugging."""

from __future__ import annotations

from typing import Any

from ..constants import STEP_TIMEOUT, VIEW_BREAKPOINTS
from ..server import ensure_debug_client, handle_debugger_error
from ..utils import validate_session


@handle_debugger_error
async def set_breakpoint(
    session_id: str,
    location: str,
    condition: str | None = None,
    temporary: bool = False,
) -> dict[str, Any]:
    """Set a breakpoint.

    Args:
        session_id: The session identifier
        location: Any gdb location: "main.c:25", "my_function", "*0x401000"
        condition: Conditional expression
        temporary: If true, breakpoint is removed after first hit

    Returns:
        Dictionary with status and gdb's response

    Examples:
        set_breakpoint(session_id, location="main.c:25")
        set_breakpoint(session_id, location="parse_args", condition="argc > 2")
    """
    client = ensure_debug_client()
    command = f"{'tbreak' if temporary else 'break'} {location}"
    if condition:
        command += f" if {condition}"
    return client.send_command(session_id, command, wait=True)


@handle_debugger_error
async def remove_breakpoint(session_id: str, breakpoint_id: int) -> dict[str, Any]:
    """Remove a breakpoint.

    Args:
        session_id: The session identifier
        breakpoint_id: gdb's breakpoint number

    Returns:
        Dictionary with status
    """
    client = ensure_debug_client()
    return client.send_command(session_id, f"delete {breakpoint_id}", wait=True)


@handle_debugger_error
async def list_breakpoints(session_id: str) -> dict[str, Any]:
    """Show the breakpoints view.

    The view is opened on first use and refreshed whenever gdb reports that
    breakpoints changed.

    Args:
        session_id: The session identifier

    Returns:
        Dictionary with the latest "info breakpoints" output
    """
    client = ensure_debug_client()
    session = validate_session(client.sessions, session_id)

    if not session.host.buffer_exists(VIEW_BREAKPOINTS):
        client.open_view(session_id, VIEW_BREAKPOINTS)
        client.wait_for_prompt(session, timeout=STEP_TIMEOUT)

    return {
        "breakpoints": client.view_contents(session_id, VIEW_BREAKPOINTS) or "",
        "pending": VIEW_BREAKPOINTS in session.engine.pending_triggers,
    }
