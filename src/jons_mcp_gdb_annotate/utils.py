"""Utility functions for the GDB annotation MCP server."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .exceptions import SessionNotFoundError, SessionTornDownError

if TYPE_CHECKING:
    from .gdb_client import DebugSession
    from .session import Session


def paginate_text(
    text: str,
    limit: int | None = None,
    offset: int | None = None,
) -> dict[str, Any]:
    """Paginate text output by character count.

    Args:
        text: The text to paginate.
        limit: Maximum number of characters to return.
        offset: Starting character position.

    Returns:
        Dictionary with content, pagination metadata.
    """
    total_chars = len(text)
    offset = offset or 0

    if limit is None:
        content = text[offset:]
        has_more = False
    else:
        end = offset + limit
        content = text[offset:end]
        has_more = end < total_chars

    return {
        "content": content,
        "total_chars": total_chars,
        "offset": offset,
        "limit": limit,
        "has_more": has_more,
    }


def validate_session(
    sessions: dict[str, "DebugSession"],
    session_id: str,
    require_alive: bool = True,
) -> "DebugSession":
    """Validate session exists and optionally that gdb is still attached.

    Args:
        sessions: Dictionary of session_id to DebugSession.
        session_id: The session ID to validate.
        require_alive: If True, require the engine not to be torn down.

    Returns:
        The validated DebugSession.

    Raises:
        SessionNotFoundError: If session is not found.
        SessionTornDownError: If the session is required alive but is not.
    """
    if session_id not in sessions:
        raise SessionNotFoundError(session_id)

    session = sessions[session_id]

    if require_alive and session.engine.torn_down:
        raise SessionTornDownError()

    return session


def engine_snapshot(engine: "Session") -> dict[str, Any]:
    """Summarize engine state for diagnostics."""
    current = engine.current_item
    return {
        "sink": engine.sink.value,
        "prompting": engine.prompting,
        "at_subprompt": engine.at_subprompt,
        "running": engine.running,
        "current_command": current.text if current else None,
        "input_queue": [c.text for c in engine.input_queue],
        "idle_queue": [c.text for c in engine.idle_queue],
        "pending_triggers": sorted(engine.pending_triggers),
        "location": str(engine.location) if engine.location else None,
        "frame_address": engine.frame_address,
        "exit_status": engine.exit_status,
        "last_signal": engine.last_signal,
        "burst_bytes": len(engine.burst),
    }


def format_error_response(error: str, **extra_fields: Any) -> dict[str, Any]:
    """Create consistent error response.

    Args:
        error: The error message.
        **extra_fields: Additional fields to include in response.

    Returns:
        Dictionary with status="error" and error message.
    """
    response: dict[str, Any] = {"status": "error", "error": error}
    response.update(extra_fields)
    return response
