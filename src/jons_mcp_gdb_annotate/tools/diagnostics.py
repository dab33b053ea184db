"""Transcript and diagnostic tools for gdb debugging."""

from __future__ import annotations

from typing import Any

from ..server import ensure_debug_client, handle_debugger_error
from ..utils import engine_snapshot, paginate_text, validate_session


@handle_debugger_error
async def read_transcript(
    session_id: str,
    limit: int | None = None,
    offset: int | None = None,
) -> dict[str, Any]:
    """Read the gdb console transcript (what a user at the terminal sees).

    Args:
        session_id: The session identifier
        limit: Maximum number of characters to return (for pagination)
        offset: Starting character position (for pagination)

    Returns:
        Dictionary with content and pagination metadata
    """
    client = ensure_debug_client()
    session = validate_session(client.sessions, session_id, require_alive=False)
    with session._lock:
        text = session.host.transcript
    return paginate_text(text, limit, offset)


@handle_debugger_error
async def read_inferior_output(
    session_id: str,
    limit: int | None = None,
    offset: int | None = None,
) -> dict[str, Any]:
    """Read everything the debugged program printed while running.

    Args:
        session_id: The session identifier
        limit: Maximum number of characters to return (for pagination)
        offset: Starting character position (for pagination)

    Returns:
        Dictionary with content and pagination metadata
    """
    client = ensure_debug_client()
    session = validate_session(client.sessions, session_id, require_alive=False)
    with session._lock:
        text = session.host.inferior_io
    return paginate_text(text, limit, offset)


@handle_debugger_error
async def session_diagnostics(session_id: str) -> dict[str, Any]:
    """Get diagnostic information about the protocol engine.

    Useful when gdb appears stuck: shows the output sink, both command
    queues, pending view refreshes and any protocol errors seen.

    Args:
        session_id: The session identifier

    Returns:
        Dictionary with engine state and process info
    """
    client = ensure_debug_client()
    session = validate_session(client.sessions, session_id, require_alive=False)

    with session._lock:
        engine = engine_snapshot(session.engine)
        diagnostics = list(session.host.diagnostics)

    return {
        "session_id": session_id,
        "program": session.program,
        "args": session.args,
        "pid": getattr(session.process, "pid", None),
        "returncode": session.process.poll(),
        "engine": engine,
        "protocol_errors": diagnostics,
        "open_views": sorted(session.host.buffers),
    }
