"""Auto-refreshing view tools."""

from __future__ import annotations

from typing import Any

from ..server import ensure_debug_client, handle_debugger_error
from ..utils import format_error_response, paginate_text, validate_session


@handle_debugger_error
async def open_view(session_id: str, view: str) -> dict[str, Any]:
    """Open a view and request its first refresh.

    Open views are re-queried whenever gdb reports a relevant state change
    (stopping, frame changes, breakpoint edits). Refreshes run only while
    gdb is otherwise idle and never overtake user commands.

    Args:
        session_id: The session identifier
        view: One of "breakpoints", "stack", "registers", "locals",
            "disassembly"

    Returns:
        Dictionary with status and whether a refresh was queued
    """
    client = ensure_debug_client()
    triggered = client.open_view(session_id, view)
    return {"status": "opened", "view": view, "refresh_queued": triggered}


@handle_debugger_error
async def close_view(session_id: str, view: str) -> dict[str, Any]:
    """Close a view; it stops being refreshed.

    Args:
        session_id: The session identifier
        view: The view name

    Returns:
        Dictionary with status
    """
    client = ensure_debug_client()
    if not client.close_view(session_id, view):
        return format_error_response(f"View not open: {view}", view=view)
    return {"status": "closed", "view": view}


@handle_debugger_error
async def get_view(
    session_id: str,
    view: str,
    limit: int | None = None,
    offset: int | None = None,
) -> dict[str, Any]:
    """Get the latest contents of an open view.

    Args:
        session_id: The session identifier
        view: The view name
        limit: Maximum number of characters to return (for pagination)
        offset: Starting character position (for pagination)

    Returns:
        Dictionary with the view contents and whether a refresh is pending
    """
    client = ensure_debug_client()
    contents = client.view_contents(session_id, view)
    if contents is None:
        return format_error_response(f"View not open: {view}", view=view)

    session = validate_session(client.sessions, session_id, require_alive=False)
    result = paginate_text(contents, limit, offset)
    result["view"] = view
    result["refresh_pending"] = view in session.engine.pending_triggers
    result["refresh_count"] = session.host.refresh_counts.get(view, 0)
    return result


@handle_debugger_error
async def list_views(session_id: str) -> dict[str, Any]:
    """List the views available in a session and which are open.

    Args:
        session_id: The session identifier

    Returns:
        Dictionary with the view list
    """
    client = ensure_debug_client()
    session = validate_session(client.sessions, session_id, require_alive=False)

    views = []
    for descriptor in session.engine.views:
        views.append(
            {
                "view": descriptor.id,
                "command": descriptor.protocol_command,
                "open": session.host.buffer_exists(descriptor.id),
                "refresh_pending": descriptor.id in session.engine.pending_triggers,
            }
        )
    return {"views": views}
