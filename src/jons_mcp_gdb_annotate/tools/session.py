"""Session management tools for gdb debugging."""

from __future__ import annotations

from typing import Any

from ..server import ensure_debug_client
from ..utils import format_error_response


async def start_debug(
    program: str | None = None,
    args: list[str] | None = None,
    root_directory: str | None = None,
) -> dict[str, Any]:
    """Start a new gdb debugging session.

    gdb runs with ``--annotate=2``; its output is split into the session
    transcript, the program's own I/O and the auto-refreshing views.

    Args:
        program: Path of the executable to debug. gdb starts without a
            program when omitted (use ``file`` or ``attach`` later).
        args: Command line arguments for the program.
        root_directory: Directory gdb is started in. Relative program paths
            are resolved from here.

    Returns:
        Dictionary with session_id and status

    Examples:
        start_debug(program="./build/app", args=["--verbose"],
                    root_directory="/path/to/project")
    """
    try:
        client = ensure_debug_client()

        original_working_dir = None
        if root_directory:
            original_working_dir = client.config.working_directory
            client.config.working_directory = root_directory

        try:
            session_id = client.create_session(
                program=program or "",
                args=args or [],
            )
            return {
                "session_id": session_id,
                "status": "started",
                "debugger": "gdb-annotate",
            }
        finally:
            # Restore original working directory
            if original_working_dir is not None:
                client.config.working_directory = original_working_dir
    except Exception as e:
        return format_error_response(str(e))


async def stop_debug(session_id: str) -> dict[str, Any]:
    """Stop an active debugging session.

    Queued commands and pending view refreshes are discarded.

    Args:
        session_id: The session identifier

    Returns:
        Dictionary with status
    """
    client = ensure_debug_client()

    if session_id not in client.sessions:
        return format_error_response("Session not found", session_id=session_id)

    try:
        client.stop_session_async(session_id)
        return {"status": "stopped"}
    except Exception as e:
        return format_error_response(str(e))


async def list_sessions() -> dict[str, Any]:
    """List all active debugging sessions.

    Returns:
        Dictionary with list of sessions
    """
    client = ensure_debug_client()

    sessions = []
    for session_id, session in client.sessions.items():
        engine = session.engine
        sessions.append(
            {
                "session_id": session_id,
                "program": session.program,
                "alive": not engine.torn_down,
                "running": engine.running,
                "prompting": engine.prompting,
                "debugger": "gdb-annotate",
            }
        )

    return {"sessions": sessions}
