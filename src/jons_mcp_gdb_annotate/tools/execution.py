"""Command and execution control tools for gdb debugging."""

from __future__ import annotations

from typing import Any

from ..constants import FINISH_TIMEOUT, RUN_TIMEOUT, STEP_TIMEOUT
from ..server import ensure_debug_client, handle_debugger_error
from ..utils import paginate_text


def _with_pagination(
    result: dict[str, Any], limit: int | None, offset: int | None
) -> dict[str, Any]:
    if "output" in result:
        output = paginate_text(result.pop("output"), limit, offset)
        result["output"] = output["content"]
        result["pagination"] = {
            k: output[k] for k in ("total_chars", "offset", "limit", "has_more")
        }
    return result


@handle_debugger_error
async def send_command(
    session_id: str,
    command: str,
    wait: bool = True,
    timeout: float = STEP_TIMEOUT,
    limit: int | None = None,
    offset: int | None = None,
) -> dict[str, Any]:
    """Send a command to gdb as if typed by the user.

    User commands always go ahead of pending view refreshes. If gdb is busy
    the command is queued and sent at its next prompt; it also answers a
    pending question such as "(y or n)".

    Args:
        session_id: The session identifier
        command: gdb command line, e.g. "info frame"
        wait: Wait until gdb is idle again and return the output
        timeout: Seconds to wait when wait is true
        limit: Maximum number of characters to return (for pagination)
        offset: Starting character position (for pagination)

    Returns:
        Dictionary with status ("sent", "queued", "completed", "timeout" or
        "exited") and, when waiting, the transcript output
    """
    client = ensure_debug_client()
    result = client.send_command(session_id, command, wait=wait, timeout=timeout)
    return _with_pagination(result, limit, offset)


async def run(
    session_id: str,
    limit: int | None = None,
    offset: int | None = None,
) -> dict[str, Any]:
    """Start the program from the beginning.

    Args:
        session_id: The session identifier
        limit: Maximum number of characters to return (for pagination)
        offset: Starting character position (for pagination)

    Returns:
        Dictionary with status and transcript output
    """
    return await send_command(
        session_id, "run", timeout=RUN_TIMEOUT, limit=limit, offset=offset
    )


async def continue_execution(
    session_id: str,
    limit: int | None = None,
    offset: int | None = None,
) -> dict[str, Any]:
    """Continue execution until the next stop."""
    return await send_command(
        session_id, "continue", timeout=RUN_TIMEOUT, limit=limit, offset=offset
    )


async def step(session_id: str, count: int = 1) -> dict[str, Any]:
    """Step into the next source line.

    Args:
        session_id: The session identifier
        count: Number of lines to step

    Returns:
        Dictionary with status and transcript output
    """
    return await send_command(session_id, f"step {count}", timeout=STEP_TIMEOUT)


async def next(session_id: str, count: int = 1) -> dict[str, Any]:
    """Step over the next source line.

    Args:
        session_id: The session identifier
        count: Number of lines to step over

    Returns:
        Dictionary with status and transcript output
    """
    return await send_command(session_id, f"next {count}", timeout=STEP_TIMEOUT)


async def finish(session_id: str) -> dict[str, Any]:
    """Run until the current function returns."""
    return await send_command(session_id, "finish", timeout=FINISH_TIMEOUT)
