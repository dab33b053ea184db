"""Two-tier outbound command queues."""

from __future__ import annotations

import logging
from collections import deque

from .constants import NEWLINE
from .exceptions import QueueUnderflowError
from .session import Command, Session, SinkState

logger = logging.getLogger(__name__)


def as_command(command: Command | str) -> Command:
    """Wrap a raw string as a user command."""
    if isinstance(command, Command):
        return command
    return Command(command)


def _release_current(session: Session) -> None:
    """Forget the in-flight item, freeing its view if it never completed."""
    item = session.current_item
    if item is not None and item.view_id is not None and not session.item_completed:
        session.pending_triggers.discard(item.view_id)
        logger.warning(f"Refresh of view {item.view_id} abandoned")
    session.current_item = None


def send_item(session: Session, command: Command) -> None:
    """Write ``command`` to gdb and make it the in-flight item."""
    _release_current(session)
    session.current_item = command
    session.item_completed = False
    session.prompting = False
    if command.from_user:
        session.sink = SinkState.USER
    else:
        session.partial_output.clear()
        session.sink = SinkState.PRE_EMACS

    data = command.text.encode("utf-8")
    if not data.endswith(NEWLINE):
        data += NEWLINE
    logger.debug(f"Sending command to gdb: {command.text.rstrip()}")
    session.process.stdin.write(data)
    session.process.stdin.flush()


def _dequeue(queue: deque[Command], queue_name: str) -> Command:
    if not queue:
        raise QueueUnderflowError(queue_name)
    return queue.popleft()


def enqueue_high(session: Session, command: Command | str) -> bool:
    """Queue a command ahead of all idle work.

    Returns:
        True if the command was written immediately, False if it was queued.
    """
    session.ensure_alive()
    command = as_command(command)
    if session.prompting:
        send_item(session, command)
        return True
    session.input_queue.append(command)
    return False


def enqueue_idle(session: Session, command: Command | str) -> bool:
    """Queue a housekeeping command behind all high-priority work.

    Idle commands are never used to answer a subprompt, so they only go out
    immediately when gdb sits at a top-level prompt with nothing else queued.

    Returns:
        True if the command was written immediately, False if it was queued.
    """
    session.ensure_alive()
    command = as_command(command)
    if session.prompting and not session.at_subprompt and not session.input_queue:
        send_item(session, command)
        return True
    session.idle_queue.append(command)
    return False


def handle_prompt(session: Session) -> None:
    """gdb is at a top-level prompt: send the next command or go idle."""
    session.at_subprompt = False
    _release_current(session)
    if session.input_queue:
        send_item(session, _dequeue(session.input_queue, "input"))
    elif session.idle_queue:
        send_item(session, _dequeue(session.idle_queue, "idle"))
    else:
        session.prompting = True
        session.host.display_frame()


def handle_subprompt(session: Session) -> None:
    """gdb is asking a nested question; only user input may answer it."""
    session.at_subprompt = True
    if session.input_queue:
        send_item(session, _dequeue(session.input_queue, "input"))
    else:
        session.prompting = True
