"""Output routing and the sink state machine.

Plain text between annotations goes to exactly one destination, chosen
solely by ``session.sink``:

    USER                   transcript
    INFERIOR               debuggee I/O
    EMACS                  in-flight engine command's private buffer
    PRE_EMACS, POST_EMACS  discarded

Every transition below is driven by an annotation handler. An annotation
that arrives in a sink state which cannot accept it resets the sink to USER
and raises ProtocolError, so no later output is silently lost.
"""

from __future__ import annotations

import logging

from .exceptions import ProtocolError
from .session import Session, SinkState

logger = logging.getLogger(__name__)


def route(session: Session, text: str) -> None:
    """Deliver a span of plain gdb output to the current sink."""
    if not text:
        return
    sink = session.sink
    if sink is SinkState.USER:
        session.host.append_transcript(text)
    elif sink is SinkState.INFERIOR:
        session.host.append_inferior_io(text)
    elif sink is SinkState.EMACS:
        session.partial_output.append(text)
    else:
        logger.debug(f"Discarding {len(text)} chars in sink {sink.value}")


def _phase_error(session: Session, tag: str) -> ProtocolError:
    error = ProtocolError(tag, session.sink.value)
    session.sink = SinkState.USER
    return error


def starting(session: Session) -> None:
    if session.sink is not SinkState.USER:
        raise _phase_error(session, "starting")
    session.sink = SinkState.INFERIOR
    session.running = True


def stopping(session: Session, tag: str) -> None:
    """Handle exited/signalled/signal/breakpoint/watchpoint."""
    if session.sink is SinkState.INFERIOR:
        session.sink = SinkState.USER
    elif session.sink is not SinkState.USER:
        raise _phase_error(session, tag)


def stopped(session: Session) -> None:
    stopping(session, "stopped")
    session.running = False


def pre_prompt(session: Session) -> None:
    """Close the accumulation buffer and hand it to the command's handler."""
    sink = session.sink
    if sink is SinkState.USER:
        return
    if sink is not SinkState.EMACS:
        raise _phase_error(session, "pre-prompt")
    session.sink = SinkState.POST_EMACS
    session.item_completed = True
    item = session.current_item
    payload = "".join(session.partial_output)
    if item is not None and item.handler is not None:
        item.handler(session, payload)


def post_prompt(session: Session) -> None:
    """Start accumulating output for an engine-issued command."""
    sink = session.sink
    if sink is SinkState.USER:
        return
    if sink is not SinkState.PRE_EMACS:
        raise _phase_error(session, "post-prompt")
    session.sink = SinkState.EMACS


def prompt(session: Session) -> None:
    sink = session.sink
    if sink is SinkState.USER:
        return
    if sink is not SinkState.POST_EMACS:
        raise _phase_error(session, "prompt")
    session.sink = SinkState.USER
