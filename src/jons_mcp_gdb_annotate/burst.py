"""Splitting raw gdb output into plain text and annotations.

gdb running with ``--annotate=2`` marks protocol events with lines of the
form::

    \\x1a\\x1a<tag>[ <args>]\\n

starting at the beginning of a line. Output arrives in reads of arbitrary
size, so a marker can straddle two reads. The unconsumed tail (the "burst")
is kept on the session: complete lines are flushed as plain text, while the
last newline and the unterminated line after it stay behind until more
input shows whether they begin a marker.
"""

from __future__ import annotations

import codecs
import logging
import re

from .annotations import dispatch
from .constants import ANNOTATION_PREFIX, NEWLINE
from .exceptions import ProtocolError, QueueUnderflowError
from .router import route
from .session import Session, teardown

logger = logging.getLogger(__name__)

MARKER_PATTERN = re.compile(rb"^\x1a\x1a([^ \n]+)(?: ([^\n]*))?\n", re.MULTILINE)


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def feed(session: Session, chunk: bytes) -> None:
    """Consume a chunk of gdb stdout.

    Plain text is routed and annotations are dispatched in stream order.
    Protocol errors are reported to the host and parsing continues.

    Raises:
        SessionTornDownError: The session has been torn down.
        QueueUnderflowError: Internal queue invariant broken; the session is
            torn down before this propagates.
    """
    session.ensure_alive()
    session.burst += chunk
    try:
        _drain(session)
    except QueueUnderflowError as e:
        logger.error(f"Aborting session: {e}")
        teardown(session)
        raise


def _drain(session: Session) -> None:
    while True:
        # A match at offset 0 only counts when burst begins a line
        match = MARKER_PATTERN.search(session.burst, 1 if session.mid_line else 0)
        if match is None:
            break
        text = session.burst[: match.start()]
        session.burst = session.burst[match.end() :]
        session.mid_line = False
        route(session, _decode(text))

        args = match.group(2)
        _dispatch_reporting(
            session,
            _decode(match.group(1)),
            _decode(args) if args is not None else None,
        )

    newline = session.burst.rfind(NEWLINE)
    if newline < 0:
        return
    text = session.burst[:newline]
    session.burst = session.burst[newline:]
    session.mid_line = False
    route(session, _decode(text))


def _dispatch_reporting(session: Session, tag: str, args: str | None) -> None:
    try:
        dispatch(session, tag, args)
    except ProtocolError as e:
        logger.warning(str(e))
        session.host.report_diagnostic(e.message)


def flush_partial(session: Session) -> bool:
    """Route a retained unterminated line that cannot start a marker.

    Called by the host when gdb has gone quiet, so output such as an
    inferior's input prompt is not held back waiting for a newline.

    Returns:
        True if anything was routed.
    """
    session.ensure_alive()
    burst = session.burst
    at_line_start = burst.startswith(NEWLINE) or not session.mid_line
    line = burst[1:] if burst.startswith(NEWLINE) else burst
    if not line:
        return False
    if at_line_start and ANNOTATION_PREFIX.startswith(line[:2]):
        return False
    # A multi-byte character split by the read stays behind until complete
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    text = decoder.decode(burst)
    held, _ = decoder.getstate()
    if not text:
        return False
    session.burst = held
    session.mid_line = True
    route(session, text)
    return True
