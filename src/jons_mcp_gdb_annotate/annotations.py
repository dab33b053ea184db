"""Annotation dispatch table."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from . import router
from .commands import handle_prompt, handle_subprompt
from .constants import (
    INVALIDATION_TRIGGERS,
    PAYLOAD_STRUCTURE_TAGS,
    STOPPING_TAGS,
    SUBPROMPT_TAGS,
)
from .session import FrameLocation, Session
from .views import trigger_many

logger = logging.getLogger(__name__)

AnnotationHandler = Callable[[Session, Optional[str]], None]


def _pre_prompt(session: Session, args: str | None) -> None:
    router.pre_prompt(session)


def _prompt(session: Session, args: str | None) -> None:
    try:
        router.prompt(session)
    finally:
        # gdb is at its prompt whether or not the phase was right
        handle_prompt(session)


def _subprompt(session: Session, args: str | None) -> None:
    handle_subprompt(session)


def _post_prompt(session: Session, args: str | None) -> None:
    router.post_prompt(session)


def _starting(session: Session, args: str | None) -> None:
    router.starting(session)


def _stopping_handler(tag: str) -> AnnotationHandler:
    def handler(session: Session, args: str | None) -> None:
        router.stopping(session, tag)

    return handler


def _exited(session: Session, args: str | None) -> None:
    router.stopping(session, "exited")
    session.running = False
    try:
        session.exit_status = int(args) if args else None
    except ValueError:
        session.exit_status = None


def _stopped(session: Session, args: str | None) -> None:
    router.stopped(session)


def _signal_name(session: Session, args: str | None) -> None:
    # The name itself arrives as plain text after this annotation
    session.last_signal = args or None


def _source(session: Session, args: str | None) -> None:
    if not args:
        return
    location = FrameLocation.parse(args)
    if location is None:
        logger.debug(f"Ignoring malformed source annotation: {args!r}")
        return
    session.location = location


def _frame_begin(session: Session, args: str | None) -> None:
    # LEVEL ADDRESS
    if args:
        fields = args.split()
        if len(fields) >= 2:
            session.frame_address = fields[1]


def _invalidate_handler(view_ids: tuple[str, ...]) -> AnnotationHandler:
    def handler(session: Session, args: str | None) -> None:
        trigger_many(session, view_ids)

    return handler


def _ignore(session: Session, args: str | None) -> None:
    pass


def _build_handler_table() -> dict[str, AnnotationHandler]:
    table: dict[str, AnnotationHandler] = {
        "pre-prompt": _pre_prompt,
        "prompt": _prompt,
        "post-prompt": _post_prompt,
        "starting": _starting,
        "exited": _exited,
        "stopped": _stopped,
        "signal-name": _signal_name,
        "source": _source,
        "frame-begin": _frame_begin,
    }
    for tag in SUBPROMPT_TAGS:
        table[tag] = _subprompt
    for tag in STOPPING_TAGS - {"exited"}:
        table[tag] = _stopping_handler(tag)
    for tag in PAYLOAD_STRUCTURE_TAGS:
        table[tag] = _ignore
    for tag, view_ids in INVALIDATION_TRIGGERS.items():
        table[tag] = _invalidate_handler(view_ids)
    return table


ANNOTATION_HANDLERS: dict[str, AnnotationHandler] = _build_handler_table()


def dispatch(session: Session, tag: str, args: str | None = None) -> None:
    """Run the handler for one annotation.

    Unknown tags are ignored so newer gdb releases can add annotations.

    Raises:
        ProtocolError: The annotation is not valid in the current sink state.
            The sink has been reset to USER.
        SessionTornDownError: The session has been torn down.
    """
    session.ensure_alive()
    handler = ANNOTATION_HANDLERS.get(tag)
    if handler is None:
        logger.debug(f"Ignoring unknown annotation: {tag}")
        return
    logger.debug(f"Annotation: {tag} {args or ''}".rstrip())
    handler(session, args)
