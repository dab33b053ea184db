"""Per-debugger session state for the annotation engine."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Protocol

from .exceptions import SessionTornDownError

if TYPE_CHECKING:
    from .views import ViewRegistry

logger = logging.getLogger(__name__)

CompletionHandler = Callable[["Session", str], None]


class SinkState(Enum):
    """Destination of plain (non-annotation) gdb output."""

    USER = "user"
    INFERIOR = "inferior"
    PRE_EMACS = "pre-emacs"
    EMACS = "emacs"
    POST_EMACS = "post-emacs"
    TORN_DOWN = "torn-down"


class Host(Protocol):
    """Collaborators the engine calls into.

    The engine never renders anything itself; every user-visible effect goes
    through one of these methods.
    """

    def buffer_exists(self, view_id: str) -> bool: ...

    def replace_buffer_contents(self, view_id: str, text: str) -> None: ...

    def append_transcript(self, text: str) -> None: ...

    def append_inferior_io(self, text: str) -> None: ...

    def notify_refresh_complete(self, view_id: str) -> None: ...

    def display_frame(self) -> None: ...

    def report_diagnostic(self, message: str) -> None: ...


@dataclass(frozen=True)
class Command:
    """A command waiting to be written to gdb's stdin.

    Commands without a handler were typed by the user and their output goes
    to the transcript. Commands with a handler were issued by the engine and
    their output is accumulated and passed to the handler.
    """

    text: str
    handler: CompletionHandler | None = None
    # View refreshed by this command, released if gdb never completes it
    view_id: str | None = None

    @property
    def from_user(self) -> bool:
        return self.handler is None


@dataclass(frozen=True)
class FrameLocation:
    """Source position reported by the ``source`` annotation."""

    file: str
    line: int
    character: int
    middle: bool
    address: str

    @classmethod
    def parse(cls, args: str) -> FrameLocation | None:
        # FILE may itself contain colons (drive letters)
        parts = args.rsplit(":", 4)
        if len(parts) != 5:
            return None
        file, line, character, middle, address = parts
        try:
            return cls(
                file=file,
                line=int(line),
                character=int(character),
                middle=middle == "middle",
                address=address,
            )
        except ValueError:
            return None

    def __str__(self) -> str:
        return f"{self.file}:{self.line}"


@dataclass(eq=False)
class Session:
    """All engine state for one attached gdb subprocess."""

    process: Any
    host: Host
    views: ViewRegistry
    burst: bytes = b""
    input_queue: deque[Command] = field(default_factory=deque)
    idle_queue: deque[Command] = field(default_factory=deque)
    prompting: bool = False
    at_subprompt: bool = False
    sink: SinkState = SinkState.USER
    current_item: Command | None = None
    item_completed: bool = False
    pending_triggers: set[str] = field(default_factory=set)
    partial_output: list[str] = field(default_factory=list)
    # True when the start of burst is not a line start
    mid_line: bool = False
    running: bool = False
    location: FrameLocation | None = None
    frame_address: str | None = None
    exit_status: int | None = None
    last_signal: str | None = None

    @property
    def torn_down(self) -> bool:
        return self.sink is SinkState.TORN_DOWN

    def ensure_alive(self) -> None:
        if self.torn_down:
            raise SessionTornDownError()


def create_session(
    process: Any, host: Host, views: ViewRegistry | None = None
) -> Session:
    """Create the engine state for a freshly attached gdb process.

    Args:
        process: The subprocess handle; commands are written to its stdin.
        host: Collaborator receiving transcript, inferior and view output.
        views: Views this session keeps up to date. Defaults to the
            standard breakpoints/stack/registers/locals/disassembly set.

    Returns:
        A new Session with empty queues and the sink set to USER.
    """
    if views is None:
        from .views import default_registry

        views = default_registry()
    return Session(process=process, host=host, views=views)


def teardown(session: Session) -> None:
    """Discard all queued work without running any completion handler."""
    if session.torn_down:
        return
    dropped = len(session.input_queue) + len(session.idle_queue)
    session.input_queue.clear()
    session.idle_queue.clear()
    session.pending_triggers.clear()
    session.partial_output.clear()
    session.current_item = None
    session.prompting = False
    session.at_subprompt = False
    session.burst = b""
    session.sink = SinkState.TORN_DOWN
    logger.debug(f"Session torn down, dropped {dropped} queued commands")
