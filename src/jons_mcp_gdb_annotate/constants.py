"""Constants for the GDB annotation MCP server."""

from __future__ import annotations

# Wire format
ANNOTATION_PREFIX: bytes = b"\x1a\x1a"
NEWLINE: bytes = b"\n"
SERVER_PREFIX = "server "

# Timeouts (in seconds)
RUN_TIMEOUT: float = 30.0
STEP_TIMEOUT: float = 5.0
FINISH_TIMEOUT: float = 10.0
CLEANUP_TIMEOUT: float = 0.5
POLL_INTERVAL: float = 0.1
READ_CHUNK_SIZE: int = 4096

# Pagination defaults
DEFAULT_PAGINATION_LIMIT: int | None = None
DEFAULT_PAGINATION_OFFSET: int = 0

# Annotation tags
SUBPROMPT_TAGS: frozenset[str] = frozenset(
    {"commands", "overload-choice", "query", "prompt-for-continue"}
)
STOPPING_TAGS: frozenset[str] = frozenset(
    {"exited", "signalled", "signal", "breakpoint", "watchpoint"}
)
PAYLOAD_STRUCTURE_TAGS: frozenset[str] = frozenset(
    {
        "display-begin",
        "display-end",
        "display-number-end",
        "field-begin",
        "field-end",
        "array-section-begin",
        "array-section-end",
    }
)

# View ids
VIEW_BREAKPOINTS = "breakpoints"
VIEW_STACK = "stack"
VIEW_REGISTERS = "registers"
VIEW_LOCALS = "locals"
VIEW_DISASSEMBLY = "disassembly"

DEFAULT_VIEW_COMMANDS: dict[str, str] = {
    VIEW_BREAKPOINTS: SERVER_PREFIX + "info breakpoints",
    VIEW_STACK: SERVER_PREFIX + "backtrace",
    VIEW_REGISTERS: SERVER_PREFIX + "info registers",
    VIEW_LOCALS: SERVER_PREFIX + "info locals",
    VIEW_DISASSEMBLY: SERVER_PREFIX + "disassemble",
}

# Views refreshed when gdb reports a state change
INVALIDATION_TRIGGERS: dict[str, tuple[str, ...]] = {
    "breakpoints-invalid": (VIEW_BREAKPOINTS,),
    "frames-invalid": (VIEW_STACK, VIEW_LOCALS, VIEW_REGISTERS, VIEW_DISASSEMBLY),
}
