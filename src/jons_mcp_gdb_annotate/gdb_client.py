"""GDB client managing annotated debugger subprocess sessions."""

from __future__ import annotations

import atexit
import json
import logging
import os
import select
import shutil
import subprocess
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .burst import feed, flush_partial
from .commands import enqueue_high
from .constants import (
    CLEANUP_TIMEOUT,
    DEFAULT_VIEW_COMMANDS,
    POLL_INTERVAL,
    READ_CHUNK_SIZE,
    SERVER_PREFIX,
)
from .exceptions import LaunchError, SessionTornDownError
from .session import Command, Session, create_session, teardown
from .utils import validate_session
from .views import default_registry, trigger

logger = logging.getLogger(__name__)

CONFIG_FILE = "gdbannotateconfig.json"

# Sent before anything else so gdb never pages or asks for confirmation
STARTUP_COMMANDS = (
    SERVER_PREFIX + "set height 0",
    SERVER_PREFIX + "set width 0",
    SERVER_PREFIX + "set confirm off",
)


@dataclass
class Config:
    """Configuration for the GDB annotation MCP server."""

    gdb_path: str | None = None
    working_directory: str = "."
    environment: dict[str, str] = field(default_factory=dict)
    gdb_args: list[str] = field(default_factory=list)
    views: list[str] = field(default_factory=lambda: list(DEFAULT_VIEW_COMMANDS))


class BufferHost:
    """In-memory implementation of the engine's host collaborators.

    Holds the transcript, the inferior's I/O and one text buffer per open
    view. Calls arrive with the owning session's lock held.
    """

    def __init__(self) -> None:
        self.transcript = ""
        self.inferior_io = ""
        self.buffers: dict[str, str] = {}
        self.refresh_counts: dict[str, int] = {}
        self.diagnostics: list[str] = []
        self.prompt_ready = threading.Event()

    def open_buffer(self, view_id: str) -> None:
        self.buffers.setdefault(view_id, "")

    def close_buffer(self, view_id: str) -> None:
        self.buffers.pop(view_id, None)

    def buffer_exists(self, view_id: str) -> bool:
        return view_id in self.buffers

    def replace_buffer_contents(self, view_id: str, text: str) -> None:
        # The buffer may have been closed while its refresh was in flight
        if view_id in self.buffers:
            self.buffers[view_id] = text

    def append_transcript(self, text: str) -> None:
        self.transcript += text

    def append_inferior_io(self, text: str) -> None:
        self.inferior_io += text

    def notify_refresh_complete(self, view_id: str) -> None:
        self.refresh_counts[view_id] = self.refresh_counts.get(view_id, 0) + 1
        logger.debug(f"View {view_id} refreshed")

    def display_frame(self) -> None:
        self.prompt_ready.set()

    def report_diagnostic(self, message: str) -> None:
        self.diagnostics.append(message)


def _discard_output(session: Session, payload: str) -> None:
    pass


@dataclass
class DebugSession:
    """Represents a gdb subprocess and its annotation engine."""

    session_id: str
    process: Any
    engine: Session
    host: BufferHost
    program: str = ""
    args: list[str] = field(default_factory=list)
    reader_thread: threading.Thread | None = None
    created_time: float = field(default_factory=time.time)
    # Serializes every engine call between the reader thread and tool calls
    _lock: threading.Lock = field(default_factory=threading.Lock)

    @property
    def alive(self) -> bool:
        return not self.engine.torn_down


class GdbDebugClient:
    """Client for managing annotated gdb subprocess sessions."""

    def __init__(self) -> None:
        self.sessions: dict[str, DebugSession] = {}
        self.lock = threading.Lock()
        self.session_counter = 0
        self.config = self._load_config()
        atexit.register(self._cleanup_all_sessions)

    def _load_config(self) -> Config:
        """Load configuration from gdbannotateconfig.json if it exists."""
        config_path = Path(CONFIG_FILE)
        if config_path.exists():
            try:
                with open(config_path) as f:
                    data = json.load(f)
                return Config(**data)
            except Exception as e:
                logger.warning(f"Failed to load config: {e}")
        return Config()

    def _cleanup_all_sessions(self) -> None:
        """Clean up all active sessions on exit."""
        for session_id in list(self.sessions.keys()):
            try:
                self._stop_session(session_id)
            except Exception as e:
                logger.error(f"Error cleaning up session {session_id}: {e}")

    def _find_gdb(self) -> str:
        """Find the gdb executable."""
        if self.config.gdb_path:
            return self.config.gdb_path

        gdb = shutil.which("gdb")
        if not gdb:
            raise LaunchError(
                "gdb not found. Please install gdb or specify gdb_path in configuration"
            )
        return gdb

    def _spawn(self, program: str, args: list[str]) -> subprocess.Popen:
        cmd = [self._find_gdb(), "--annotate=2", "--quiet", *self.config.gdb_args]
        if program:
            cmd.extend(["--args", program, *args])

        logger.info(f"Starting debugger: {' '.join(cmd)}")
        try:
            return subprocess.Popen(
                cmd,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                # Error messages must pass through the sink like any output
                stderr=subprocess.STDOUT,
                bufsize=0,
                cwd=self.config.working_directory,
                env={**os.environ, **self.config.environment},
            )
        except OSError as e:
            raise LaunchError(str(e)) from e

    def create_session(self, program: str, args: list[str]) -> str:
        """Start gdb on ``program`` and attach an annotation engine to it."""
        with self.lock:
            self.session_counter += 1
            session_id = f"session_{self.session_counter}"

            process = self._spawn(program, args)
            host = BufferHost()
            engine = create_session(process, host, default_registry(self.config.views))
            for text in STARTUP_COMMANDS:
                enqueue_high(engine, Command(text, _discard_output))

            session = DebugSession(
                session_id=session_id,
                process=process,
                engine=engine,
                host=host,
                program=program,
                args=args,
            )
            session.reader_thread = threading.Thread(
                target=self._reader_thread, args=(session,), daemon=True
            )
            session.reader_thread.start()

            self.sessions[session_id] = session
            return session_id

    def _reader_thread(self, session: DebugSession) -> None:
        """Thread pumping gdb stdout into the annotation engine."""
        fd = session.process.stdout.fileno()
        try:
            while session.alive:
                ready, _, _ = select.select([fd], [], [], POLL_INTERVAL)
                if not ready:
                    with session._lock:
                        if session.alive:
                            flush_partial(session.engine)
                    continue

                chunk = os.read(fd, READ_CHUNK_SIZE)
                if not chunk:
                    logger.info(f"Debugger exited for {session.session_id}")
                    break
                with session._lock:
                    feed(session.engine, chunk)
        except SessionTornDownError:
            pass
        except Exception as e:
            logger.error(f"Reader thread error: {e}")
        finally:
            with session._lock:
                teardown(session.engine)
            # Wake anyone waiting on a prompt that will never come
            session.host.prompt_ready.set()

    def send_command(
        self,
        session_id: str,
        command: str,
        wait: bool = False,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Queue a user command, optionally waiting for gdb to go idle.

        Args:
            session_id: The session identifier.
            command: Command line as typed by a user.
            wait: Wait for the next idle top-level prompt.
            timeout: Maximum seconds to wait.

        Returns:
            Dictionary with status and, when waiting, the transcript text
            produced meanwhile.
        """
        session = validate_session(self.sessions, session_id)
        with session._lock:
            start = len(session.host.transcript)
            session.host.prompt_ready.clear()
            sent = enqueue_high(session.engine, command)

        if not wait:
            return {"status": "sent" if sent else "queued"}

        completed = session.host.prompt_ready.wait(timeout=timeout)
        with session._lock:
            output = session.host.transcript[start:]
            alive = session.alive
        if not alive:
            status = "exited"
        else:
            status = "completed" if completed else "timeout"
        return {"status": status, "output": output}

    def wait_for_prompt(self, session: DebugSession, timeout: float) -> bool:
        """Wait until gdb is idle at a top-level prompt."""
        return session.host.prompt_ready.wait(timeout=timeout)

    def open_view(self, session_id: str, view_id: str) -> bool:
        """Open a view buffer and request its first refresh."""
        session = validate_session(self.sessions, session_id)
        with session._lock:
            session.engine.views.get(view_id)
            session.host.open_buffer(view_id)
            session.host.prompt_ready.clear()
            return trigger(session.engine, view_id)

    def view_contents(self, session_id: str, view_id: str) -> str | None:
        """Return the contents of an open view buffer, or None if closed."""
        session = validate_session(self.sessions, session_id, require_alive=False)
        with session._lock:
            return session.host.buffers.get(view_id)

    def close_view(self, session_id: str, view_id: str) -> bool:
        session = validate_session(self.sessions, session_id, require_alive=False)
        with session._lock:
            existed = session.host.buffer_exists(view_id)
            session.host.close_buffer(view_id)
            return existed

    def _stop_session(self, session_id: str) -> None:
        """Stop a debugging session."""
        session = self.sessions.get(session_id)
        if not session:
            return

        with session._lock:
            teardown(session.engine)

        process = session.process
        try:
            if process.poll() is None:
                # Try graceful exit first
                try:
                    process.stdin.write(b"quit\n")
                    process.stdin.flush()
                    process.wait(timeout=2)
                except (OSError, subprocess.TimeoutExpired):
                    process.terminate()
                    process.wait(timeout=2)
        except Exception as e:
            logger.error(f"Error stopping session {session_id}: {e}")
            process.kill()

        self.sessions.pop(session_id, None)

    def stop_session_async(self, session_id: str) -> None:
        """Stop a session with timeout to avoid hanging."""
        cleanup_thread = threading.Thread(
            target=self._stop_session, args=(session_id,), daemon=True
        )
        cleanup_thread.start()
        cleanup_thread.join(timeout=CLEANUP_TIMEOUT)
