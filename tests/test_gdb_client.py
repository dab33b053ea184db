"""Tests for the GdbDebugClient class."""

from __future__ import annotations

import json
import os
import subprocess
import threading
import time
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from jons_mcp_gdb_annotate.exceptions import (
    LaunchError,
    SessionNotFoundError,
    SessionTornDownError,
    UnknownViewError,
)
from jons_mcp_gdb_annotate.gdb_client import (
    STARTUP_COMMANDS,
    BufferHost,
    Config,
    DebugSession,
    GdbDebugClient,
)
from jons_mcp_gdb_annotate.session import teardown
from jons_mcp_gdb_annotate.views import trigger


@pytest.fixture
def client(tmp_path, monkeypatch: pytest.MonkeyPatch) -> GdbDebugClient:
    """Create a client in an empty directory so no config file is picked up."""
    monkeypatch.chdir(tmp_path)
    return GdbDebugClient()


@pytest.fixture
def client_with_session(
    client: GdbDebugClient, mock_debug_session: DebugSession
) -> GdbDebugClient:
    client.sessions[mock_debug_session.session_id] = mock_debug_session
    return client


class TestConfig:
    """Tests for configuration loading."""

    def test_defaults(self, client: GdbDebugClient) -> None:
        """Test loading default configuration."""
        config = client.config
        assert isinstance(config, Config)
        assert config.gdb_path is None
        assert config.working_directory == "."
        assert config.environment == {}
        assert config.gdb_args == []
        assert config.views == [
            "breakpoints",
            "stack",
            "registers",
            "locals",
            "disassembly",
        ]

    def test_load_from_file(self, tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test loading configuration from gdbannotateconfig.json."""
        config_data = {
            "gdb_path": "/opt/gdb/bin/gdb",
            "working_directory": "/tmp",
            "environment": {"LD_LIBRARY_PATH": "/opt/lib"},
            "gdb_args": ["-nx"],
            "views": ["stack", "locals"],
        }
        (tmp_path / "gdbannotateconfig.json").write_text(json.dumps(config_data))
        monkeypatch.chdir(tmp_path)

        config = GdbDebugClient().config

        assert config.gdb_path == "/opt/gdb/bin/gdb"
        assert config.working_directory == "/tmp"
        assert config.environment["LD_LIBRARY_PATH"] == "/opt/lib"
        assert config.gdb_args == ["-nx"]
        assert config.views == ["stack", "locals"]

    def test_invalid_file_falls_back(
        self, tmp_path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test an unreadable config file yields the defaults."""
        (tmp_path / "gdbannotateconfig.json").write_text("{not json")
        monkeypatch.chdir(tmp_path)

        config = GdbDebugClient().config

        assert config == Config()


class TestBufferHost:
    """Tests for the in-memory host."""

    def test_buffers(self) -> None:
        """Test opening, filling and closing view buffers."""
        host = BufferHost()
        assert host.buffer_exists("stack") is False

        host.open_buffer("stack")
        host.replace_buffer_contents("stack", "#0 main")
        assert host.buffers == {"stack": "#0 main"}

        host.close_buffer("stack")
        host.replace_buffer_contents("stack", "#0 late")
        assert host.buffer_exists("stack") is False

    def test_streams(self) -> None:
        """Test transcript and inferior output accumulate."""
        host = BufferHost()
        host.append_transcript("a")
        host.append_transcript("b")
        host.append_inferior_io("c")
        assert host.transcript == "ab"
        assert host.inferior_io == "c"

    def test_notifications(self) -> None:
        """Test refresh counts, prompt signalling and diagnostics."""
        host = BufferHost()
        host.notify_refresh_complete("stack")
        host.notify_refresh_complete("stack")
        host.display_frame()
        host.report_diagnostic("bad annotation")

        assert host.refresh_counts == {"stack": 2}
        assert host.prompt_ready.is_set()
        assert host.diagnostics == ["bad annotation"]


class TestLaunch:
    """Tests for locating and starting gdb."""

    def test_find_gdb_configured(self, client: GdbDebugClient) -> None:
        """Test a configured gdb path wins."""
        client.config.gdb_path = "/opt/gdb/bin/gdb"
        assert client._find_gdb() == "/opt/gdb/bin/gdb"

    @patch("shutil.which")
    def test_find_gdb_on_path(self, mock_which: MagicMock, client: GdbDebugClient) -> None:
        """Test gdb is looked up on PATH."""
        mock_which.return_value = "/usr/bin/gdb"
        assert client._find_gdb() == "/usr/bin/gdb"
        mock_which.assert_called_with("gdb")

    @patch("shutil.which")
    def test_find_gdb_not_found(self, mock_which: MagicMock, client: GdbDebugClient) -> None:
        """Test error when gdb is not installed."""
        mock_which.return_value = None
        with pytest.raises(LaunchError, match="gdb not found"):
            client._find_gdb()

    @patch("jons_mcp_gdb_annotate.gdb_client.subprocess.Popen")
    def test_spawn_command_line(self, mock_popen: MagicMock, client: GdbDebugClient) -> None:
        """Test gdb is started in annotation mode with the program's args."""
        client.config.gdb_path = "gdb"
        client.config.gdb_args = ["-nx"]
        client.config.environment = {"FOO": "bar"}

        client._spawn("./app", ["--verbose", "x"])

        cmd = mock_popen.call_args[0][0]
        assert cmd == [
            "gdb",
            "--annotate=2",
            "--quiet",
            "-nx",
            "--args",
            "./app",
            "--verbose",
            "x",
        ]
        kwargs = mock_popen.call_args[1]
        assert kwargs["cwd"] == "."
        assert kwargs["env"]["FOO"] == "bar"
        assert kwargs["stdin"] == subprocess.PIPE
        assert kwargs["stderr"] == subprocess.STDOUT

    @patch("jons_mcp_gdb_annotate.gdb_client.subprocess.Popen")
    def test_spawn_without_program(
        self, mock_popen: MagicMock, client: GdbDebugClient
    ) -> None:
        """Test gdb can start with no program loaded."""
        client.config.gdb_path = "gdb"
        client._spawn("", [])
        assert mock_popen.call_args[0][0] == ["gdb", "--annotate=2", "--quiet"]

    @patch("jons_mcp_gdb_annotate.gdb_client.subprocess.Popen")
    def test_spawn_failure(self, mock_popen: MagicMock, client: GdbDebugClient) -> None:
        """Test OS errors become launch errors."""
        client.config.gdb_path = "/missing/gdb"
        mock_popen.side_effect = FileNotFoundError("No such file")

        with pytest.raises(LaunchError, match="No such file"):
            client._spawn("./app", [])

    def test_create_session(self, client: GdbDebugClient, mock_process: MagicMock) -> None:
        """Test a session is registered with startup commands queued."""
        with patch.object(client, "_spawn", return_value=mock_process), patch.object(
            client, "_reader_thread"
        ) as mock_reader:
            session_id = client.create_session("./app", ["-v"])
            session = client.sessions[session_id]
            session.reader_thread.join(timeout=1)

        assert session_id == "session_1"
        assert session.program == "./app"
        assert session.args == ["-v"]
        assert [c.text for c in session.engine.input_queue] == list(STARTUP_COMMANDS)
        assert all(not c.from_user for c in session.engine.input_queue)
        mock_reader.assert_called_once_with(session)

    def test_create_session_views_from_config(
        self, client: GdbDebugClient, mock_process: MagicMock
    ) -> None:
        """Test the configured views are the session's views."""
        client.config.views = ["stack"]
        with patch.object(client, "_spawn", return_value=mock_process), patch.object(
            client, "_reader_thread"
        ):
            session_id = client.create_session("./app", [])

        assert client.sessions[session_id].engine.views.ids() == ["stack"]

    def test_create_session_launch_failure(self, client: GdbDebugClient) -> None:
        """Test a failed launch registers no session."""
        with patch.object(client, "_spawn", side_effect=LaunchError("boom")):
            with pytest.raises(LaunchError):
                client.create_session("./app", [])
        assert client.sessions == {}

    def test_cleanup_all_sessions(self, client: GdbDebugClient) -> None:
        """Test that sessions are cleaned up on exit."""
        client.sessions = {"session_1": MagicMock(), "session_2": MagicMock()}

        with patch.object(client, "_stop_session") as mock_stop:
            client._cleanup_all_sessions()

        assert mock_stop.call_count == 2
        mock_stop.assert_any_call("session_1")
        mock_stop.assert_any_call("session_2")


class TestSendCommand:
    """Tests for GdbDebugClient.send_command."""

    def test_session_not_found(self, client: GdbDebugClient) -> None:
        """Test an unknown session id."""
        with pytest.raises(SessionNotFoundError):
            client.send_command("nope", "next")

    def test_torn_down(
        self, client_with_session: GdbDebugClient, mock_debug_session: DebugSession
    ) -> None:
        """Test commands are refused once gdb is gone."""
        teardown(mock_debug_session.engine)
        with pytest.raises(SessionTornDownError):
            client_with_session.send_command("test_session_1", "next")

    def test_queued_while_busy(
        self, client_with_session: GdbDebugClient, mock_debug_session: DebugSession
    ) -> None:
        """Test a command is queued while gdb is busy."""
        result = client_with_session.send_command("test_session_1", "next")

        assert result == {"status": "queued"}
        assert [c.text for c in mock_debug_session.engine.input_queue] == ["next"]

    def test_sent_when_idle(
        self, client_with_session: GdbDebugClient, mock_debug_session: DebugSession
    ) -> None:
        """Test a command goes out immediately at an idle prompt."""
        mock_debug_session.engine.prompting = True

        result = client_with_session.send_command("test_session_1", "next")

        assert result == {"status": "sent"}
        mock_debug_session.process.stdin.write.assert_called_once_with(b"next\n")

    def test_wait_completed(
        self, client_with_session: GdbDebugClient, mock_debug_session: DebugSession
    ) -> None:
        """Test waiting returns the transcript produced by the command."""
        host = mock_debug_session.host
        host.append_transcript("earlier\n")
        mock_debug_session.engine.prompting = True

        def wait(timeout: float | None = None) -> bool:
            host.append_transcript("Breakpoint 1, main ()\n")
            return True

        host.prompt_ready = MagicMock()
        host.prompt_ready.wait.side_effect = wait

        result = client_with_session.send_command(
            "test_session_1", "continue", wait=True, timeout=3.0
        )

        assert result == {"status": "completed", "output": "Breakpoint 1, main ()\n"}
        host.prompt_ready.clear.assert_called_once()
        host.prompt_ready.wait.assert_called_once_with(timeout=3.0)

    def test_wait_timeout(
        self, client_with_session: GdbDebugClient, mock_debug_session: DebugSession
    ) -> None:
        """Test a command still running when the wait expires."""
        mock_debug_session.host.prompt_ready = MagicMock()
        mock_debug_session.host.prompt_ready.wait.return_value = False

        result = client_with_session.send_command(
            "test_session_1", "continue", wait=True, timeout=0.1
        )

        assert result == {"status": "timeout", "output": ""}

    def test_wait_gdb_exits(
        self, client_with_session: GdbDebugClient, mock_debug_session: DebugSession
    ) -> None:
        """Test gdb going away while waiting."""

        def wait(timeout: float | None = None) -> bool:
            teardown(mock_debug_session.engine)
            return True

        mock_debug_session.host.prompt_ready = MagicMock()
        mock_debug_session.host.prompt_ready.wait.side_effect = wait

        result = client_with_session.send_command("test_session_1", "kill", wait=True)

        assert result["status"] == "exited"


class TestViews:
    """Tests for view management on the client."""

    def test_open_view(
        self, client_with_session: GdbDebugClient, mock_debug_session: DebugSession
    ) -> None:
        """Test opening a view creates its buffer and queues a refresh."""
        assert client_with_session.open_view("test_session_1", "stack") is True

        assert mock_debug_session.host.buffer_exists("stack")
        assert [c.text for c in mock_debug_session.engine.idle_queue] == [
            "server backtrace"
        ]

    def test_open_unknown_view(
        self, client_with_session: GdbDebugClient, mock_debug_session: DebugSession
    ) -> None:
        """Test opening a view that does not exist."""
        with pytest.raises(UnknownViewError):
            client_with_session.open_view("test_session_1", "memory")
        assert mock_debug_session.host.buffers == {}

    def test_view_contents_and_close(
        self, client_with_session: GdbDebugClient, mock_debug_session: DebugSession
    ) -> None:
        """Test reading and closing a view."""
        assert client_with_session.view_contents("test_session_1", "stack") is None

        mock_debug_session.host.open_buffer("stack")
        mock_debug_session.host.replace_buffer_contents("stack", "#0 main")
        assert client_with_session.view_contents("test_session_1", "stack") == "#0 main"

        assert client_with_session.close_view("test_session_1", "stack") is True
        assert client_with_session.close_view("test_session_1", "stack") is False


class TestStopSession:
    """Tests for shutting gdb down."""

    def test_graceful_quit(
        self, client_with_session: GdbDebugClient, mock_debug_session: DebugSession
    ) -> None:
        """Test gdb is asked to quit and the session is dropped."""
        handler = MagicMock()
        mock_debug_session.engine.idle_queue.append(MagicMock(handler=handler))

        client_with_session._stop_session("test_session_1")

        process = mock_debug_session.process
        process.stdin.write.assert_called_with(b"quit\n")
        process.terminate.assert_not_called()
        assert "test_session_1" not in client_with_session.sessions
        assert mock_debug_session.engine.torn_down is True
        handler.assert_not_called()

    def test_terminate_on_timeout(
        self, client_with_session: GdbDebugClient, mock_debug_session: DebugSession
    ) -> None:
        """Test gdb is terminated when it ignores quit."""
        process = mock_debug_session.process
        process.wait.side_effect = [subprocess.TimeoutExpired("gdb", 2), None]

        client_with_session._stop_session("test_session_1")

        process.terminate.assert_called_once()
        process.kill.assert_not_called()
        assert "test_session_1" not in client_with_session.sessions

    def test_kill_as_last_resort(
        self, client_with_session: GdbDebugClient, mock_debug_session: DebugSession
    ) -> None:
        """Test gdb is killed when terminate does not work either."""
        process = mock_debug_session.process
        process.wait.side_effect = subprocess.TimeoutExpired("gdb", 2)

        client_with_session._stop_session("test_session_1")

        process.kill.assert_called_once()
        assert "test_session_1" not in client_with_session.sessions

    def test_already_exited(
        self, client_with_session: GdbDebugClient, mock_debug_session: DebugSession
    ) -> None:
        """Test stopping a session whose gdb already exited."""
        mock_debug_session.process.poll.return_value = 0

        client_with_session._stop_session("test_session_1")

        mock_debug_session.process.stdin.write.assert_not_called()
        assert "test_session_1" not in client_with_session.sessions

    def test_unknown_session(self, client: GdbDebugClient) -> None:
        """Test stopping an unknown session is a no-op."""
        client._stop_session("nope")


class TestReaderThreads:
    """Tests for the output pump threads using real pipes."""

    @pytest.fixture
    def pipe(self, mock_debug_session: DebugSession) -> Any:
        read_fd, write_fd = os.pipe()
        mock_debug_session.process.stdout.fileno.return_value = read_fd
        yield write_fd
        os.close(read_fd)

    def test_reader_feeds_engine(
        self, client: GdbDebugClient, mock_debug_session: DebugSession, pipe: int
    ) -> None:
        """Test stdout is fed to the engine until gdb closes it."""
        os.write(pipe, b"GNU gdb\n\x1a\x1apre-prompt\n(gdb) \n\x1a\x1aprompt\n")
        os.close(pipe)

        client._reader_thread(mock_debug_session)

        assert mock_debug_session.host.transcript == "GNU gdb\n(gdb) \n"
        assert mock_debug_session.engine.torn_down is True
        assert mock_debug_session.host.prompt_ready.is_set()

    def test_reader_flushes_when_quiet(
        self, client: GdbDebugClient, mock_debug_session: DebugSession, pipe: int
    ) -> None:
        """Test an unterminated line is delivered once gdb goes quiet."""
        thread = threading.Thread(
            target=client._reader_thread, args=(mock_debug_session,), daemon=True
        )
        thread.start()
        os.write(pipe, b"Enter a number: ")

        deadline = time.time() + 5
        while time.time() < deadline:
            with mock_debug_session._lock:
                if mock_debug_session.host.transcript:
                    break
            time.sleep(0.05)

        os.close(pipe)
        thread.join(timeout=5)

        assert mock_debug_session.host.transcript == "Enter a number: "
        assert not thread.is_alive()

    def test_error_text_reaches_view(
        self, client: GdbDebugClient, mock_debug_session: DebugSession, pipe: int
    ) -> None:
        """Test error text from a refresh command fills the view, not the transcript."""
        engine = mock_debug_session.engine
        mock_debug_session.host.open_buffer("registers")
        engine.prompting = True
        assert trigger(engine, "registers") is True

        os.write(
            pipe,
            b"\x1a\x1apost-prompt\n"
            b"The program has no registers now.\n"
            b"\x1a\x1apre-prompt\n(gdb) \n\x1a\x1aprompt\n",
        )
        os.close(pipe)

        client._reader_thread(mock_debug_session)

        assert mock_debug_session.host.buffers["registers"] == (
            "The program has no registers now.\n"
        )
        assert mock_debug_session.host.transcript == ""


FAKE_GDB = """#!/bin/sh
prompt() { printf '\\032\\032pre-prompt\\n(gdb) \\n\\032\\032prompt\\n'; }
prompt
while IFS= read -r line; do
  case "$line" in
    quit) exit 0 ;;
  esac
  printf '\\032\\032post-prompt\\n'
  case "$line" in
    "server info registers") echo "The program has no registers now." >&2 ;;
  esac
  prompt
done
"""


class TestMergedStderr:
    """Tests against a scripted gdb that reports errors on stderr."""

    @pytest.fixture
    def fake_gdb(self, tmp_path) -> str:
        script = tmp_path / "fake-gdb"
        script.write_text(FAKE_GDB)
        script.chmod(0o755)
        return str(script)

    def test_stderr_lands_in_view(self, client: GdbDebugClient, fake_gdb: str) -> None:
        """Test a refresh whose output is on stderr still fills the view."""
        client.config.gdb_path = fake_gdb
        session_id = client.create_session("", [])
        session = client.sessions[session_id]
        try:
            client.open_view(session_id, "registers")
            assert client.wait_for_prompt(session, timeout=5)

            assert client.view_contents(session_id, "registers") == (
                "The program has no registers now.\n"
            )
            assert "no registers" not in session.host.transcript
        finally:
            client._stop_session(session_id)
