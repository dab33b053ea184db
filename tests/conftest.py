"""Pytest fixtures for jons-mcp-gdb-annotate tests."""

from __future__ import annotations

import shutil
from typing import TYPE_CHECKING, Any, Callable
from unittest.mock import MagicMock

import pytest

from jons_mcp_gdb_annotate.gdb_client import BufferHost
from jons_mcp_gdb_annotate.session import Session, create_session

if TYPE_CHECKING:
    from collections.abc import Generator


# =============================================================================
# Prerequisite Detection Fixtures
# =============================================================================


def _check_gdb_available() -> bool:
    """Check if gdb is available on the system."""
    return shutil.which("gdb") is not None


# Cache the result to avoid repeated checks
_GDB_AVAILABLE = _check_gdb_available()


@pytest.fixture(scope="session")
def gdb_available() -> bool:
    """Check if gdb is available for integration tests."""
    return _GDB_AVAILABLE


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "integration: Integration tests with a real gdb process"
    )


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    """Skip integration tests if gdb is not installed."""
    skip_gdb = pytest.mark.skip(reason="gdb not available on this system")

    for item in items:
        if "integration" in item.keywords and not _GDB_AVAILABLE:
            item.add_marker(skip_gdb)


@pytest.fixture(autouse=True)
def reset_globals() -> Generator[None, None, None]:
    """Reset global state between tests."""
    from jons_mcp_gdb_annotate import server as server_module

    original_client = server_module.debug_client
    yield
    server_module.debug_client = original_client


# =============================================================================
# Engine Fixtures
# =============================================================================


def marker(tag: str, args: str | None = None) -> bytes:
    """Encode one annotation line as gdb writes it."""
    line = tag if args is None else f"{tag} {args}"
    return b"\x1a\x1a" + line.encode() + b"\n"


@pytest.fixture
def annotation() -> Callable[..., bytes]:
    """Return the marker encoder."""
    return marker


@pytest.fixture
def mock_process() -> MagicMock:
    """Create a mock gdb subprocess."""
    process = MagicMock()
    process.pid = 4242
    process.poll.return_value = None
    return process


@pytest.fixture
def sent_commands(mock_process: MagicMock) -> Callable[[], list[str]]:
    """Return a function listing the commands written to gdb's stdin."""

    def sent() -> list[str]:
        return [
            call.args[0].decode("utf-8")
            for call in mock_process.stdin.write.call_args_list
        ]

    return sent


@pytest.fixture
def host() -> BufferHost:
    """Create an in-memory host."""
    return BufferHost()


@pytest.fixture
def session(mock_process: MagicMock, host: BufferHost) -> Session:
    """Create an engine session with the default views."""
    return create_session(mock_process, host)


@pytest.fixture
def prompting_session(session: Session) -> Session:
    """An engine session idle at a top-level prompt."""
    session.prompting = True
    return session


# =============================================================================
# Client Fixtures (Mock-based)
# =============================================================================


@pytest.fixture
def mock_debug_session(mock_process: MagicMock, host: BufferHost) -> Any:
    """Create a client-side DebugSession around a mock process."""
    from jons_mcp_gdb_annotate.gdb_client import DebugSession

    engine = create_session(mock_process, host)
    return DebugSession(
        session_id="test_session_1",
        process=mock_process,
        engine=engine,
        host=host,
        program="/tmp/app",
        args=["--flag"],
    )


@pytest.fixture
def mock_debug_client(mock_debug_session: Any) -> MagicMock:
    """Create a mock GdbDebugClient."""
    client = MagicMock()
    client.sessions = {"test_session_1": mock_debug_session}
    client.config = MagicMock()
    client.config.working_directory = "."
    return client


# =============================================================================
# Integration Fixtures (real gdb)
# =============================================================================


@pytest.fixture
def gdb_debug_client(
    tmp_path: Any, monkeypatch: pytest.MonkeyPatch
) -> Generator[Any, None, None]:
    """Create a real debug client and install it as the server's global.

    This initializes the global debug_client for integration tests.
    """
    from jons_mcp_gdb_annotate import server as server_module
    from jons_mcp_gdb_annotate.gdb_client import GdbDebugClient

    monkeypatch.chdir(tmp_path)
    client = GdbDebugClient()
    client.config.gdb_args = ["-nx"]

    original_client = server_module.debug_client
    server_module.debug_client = client

    yield client

    # Cleanup: stop all sessions and restore original client
    for session_id in list(client.sessions.keys()):
        client._stop_session(session_id)
    server_module.debug_client = original_client
