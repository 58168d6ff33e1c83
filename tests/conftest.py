"""Pytest configuration and shared fixtures for pasvftp tests."""

import io
import socket
from dataclasses import dataclass
from pathlib import Path
from typing import Generator
from unittest.mock import MagicMock

import pytest


# Test constants
TEST_FTP_HOST = "127.0.0.1"
TEST_FTP_PORT = 2121
TEST_FTP_USER = "testuser"
TEST_FTP_PASS = "testpass"


@dataclass
class MockFTPConfig:
    """Configuration for mock FTP server in tests."""
    host: str = TEST_FTP_HOST
    port: int = TEST_FTP_PORT
    username: str = TEST_FTP_USER
    password: str = TEST_FTP_PASS


def make_control_socket(
    data: bytes,
    family: int = socket.AF_INET,
    peer: tuple = ("192.0.2.1", 21),
) -> MagicMock:
    """
    Create a mock control socket that serves ``data`` as server output.

    Everything the client writes is recorded in ``sendall`` calls.
    """
    sock = MagicMock(spec=socket.socket)
    sock.family = family
    sock.makefile.return_value = io.BytesIO(data)
    sock.getpeername.return_value = peer
    sock.gettimeout.return_value = 30
    return sock


def sent_bytes(sock: MagicMock) -> bytes:
    """All bytes written to a mock socket."""
    return b"".join(c.args[0] for c in sock.sendall.call_args_list)


@pytest.fixture
def ftp_config() -> MockFTPConfig:
    """Provide mock FTP configuration for tests."""
    return MockFTPConfig()


@pytest.fixture
def data_socket() -> MagicMock:
    """Provide a mock data socket."""
    return MagicMock(spec=socket.socket)


@pytest.fixture
def temp_settings_file(tmp_path: Path) -> Generator[Path, None, None]:
    """Provide a temporary settings file path for testing."""
    settings_file = tmp_path / "settings.json"
    yield settings_file


@pytest.fixture
def sample_file(tmp_path: Path) -> Path:
    """Create a small local file for upload tests."""
    local = tmp_path / "payload.bin"
    local.write_bytes(b"0123456789")
    return local


@pytest.fixture
def control_socket():
    """Provide the mock control socket factory."""
    return make_control_socket


@pytest.fixture
def written():
    """Provide a helper returning the bytes written to a mock socket."""
    return sent_bytes
