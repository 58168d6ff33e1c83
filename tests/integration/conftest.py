"""Local FTP server for integration testing.

Uses pyftpdlib to run a real FTP server on the loopback interface with
a temporary directory as its root.
"""

import tempfile
import threading
import time
from pathlib import Path
from typing import Optional

import pytest
from pyftpdlib.authorizers import DummyAuthorizer
from pyftpdlib.handlers import FTPHandler
from pyftpdlib.servers import FTPServer


class LocalFTPServer:
    """
    FTP server running in a background thread.

    Usage:
        with LocalFTPServer() as server:
            # Connect to server.host:server.port
            # server.root_dir contains the served files
            pass
    """

    DEFAULT_USER = "testuser"
    DEFAULT_PASS = "testpass"

    def __init__(
        self,
        port: int = 0,
        username: str = DEFAULT_USER,
        password: str = DEFAULT_PASS,
    ):
        """
        Initialize the server.

        Args:
            port: Port to listen on, 0 picks a free one
            username: FTP username
            password: FTP password
        """
        self._requested_port = port
        self.username = username
        self.password = password

        self._server: Optional[FTPServer] = None
        self._thread: Optional[threading.Thread] = None
        self._temp_dir: Optional[tempfile.TemporaryDirectory] = None
        self._root_dir: Optional[Path] = None

    @property
    def root_dir(self) -> Path:
        """Root directory served to the test user."""
        if self._root_dir is None:
            raise RuntimeError("Server not started")
        return self._root_dir

    @property
    def host(self) -> str:
        """Server host address."""
        return "127.0.0.1"

    @property
    def port(self) -> int:
        """Port the server is listening on."""
        if self._server is None:
            raise RuntimeError("Server not started")
        return self._server.address[1]

    def _create_files(self) -> None:
        root = self._root_dir
        (root / "pub").mkdir()
        (root / "pub" / "hello.txt").write_bytes(b"Hello, World\r\n")
        (root / "pub" / "data.bin").write_bytes(bytes(range(256)) * 64)
        (root / "incoming").mkdir()

    def start(self) -> None:
        """Start the FTP server in a background thread."""
        self._temp_dir = tempfile.TemporaryDirectory(prefix="pasvftp_test_")
        self._root_dir = Path(self._temp_dir.name)
        self._create_files()

        authorizer = DummyAuthorizer()
        authorizer.add_user(
            self.username,
            self.password,
            str(self._root_dir),
            perm="elradfmw"  # Full permissions
        )

        handler = type("TestFTPHandler", (FTPHandler,), {})
        handler.authorizer = authorizer
        handler.banner = "pasvftp test server ready"

        self._server = FTPServer((self.host, self._requested_port), handler)

        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()

        # Give server time to start
        time.sleep(0.2)

    def stop(self) -> None:
        """Stop the FTP server and clean up."""
        if self._server:
            self._server.close_all()

        if self._temp_dir:
            self._temp_dir.cleanup()

        self._server = None
        self._thread = None
        self._temp_dir = None
        self._root_dir = None

    def __enter__(self) -> "LocalFTPServer":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()


@pytest.fixture
def ftp_server():
    """Provide a running local FTP server."""
    server = LocalFTPServer()
    server.start()
    yield server
    server.stop()
