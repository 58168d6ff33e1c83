"""FTP control session for pasvftp.

Provides ConnectionState enum, FTPConnectionConfig dataclass,
and the FTPClient class that owns the control connection.
"""

import logging
import socket
from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO, Callable, Optional

from pasvftp.ftp.passive import (
    TYPE_ASCII,
    TYPE_IMAGE,
    DataConnection,
    open_passive,
    transfer,
)
from pasvftp.ftp.channel import ControlChannel
from pasvftp.ftp.exceptions import (
    FTPAuthenticationError,
    FTPConnectionError,
    FTPNotConnectedError,
    FTPTimeoutError,
    FTPTransferInProgressError,
)
from pasvftp.ftp.reader import read_reply
from pasvftp.ftp.reply import Reply, ReplyCode


logger = logging.getLogger("pasvftp.client")


class ConnectionState(Enum):
    """FTP control connection state."""
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    TRANSFERRING = "transferring"


@dataclass
class FTPConnectionConfig:
    """FTP connection configuration."""
    host: str
    port: int = 21
    username: str = "anonymous"
    timeout: int = 30
    encoding: str = "utf-8"
    prefer_epsv: bool = False

    def __post_init__(self):
        """Validate configuration after initialization."""
        if not self.host:
            raise ValueError("Host is required")
        if not 1 <= self.port <= 65535:
            raise ValueError(f"Port must be between 1 and 65535, got {self.port}")
        if not 5 <= self.timeout <= 300:
            raise ValueError(f"Timeout must be between 5 and 300, got {self.timeout}")
        if not self.encoding:
            raise ValueError("Encoding is required")


class FTPClient:
    """
    An FTP client session over one control connection.

    Commands are strictly sequential: each do() writes one command and
    reads one reply. While a DataConnection from text()/binary() is open,
    new commands are refused until it is closed.

    Usage:
        with FTPClient.dial("ftp.example.com") as client:
            client.login("anonymous", "guest@")
            with client.binary("RETR readme.txt") as conn:
                data = conn.read()
    """

    def __init__(
        self,
        sock: socket.socket,
        encoding: str = "utf-8",
        timeout: Optional[float] = None,
        prefer_epsv: bool = False,
    ):
        """
        Wrap a connected control socket and read the server welcome.

        Args:
            sock: Connected control socket
            encoding: Text encoding of the control connection
            timeout: Timeout in seconds for data connections
            prefer_epsv: Try EPSV before PASV on IPv4 connections

        Raises:
            FTPTransportError: If the welcome cannot be read
            FTPMalformedReplyError: If the welcome is not a valid reply
        """
        self._channel: Optional[ControlChannel] = ControlChannel(sock, encoding)
        self._is_ipv6 = sock.family == socket.AF_INET6
        self.timeout = timeout
        self.prefer_epsv = prefer_epsv
        self.active_transfer: Optional[DataConnection] = None
        self.welcome: Reply = self.read_reply()
        logger.info(f"Connected: {self.welcome}")

    @classmethod
    def dial(
        cls,
        host: str,
        port: int = 21,
        timeout: float = 30,
        encoding: str = "utf-8",
        prefer_epsv: bool = False,
    ) -> "FTPClient":
        """
        Connect to an FTP server.

        Raises:
            FTPConnectionError: If the connection fails
            FTPTimeoutError: If the connection times out
        """
        logger.info(f"Connecting to {host}:{port}")
        try:
            sock = socket.create_connection((host, port), timeout=timeout)
        except socket.timeout as e:
            raise FTPTimeoutError("Connection", timeout) from e
        except OSError as e:
            raise FTPConnectionError(host, port, e) from e

        try:
            return cls(sock, encoding=encoding, timeout=timeout, prefer_epsv=prefer_epsv)
        except BaseException:
            sock.close()
            raise

    @classmethod
    def from_config(cls, config: FTPConnectionConfig) -> "FTPClient":
        """Connect using an FTPConnectionConfig."""
        return cls.dial(
            config.host,
            port=config.port,
            timeout=config.timeout,
            encoding=config.encoding,
            prefer_epsv=config.prefer_epsv,
        )

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        if self._channel is None:
            return ConnectionState.DISCONNECTED
        if self.active_transfer is not None:
            return ConnectionState.TRANSFERRING
        return ConnectionState.CONNECTED

    @property
    def channel(self) -> ControlChannel:
        """
        Get the control channel.

        Raises:
            FTPNotConnectedError: If the client has been closed
        """
        if self._channel is None:
            raise FTPNotConnectedError("FTP access")
        return self._channel

    @property
    def is_ipv6(self) -> bool:
        """True if the control connection runs over IPv6."""
        return self._is_ipv6

    @property
    def remote_host(self) -> str:
        """Address of the server end of the control connection."""
        return self.channel.sock.getpeername()[0]

    def read_reply(self) -> Reply:
        """Read one reply from the control connection."""
        return read_reply(self.channel)

    def do(self, command: str) -> Reply:
        """
        Send a command and wait for its reply.

        Negative replies are returned, not raised; check the reply code.

        Args:
            command: Command line without CRLF, e.g. "NOOP"

        Returns:
            The server reply

        Raises:
            FTPTransferInProgressError: If a data connection is still open
            FTPTransportError: If the control connection fails
            FTPMalformedReplyError: If the reply is not well formed
        """
        if self.active_transfer is not None:
            raise FTPTransferInProgressError(command)
        self.channel.write_line(command)
        return self.read_reply()

    def login(self, username: str, password: str) -> Reply:
        """
        Authenticate with USER and, if requested, PASS.

        Returns:
            The final positive-completion reply (usually 230)

        Raises:
            FTPAuthenticationError: If the server refuses the login
        """
        reply = self.do(f"USER {username}")
        if reply.code == ReplyCode.NEED_PASSWORD:
            reply = self.do(f"PASS {password}")
        if not reply.positive_complete:
            raise FTPAuthenticationError(username, reply)
        logger.info(f"Logged in as {username}")
        return reply

    def quit(self) -> Reply:
        """Send QUIT and close the connection."""
        try:
            return self.do("QUIT")
        finally:
            self.close()

    def close(self) -> None:
        """Close the control connection without sending QUIT."""
        if self._channel is None:
            return
        channel, self._channel = self._channel, None
        self.active_transfer = None
        channel.close()
        logger.info("Control connection closed")

    def passive(self) -> socket.socket:
        """Open a new passive data socket."""
        return open_passive(self)

    def text(self, command: str) -> DataConnection:
        """Send a command with a new passive data connection in ASCII mode."""
        return transfer(self, command, TYPE_ASCII)

    def binary(self, command: str) -> DataConnection:
        """Send a command with a new passive data connection in image mode."""
        return transfer(self, command, TYPE_IMAGE)

    def retrieve_binary(
        self,
        command: str,
        callback: Callable[[bytes], None],
        blocksize: int = 8192,
    ) -> Reply:
        """
        Retrieve data in binary mode.

        Args:
            command: A RETR command
            callback: Called with each block of data read
            blocksize: Maximum number of bytes read at once

        Returns:
            The transfer confirmation reply
        """
        conn = self.binary(command)
        with conn:
            while True:
                block = conn.read(blocksize)
                if not block:
                    break
                callback(block)
        return conn.reply

    def store_binary(
        self,
        command: str,
        fp: BinaryIO,
        blocksize: int = 8192,
        callback: Optional[Callable[[bytes], None]] = None,
    ) -> Reply:
        """
        Store a file in binary mode.

        Args:
            command: A STOR command
            fp: File-like object with a read(size) method
            blocksize: Maximum number of bytes sent at once
            callback: Optional, called with each block after it is sent

        Returns:
            The transfer confirmation reply
        """
        conn = self.binary(command)
        with conn:
            while True:
                block = fp.read(blocksize)
                if not block:
                    break
                conn.write(block)
                if callback:
                    callback(block)
        return conn.reply

    def __enter__(self) -> "FTPClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._channel is None:
            return
        if exc_type is None and self.active_transfer is None:
            self.quit()
        else:
            self.close()
