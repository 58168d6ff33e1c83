"""Line framing for the FTP control connection.

ControlChannel turns a connected socket into a source of text lines
(CRLF stripped) and a sink for CRLF-terminated commands.
"""

import logging
import socket

from pasvftp.ftp.exceptions import (
    FTPMalformedReplyError,
    FTPTimeoutError,
    FTPTransportError,
)


logger = logging.getLogger("pasvftp.channel")

# Longest reply line accepted from a server
MAX_LINE = 8192

CRLF = "\r\n"


def mask_command(command: str) -> str:
    """Hide the argument of a PASS command for logging."""
    if command[:5].upper() == "PASS ":
        return command[:5] + "*" * len(command[5:])
    return command


class ControlChannel:
    """Buffered, line-oriented view of the control socket."""

    def __init__(self, sock: socket.socket, encoding: str = "utf-8"):
        """
        Initialize the channel.

        Args:
            sock: Connected control socket
            encoding: Text encoding for commands and replies
        """
        self._sock = sock
        self._file = sock.makefile("rb")
        self.encoding = encoding

    @property
    def sock(self) -> socket.socket:
        """Underlying socket."""
        return self._sock

    def read_line(self) -> str:
        """
        Read one line from the server.

        Returns:
            The line without its terminator (one CRLF or bare LF)

        Raises:
            FTPTransportError: If the socket fails or the server closed it
            FTPMalformedReplyError: If the line exceeds MAX_LINE bytes
        """
        try:
            raw = self._file.readline(MAX_LINE + 1)
        except socket.timeout as e:
            raise FTPTimeoutError("Reading reply", self._sock.gettimeout()) from e
        except OSError as e:
            raise FTPTransportError("Failed to read from control connection", e) from e

        if len(raw) > MAX_LINE:
            raise FTPMalformedReplyError(f"Got more than {MAX_LINE} bytes in one line")
        if not raw:
            raise FTPTransportError("Control connection closed by server")

        if raw.endswith(b"\r\n"):
            raw = raw[:-2]
        elif raw.endswith(b"\n"):
            raw = raw[:-1]
        line = raw.decode(self.encoding, errors="replace")
        logger.debug(f"<- {line}")
        return line

    def write_line(self, line: str) -> None:
        """
        Send one CRLF-terminated line to the server.

        Args:
            line: Command text without line terminator

        Raises:
            ValueError: If the line contains CR or LF
            FTPTransportError: If the socket fails
        """
        if "\r" in line or "\n" in line:
            raise ValueError("Command must not contain CR or LF characters")

        logger.debug(f"-> {mask_command(line)}")
        try:
            self._sock.sendall((line + CRLF).encode(self.encoding))
        except socket.timeout as e:
            raise FTPTimeoutError("Sending command", self._sock.gettimeout()) from e
        except OSError as e:
            raise FTPTransportError("Failed to write to control connection", e) from e

    def close(self) -> None:
        """Close the reader and the socket."""
        try:
            self._file.close()
        finally:
            self._sock.close()
