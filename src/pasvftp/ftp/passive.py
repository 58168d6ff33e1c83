"""Passive-mode data connections for pasvftp.

Negotiates a data port with PASV or EPSV, dials it, and wraps the
resulting socket so that closing it consumes the server's
post-transfer confirmation on the control connection.

The session handed to these functions is an FTPClient. Only a small
part of it is used: do(), read_reply(), is_ipv6, remote_host, timeout,
prefer_epsv and the active_transfer slot.
"""

import logging
import re
import socket
from dataclasses import dataclass
from typing import Optional

from pasvftp.ftp.exceptions import (
    FTPConnectionError,
    FTPError,
    FTPMalformedReplyError,
    FTPReplyError,
    FTPTimeoutError,
    FTPTransportError,
)
from pasvftp.ftp.reply import Reply, ReplyCode


logger = logging.getLogger("pasvftp.passive")

# ASCII digits only; a longer run of digits is not a valid address number
PASV_PATTERN = re.compile(r"(?<![0-9])" + ",".join([r"([0-9]{1,3})"] * 6) + r"(?![0-9])")

EPSV_START = "(|||"
EPSV_END = "|)"

# Representation types for TYPE
TYPE_ASCII = "A"
TYPE_IMAGE = "I"


@dataclass(frozen=True)
class PassiveAddress:
    """Host and port the server is listening on for the data connection."""
    host: str
    port: int


def parse_pasv_reply(message: str) -> PassiveAddress:
    """
    Decode the address in a 227 reply body.

    Args:
        message: Reply message, e.g. "Entering Passive Mode (192,0,2,47,4,7)"

    Returns:
        PassiveAddress with host "h1.h2.h3.h4" and port p1*256+p2

    Raises:
        FTPMalformedReplyError: If no valid six-number address is present
    """
    match = PASV_PATTERN.search(message)
    if match is None:
        raise FTPMalformedReplyError("PASV reply provided no port", message)

    numbers = [int(n) for n in match.groups()]
    if any(n > 255 for n in numbers):
        raise FTPMalformedReplyError("PASV reply provided no port", message)

    host = ".".join(str(n) for n in numbers[:4])
    port = numbers[4] * 256 + numbers[5]
    return PassiveAddress(host, port)


def parse_epsv_reply(message: str) -> int:
    """
    Decode the port in a 229 reply body.

    Args:
        message: Reply message, e.g. "Entering Extended Passive Mode (|||1031|)"

    Returns:
        Port number

    Raises:
        FTPMalformedReplyError: If the delimiters or the port are missing
    """
    start = message.rfind(EPSV_START)
    if start == -1:
        raise FTPMalformedReplyError("EPSV reply provided no port", message)
    start += len(EPSV_START)

    end = message.rfind(EPSV_END)
    if end == -1 or end <= start:
        raise FTPMalformedReplyError("EPSV reply provided no port", message)

    digits = message[start:end]
    if not 1 <= len(digits) <= 5 or not digits.isascii() or not digits.isdigit():
        raise FTPMalformedReplyError("EPSV reply provided no port", message)
    if int(digits) > 65535:
        raise FTPMalformedReplyError("EPSV reply provided no port", message)
    return int(digits)


def _request_epsv(session) -> Reply:
    reply = session.do("EPSV")
    logger.debug(f"EPSV reply: {reply}")
    return reply


def obtain_passive_address(session) -> PassiveAddress:
    """
    Ask the server for a passive data port.

    EPSV is used when the control connection is IPv6; PASV otherwise.
    With ``session.prefer_epsv`` set, EPSV is tried first on IPv4 too and
    a permanent negative answer (5yz) falls back to PASV.

    Raises:
        FTPReplyError: If the server does not answer 229 / 227 exactly
        FTPMalformedReplyError: If the address cannot be decoded
        FTPTransportError: If the control connection fails
    """
    if session.is_ipv6 or session.prefer_epsv:
        reply = _request_epsv(session)
        if reply.code == ReplyCode.EXTENDED_PASSIVE:
            port = parse_epsv_reply(reply.message)
            return PassiveAddress(session.remote_host, port)

        if session.is_ipv6 or reply.code // 100 != 5:
            raise FTPReplyError(reply)
        logger.info(f"Server refused EPSV ({reply.code}), falling back to PASV")

    reply = session.do("PASV")
    if reply.code != ReplyCode.PASSIVE:
        raise FTPReplyError(reply)
    return parse_pasv_reply(reply.message)


def open_passive(session) -> socket.socket:
    """
    Negotiate a passive port and dial it.

    Returns:
        Connected data socket

    Raises:
        FTPConnectionError: If the data port cannot be reached
        FTPTimeoutError: If dialing the data port times out
    """
    address = obtain_passive_address(session)
    logger.debug(f"Opening data connection to {address.host}:{address.port}")

    try:
        return socket.create_connection(
            (address.host, address.port),
            timeout=session.timeout
        )
    except socket.timeout as e:
        raise FTPTimeoutError("Data connection", session.timeout) from e
    except OSError as e:
        raise FTPConnectionError(address.host, address.port, e) from e


def transfer(session, command: str, representation_type: str) -> "DataConnection":
    """
    Open a passive data connection for a transfer command.

    Sends ``TYPE``, negotiates the data port, then sends ``command``
    (e.g. ``RETR name`` or ``STOR name``). If the command is refused the
    data socket is closed before the error is raised.

    Args:
        session: Owning FTPClient
        command: Transfer command to issue once the data port is open
        representation_type: "A" for text, "I" for binary

    Returns:
        DataConnection owned by the caller; close it to finish the transfer

    Raises:
        FTPReplyError: If TYPE or the command is refused
    """
    reply = session.do(f"TYPE {representation_type}")
    if not reply.positive_complete:
        raise FTPReplyError(reply)

    sock = open_passive(session)

    try:
        reply = session.do(command)
    except BaseException:
        sock.close()
        raise

    if not reply.positive:
        sock.close()
        raise FTPReplyError(reply)

    conn = DataConnection(sock, session)
    session.active_transfer = conn
    return conn


class DataConnection:
    """
    Data socket of a single transfer.

    Behaves as a byte stream. close() shuts the socket and then reads
    the server's confirmation reply from the control connection; the
    transfer has only succeeded once close() returns without error.
    """

    def __init__(self, sock: socket.socket, session):
        self._sock = sock
        self._session = session
        self._closed = False
        self.reply: Optional[Reply] = None

    @property
    def closed(self) -> bool:
        """True once close() has been called."""
        return self._closed

    def fileno(self) -> int:
        return self._sock.fileno()

    def read(self, size: int = 8192) -> bytes:
        """
        Read up to ``size`` bytes; returns b"" once the server is done.

        Raises:
            FTPTransportError: If the socket fails
        """
        try:
            return self._sock.recv(size)
        except socket.timeout as e:
            raise FTPTimeoutError("Data read", self._sock.gettimeout()) from e
        except OSError as e:
            raise FTPTransportError("Failed to read from data connection", e) from e

    def readinto(self, buffer) -> int:
        try:
            return self._sock.recv_into(buffer)
        except socket.timeout as e:
            raise FTPTimeoutError("Data read", self._sock.gettimeout()) from e
        except OSError as e:
            raise FTPTransportError("Failed to read from data connection", e) from e

    def write(self, data: bytes) -> int:
        """
        Send all of ``data``.

        Returns:
            Number of bytes written

        Raises:
            FTPTransportError: If the socket fails
        """
        try:
            self._sock.sendall(data)
        except socket.timeout as e:
            raise FTPTimeoutError("Data write", self._sock.gettimeout()) from e
        except OSError as e:
            raise FTPTransportError("Failed to write to data connection", e) from e
        return len(data)

    def close(self) -> Reply:
        """
        Close the data socket and read the transfer confirmation.

        The confirmation is read even if closing the socket failed, so
        the control connection is left with no reply pending. When both
        fail, the socket error is raised, chained from the reply error.

        Returns:
            The positive-completion reply (usually 226)

        Raises:
            FTPTransportError: If the socket could not be closed
            FTPReplyError: If the confirmation is not a positive completion
        """
        if self._closed:
            return self.reply
        self._closed = True

        close_error = None
        try:
            self._sock.close()
        except OSError as e:
            close_error = FTPTransportError("Failed to close data connection", e)

        if self._session.active_transfer is self:
            self._session.active_transfer = None

        try:
            reply = self._session.read_reply()
            if not reply.positive_complete:
                raise FTPReplyError(reply)
        except FTPError as e:
            if close_error is not None:
                raise close_error from e
            raise

        if close_error is not None:
            raise close_error

        self.reply = reply
        logger.debug(f"Transfer finished: {reply}")
        return reply

    def __enter__(self) -> "DataConnection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
