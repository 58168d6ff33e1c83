"""FTP-specific exceptions for pasvftp.

Every failure raised by the client belongs to one of the kinds in
ErrorKind, so callers can branch on ``error.kind`` or on the class:

- TRANSPORT: the control or data socket failed (read, write, dial, close)
- MALFORMED_REPLY: the server sent something that is not a valid reply
- NEGATIVE_REPLY: a well-formed reply whose code was not the one required
- USAGE: the client was driven out of sequence
"""

from enum import Enum


class ErrorKind(Enum):
    """Category of an FTP failure."""
    TRANSPORT = "transport"
    MALFORMED_REPLY = "malformed_reply"
    NEGATIVE_REPLY = "negative_reply"
    USAGE = "usage"


class FTPError(Exception):
    """Base exception for all FTP-related errors."""

    kind: ErrorKind = ErrorKind.USAGE

    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


class FTPTransportError(FTPError):
    """The underlying connection failed."""

    kind = ErrorKind.TRANSPORT


class FTPConnectionError(FTPTransportError):
    """Failed to establish a control or data connection."""

    def __init__(self, host: str, port: int, original_error: Exception = None):
        self.host = host
        self.port = port
        message = f"Failed to connect to {host}:{port}"
        super().__init__(message, original_error)


class FTPTimeoutError(FTPTransportError):
    """FTP operation timed out."""

    def __init__(self, operation: str = "Operation", timeout: float = 30):
        self.timeout = timeout
        message = f"{operation} timed out after {timeout} seconds"
        super().__init__(message)


class FTPMalformedReplyError(FTPError):
    """The server sent a reply that violates the reply framing rules."""

    kind = ErrorKind.MALFORMED_REPLY

    def __init__(self, message: str, line: str = None):
        self.line = line
        super().__init__(message)

    def __str__(self) -> str:
        if self.line is not None:
            return f"{self.message}: {self.line!r}"
        return self.message


class FTPReplyError(FTPError):
    """A reply whose code failed the classification the caller required.

    The reply itself is kept on the exception; its rendered wire text is
    the error message.
    """

    kind = ErrorKind.NEGATIVE_REPLY

    def __init__(self, reply):
        self.reply = reply
        super().__init__(str(reply))

    @property
    def code(self) -> int:
        """Reply code that caused the failure."""
        return self.reply.code


class FTPAuthenticationError(FTPReplyError):
    """FTP authentication (login) failed."""

    def __init__(self, username: str, reply):
        self.username = username
        super().__init__(reply)
        self.message = f"Authentication failed for user '{username}'"

    def __str__(self) -> str:
        return f"{self.message}: {self.reply}"


class FTPNotConnectedError(FTPError):
    """Operation attempted without active FTP connection."""

    def __init__(self, operation: str = "Operation"):
        message = f"{operation} requires an active FTP connection"
        super().__init__(message)


class FTPTransferInProgressError(FTPError):
    """A command was issued while a data connection is still open."""

    def __init__(self, command: str):
        self.command = command.split(" ", 1)[0]
        message = (
            f"Cannot send {self.command} while a data transfer is in progress; "
            "close the data connection first"
        )
        super().__init__(message)
