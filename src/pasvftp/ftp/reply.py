"""Server reply model for pasvftp.

A reply is a three-digit code plus a message body. The code's hundreds
digit classifies the reply (RFC 959 section 4.2.1).
"""

from dataclasses import dataclass
from enum import IntEnum


class ReplyCode(IntEnum):
    """FTP reply codes defined in RFC 959 (and RFC 2428 for EPSV)."""
    RESTART_MARKER = 110
    SERVICE_READY_SOON = 120
    STARTING_TRANSFER = 125
    FILE_STATUS_OKAY = 150

    OKAY = 200
    SUPERFLUOUS = 202
    SYSTEM_STATUS = 211
    DIRECTORY_STATUS = 212
    FILE_STATUS = 213
    HELP_MESSAGE = 214
    SYSTEM_TYPE = 215
    SERVICE_READY = 220
    SERVICE_CLOSING = 221
    NO_TRANSFER = 225
    CLOSING_DATA = 226
    PASSIVE = 227
    EXTENDED_PASSIVE = 229
    LOGGED_IN = 230
    ACTION_OKAY = 250
    CREATED = 257

    NEED_PASSWORD = 331
    NEED_ACCOUNT = 332
    PENDING_INFORMATION = 350

    SERVICE_NOT_AVAILABLE = 421
    CANT_OPEN_DATA = 425
    TRANSFER_ABORTED = 426
    ACTION_NOT_TAKEN = 450
    LOCAL_ERROR = 451
    INSUFFICIENT_STORAGE = 452

    UNRECOGNIZED_COMMAND = 500
    PARAMETER_SYNTAX_ERROR = 501
    NOT_IMPLEMENTED = 502
    BAD_SEQUENCE = 503
    PARAMETER_NOT_IMPLEMENTED = 504
    NOT_LOGGED_IN = 530
    NO_ACCOUNT = 532
    FILE_UNAVAILABLE = 550
    PAGE_TYPE_UNKNOWN = 551
    EXCEEDED_QUOTA = 552
    FILE_NAME_NOT_ALLOWED = 553


def is_preliminary(code: int) -> bool:
    """True if the code is a preliminary positive reply (1yz)."""
    return code // 100 == 1


def is_positive(code: int) -> bool:
    """True if the code is positive (1yz, 2yz or 3yz)."""
    return code // 100 in (1, 2, 3)


def is_complete(code: int) -> bool:
    """True if the code completes a command. Not necessarily positive."""
    return code // 100 in (2, 4, 5)


def is_positive_complete(code: int) -> bool:
    """True if the code is a positive completion (2yz)."""
    return code // 100 == 2


def is_temporary(code: int) -> bool:
    """True if the code is a transient negative completion (4yz)."""
    return code // 100 == 4


@dataclass(frozen=True)
class Reply:
    """A response from the server.

    ``message`` is the unwrapped body: lines of a multi-line reply are
    joined with ``"\\n"`` and carry no code prefixes.
    """
    code: int
    message: str

    @property
    def preliminary(self) -> bool:
        return is_preliminary(self.code)

    @property
    def positive(self) -> bool:
        return is_positive(self.code)

    @property
    def complete(self) -> bool:
        return is_complete(self.code)

    @property
    def positive_complete(self) -> bool:
        return is_positive_complete(self.code)

    @property
    def temporary(self) -> bool:
        return is_temporary(self.code)

    @property
    def lines(self) -> list[str]:
        """Message split into its individual lines."""
        return self.message.split("\n")

    def render(self) -> str:
        """
        Render the reply as it appears on the wire, without the final CRLF.

        Returns:
            ``"<code> <message>"`` for single-line replies, otherwise
            ``"<code>-first"`` ... ``"<code> last"`` joined with CRLF
        """
        lines = self.lines
        if len(lines) > 1:
            lines[0] = f"{self.code}-{lines[0]}"
            lines[-1] = f"{self.code} {lines[-1]}"
            return "\r\n".join(lines)
        return f"{self.code} {self.message}"

    def __str__(self) -> str:
        return self.render()
