"""Reply reader for pasvftp.

Reconstructs one Reply from the lines of the control connection,
handling single-line and dash-continued multi-line replies
(RFC 959 section 4.2).
"""

from typing import Protocol

from pasvftp.ftp.exceptions import FTPMalformedReplyError
from pasvftp.ftp.reply import Reply


DIGITS = "0123456789"


class LineSource(Protocol):
    """Anything that yields control-connection lines with CRLF removed."""

    def read_line(self) -> str:
        ...


def parse_code(line: str) -> int:
    """
    Parse the three-digit code at the start of a reply line.

    Raises:
        FTPMalformedReplyError: If the prefix is not a valid reply code
    """
    prefix = line[:3]
    if len(prefix) != 3 or any(c not in DIGITS for c in prefix):
        raise FTPMalformedReplyError("Reply does not start with a 3-digit code", line)
    if prefix[0] not in "12345":
        raise FTPMalformedReplyError("Reply code out of range", line)
    return int(prefix)


def read_reply(source: LineSource) -> Reply:
    """
    Read exactly one reply from a line source.

    A multi-line reply ends at the first line starting with the reply
    code followed by a space. Interior lines are kept verbatim, even
    when they begin with some other number.

    Args:
        source: Line source, usually a ControlChannel

    Returns:
        The reconstructed Reply

    Raises:
        FTPMalformedReplyError: If a line violates the reply framing
        FTPTransportError: If the source fails; partial replies are dropped
    """
    line = source.read_line()
    if len(line) < 4:
        raise FTPMalformedReplyError("Short response line", line)

    code = parse_code(line)
    separator = line[3]

    if separator == " ":
        return Reply(code, line[4:])
    if separator != "-":
        raise FTPMalformedReplyError("Expected space after reply code", line)

    lines = [line[4:]]
    end_prefix = f"{line[:3]} "
    while True:
        line = source.read_line()
        if line.startswith(end_prefix):
            lines.append(line[len(end_prefix):])
            break
        lines.append(line)

    return Reply(code, "\n".join(lines))
