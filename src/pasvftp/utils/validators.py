"""Input validators for pasvftp.

Each check returns an (is_valid, error_message) pair so the command
line can report every problem the same way.
"""

import ipaddress
import re
from pathlib import Path
from typing import Optional, Tuple, Union


Result = Tuple[bool, Optional[str]]

# RFC 1123 labels: 1-63 alphanumerics or hyphens, no leading/trailing hyphen
LABEL_PATTERN = re.compile(r'^(?!-)[A-Za-z0-9-]{1,63}(?<!-)$')


def validate_ip_address(ip: str) -> Result:
    """
    Validate an IPv4 or IPv6 literal.

    IPv6 may be written in URL brackets, e.g. ``[::1]``.
    """
    if not ip or not ip.strip():
        return False, "IP address is required"

    literal = ip.strip()
    if literal.startswith("[") and literal.endswith("]"):
        literal = literal[1:-1]

    try:
        ipaddress.ip_address(literal)
    except ValueError:
        return False, f"Invalid IP address format: {ip.strip()}"
    return True, None


def validate_host(host: str) -> Result:
    """
    Validate a server host: an IP literal or a DNS name.

    Args:
        host: Host string as typed by the user

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not host or not host.strip():
        return False, "Host is required"

    host = host.strip()
    if validate_ip_address(host)[0]:
        return True, None

    name = host[:-1] if host.endswith(".") else host
    if len(name) <= 253 and all(LABEL_PATTERN.match(label) for label in name.split(".")):
        return True, None

    return False, f"Invalid host: {host}. Must be a valid IP address or hostname."


def validate_port(port: Union[int, str]) -> Result:
    """Validate a TCP port number (1-65535)."""
    try:
        port = int(port)
    except (ValueError, TypeError):
        return False, "Port must be a number"

    if not 1 <= port <= 65535:
        return False, f"Port must be between 1 and 65535, got {port}"
    return True, None


def validate_file_path(path: Union[Path, str], must_exist: bool = True) -> Result:
    """
    Validate a local file to upload or write.

    Args:
        path: Local path
        must_exist: Require an existing regular file

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not path:
        return False, "File path is required"

    path = Path(path)
    if must_exist and not path.exists():
        return False, f"File does not exist: {path}"
    if must_exist and not path.is_file():
        return False, f"Path is not a file: {path}"
    return True, None


def validate_remote_path(path: str) -> Result:
    """
    Validate a server path that will be appended to a command.

    Line breaks would let the path smuggle a second command onto the
    control connection, so they are refused.
    """
    if not path or not path.strip():
        return False, "Remote path is required"

    if "\r" in path or "\n" in path:
        return False, "Remote path cannot contain line breaks"

    return True, None
