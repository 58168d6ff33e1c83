"""Command-line entry point for pasvftp.

Connects with saved or given settings, logs in, and runs one of:

    pasvftp get REMOTE [LOCAL]     download (LOCAL "-" writes to stdout)
    pasvftp put LOCAL [REMOTE]     upload (LOCAL "-" reads from stdin)
    pasvftp cmd COMMAND...         send raw control commands
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config.credentials import CredentialManager
from .config.paths import get_log_file_path
from .config.settings import ClientSettings, SettingsManager
from .ftp.connection import FTPClient, FTPConnectionConfig
from .ftp.exceptions import FTPError
from .ftp.transfer import FileTransfer, TransferProgress
from .utils.logging import setup_logging
from .utils.validators import (
    validate_file_path,
    validate_host,
    validate_port,
    validate_remote_path,
)


ANONYMOUS_PASSWORD = "anonymous@"


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="pasvftp",
        description="Passive-mode FTP client",
    )
    parser.add_argument("--host", help="server host (default: last used)")
    parser.add_argument("--port", type=int, help="server port (default: last used or 21)")
    parser.add_argument("--user", help="user name (default: last used or anonymous)")
    parser.add_argument("--password", help="password (default: keyring, then anonymous@)")
    parser.add_argument("--timeout", type=int, help="socket timeout in seconds")
    parser.add_argument("--epsv", action="store_true", default=None,
                        help="try EPSV before PASV on IPv4 servers")
    parser.add_argument("--save-password", action="store_true",
                        help="store the given password in the system keyring")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="log progress (-vv traces control commands)")

    commands = parser.add_subparsers(dest="command", required=True)

    get = commands.add_parser("get", help="download a file")
    get.add_argument("remote")
    get.add_argument("local", nargs="?")

    put = commands.add_parser("put", help="upload a file")
    put.add_argument("local")
    put.add_argument("remote", nargs="?")

    cmd = commands.add_parser("cmd", help="send raw commands")
    cmd.add_argument("lines", nargs="+", metavar="COMMAND")

    return parser


def basename(path: str) -> str:
    """Last component of a server path."""
    return path.rstrip("/").rsplit("/", 1)[-1]


def resolve_password(
    args: argparse.Namespace,
    credentials: CredentialManager,
    config: FTPConnectionConfig
) -> str:
    """Pick the password from the command line, the keyring or the default."""
    if args.password is not None:
        if args.save_password:
            credentials.store(config.host, config.port, config.username, args.password)
        return args.password

    saved = credentials.lookup(config.host, config.port, config.username)
    if saved is not None:
        return saved
    return ANONYMOUS_PASSWORD


def check(result: tuple) -> None:
    """Raise ValueError for a failed (is_valid, error_message) check."""
    is_valid, error = result
    if not is_valid:
        raise ValueError(error)


def print_progress(progress: TransferProgress) -> None:
    if progress.bytes_total:
        print(f"\r{progress.remote_path}: {progress.percent:5.1f}%", end="", file=sys.stderr)


def run_get(client: FTPClient, args: argparse.Namespace, settings: ClientSettings) -> int:
    check(validate_remote_path(args.remote))

    if args.local == "-":
        client.retrieve_binary(
            f"RETR {args.remote}",
            sys.stdout.buffer.write,
            blocksize=settings.block_size
        )
        sys.stdout.buffer.flush()
        return 0

    local = Path(args.local or basename(args.remote))
    transfer = FileTransfer(client)
    transfer.BLOCK_SIZE = settings.block_size
    result = transfer.download_file(
        args.remote,
        local,
        on_progress=print_progress if args.verbose else None
    )
    if not result.success:
        print(f"get failed: {result.error_message}", file=sys.stderr)
        return 1
    return 0


def run_put(client: FTPClient, args: argparse.Namespace, settings: ClientSettings) -> int:
    if args.local == "-":
        if not args.remote:
            raise ValueError("A remote path is required when reading from stdin")
        check(validate_remote_path(args.remote))
        client.store_binary(
            f"STOR {args.remote}",
            sys.stdin.buffer,
            blocksize=settings.block_size
        )
        return 0

    local = Path(args.local)
    check(validate_file_path(local))
    remote = args.remote or local.name
    check(validate_remote_path(remote))

    transfer = FileTransfer(client)
    transfer.BLOCK_SIZE = settings.block_size
    result = transfer.upload_file(
        local,
        remote,
        on_progress=print_progress if args.verbose else None
    )
    if not result.success:
        print(f"put failed: {result.error_message}", file=sys.stderr)
        return 1
    return 0


def run_cmd(client: FTPClient, args: argparse.Namespace, settings: ClientSettings) -> int:
    status = 0
    for line in args.lines:
        reply = client.do(line)
        print(reply)
        if not reply.positive:
            status = 1
    return status


COMMANDS = {
    "get": run_get,
    "put": run_put,
    "cmd": run_cmd,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Run the command line client and return the exit status."""
    args = build_parser().parse_args(argv)

    settings_manager = SettingsManager()
    settings = settings_manager.load()

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    logger = setup_logging(
        level=level,
        console=args.verbose > 0,
        log_file=get_log_file_path() if settings.log_to_file else None
    )

    try:
        config = settings.to_connection_config(
            host=args.host,
            port=args.port,
            username=args.user,
            timeout=args.timeout,
            prefer_epsv=args.epsv,
        )
        check(validate_host(config.host))
        check(validate_port(config.port))
    except ValueError as e:
        print(f"pasvftp: {e}", file=sys.stderr)
        return 2

    password = resolve_password(args, CredentialManager(), config)

    try:
        with FTPClient.from_config(config) as client:
            client.login(config.username, password)
            settings_manager.update(
                last_host=config.host,
                last_port=config.port,
                last_username=config.username,
            )
            return COMMANDS[args.command](client, args, settings)
    except ValueError as e:
        print(f"pasvftp: {e}", file=sys.stderr)
        return 2
    except FTPError as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"pasvftp: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
