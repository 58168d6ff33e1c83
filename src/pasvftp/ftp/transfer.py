"""File transfers for pasvftp.

Moves whole files between the local disk and the server over passive
data connections, reporting progress per block.
"""

import logging
import os
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from pasvftp.ftp.connection import ConnectionState, FTPClient
from pasvftp.ftp.exceptions import FTPError, FTPNotConnectedError
from pasvftp.ftp.passive import TYPE_IMAGE


logger = logging.getLogger("pasvftp.transfer")


@dataclass
class TransferProgress:
    """Progress information for a transfer."""
    remote_path: str
    bytes_done: int
    bytes_total: int

    @property
    def percent(self) -> float:
        """Transfer progress as percentage (0-100)."""
        if self.bytes_total == 0:
            return 0.0
        return (self.bytes_done / self.bytes_total) * 100.0


@dataclass
class TransferResult:
    """Result of transferring a single file."""
    remote_path: str
    success: bool
    error_message: Optional[str] = None
    bytes_transferred: int = 0
    duration_seconds: float = 0.0


# Type alias for progress callback
ProgressCallback = Callable[[TransferProgress], None]


class FileTransfer:
    """Downloads and uploads files through an FTPClient."""

    # Block size for FTP transfers (8KB)
    BLOCK_SIZE = 8192

    def __init__(self, client: FTPClient):
        """
        Initialize the transfer helper.

        Args:
            client: Logged-in FTP client
        """
        self._client = client
        self._cancelled = threading.Event()

    @property
    def is_cancelled(self) -> bool:
        """True if current operation was cancelled."""
        return self._cancelled.is_set()

    def cancel(self) -> None:
        """Cancel the current transfer after the block in flight."""
        self._cancelled.set()

    def reset_cancel(self) -> None:
        """Reset cancellation flag for new operation."""
        self._cancelled.clear()

    def _remote_size(self, remote_path: str) -> int:
        # SIZE is an RFC 3659 extension; servers without it report 0 total.
        # Some servers refuse SIZE in ASCII mode
        self._client.do(f"TYPE {TYPE_IMAGE}")
        reply = self._client.do(f"SIZE {remote_path}")
        size = reply.message.strip()
        if reply.positive_complete and size.isascii() and size.isdigit() and len(size) <= 20:
            return int(size)
        return 0

    def download_file(
        self,
        remote_path: str,
        local_path: Path,
        on_progress: Optional[ProgressCallback] = None
    ) -> TransferResult:
        """
        Download a remote file.

        Args:
            remote_path: Path on the server
            local_path: Destination file, overwritten if present
            on_progress: Optional callback for progress updates

        Returns:
            TransferResult with success/failure status
        """
        return self._run(remote_path, self._download, local_path, on_progress)

    def upload_file(
        self,
        local_path: Path,
        remote_path: str,
        on_progress: Optional[ProgressCallback] = None
    ) -> TransferResult:
        """
        Upload a local file.

        Args:
            local_path: File to send
            remote_path: Destination path on the server
            on_progress: Optional callback for progress updates

        Returns:
            TransferResult with success/failure status
        """
        return self._run(remote_path, self._upload, local_path, on_progress)

    def _run(self, remote_path, operation, local_path, on_progress) -> TransferResult:
        if self._client.state == ConnectionState.DISCONNECTED:
            return TransferResult(
                remote_path=remote_path,
                success=False,
                error_message=str(FTPNotConnectedError("Transfer"))
            )

        start_time = time.time()
        transferred = 0

        def report(done: int, total: int) -> None:
            nonlocal transferred
            transferred = done
            if on_progress and not self._cancelled.is_set():
                on_progress(TransferProgress(remote_path, done, total))

        try:
            operation(remote_path, Path(local_path), report)
        except (FTPError, OSError) as e:
            # a cancelled download ends with 426 from the server
            cancelled = self._cancelled.is_set()
            if not cancelled:
                logger.warning(f"Transfer of {remote_path} failed: {e}")
            return TransferResult(
                remote_path=remote_path,
                success=False,
                error_message="Transfer cancelled" if cancelled else str(e),
                bytes_transferred=transferred,
                duration_seconds=time.time() - start_time
            )

        duration = time.time() - start_time
        if self._cancelled.is_set():
            return TransferResult(
                remote_path=remote_path,
                success=False,
                error_message="Transfer cancelled",
                bytes_transferred=transferred,
                duration_seconds=duration
            )

        logger.info(f"Transferred {transferred} bytes for {remote_path} in {duration:.2f}s")
        return TransferResult(
            remote_path=remote_path,
            success=True,
            bytes_transferred=transferred,
            duration_seconds=duration
        )

    def _download(self, remote_path: str, local_path: Path, report) -> None:
        total = self._remote_size(remote_path)
        done = 0
        # local_path is only replaced once the server confirms the transfer
        part_path = local_path.with_name(local_path.name + ".part")

        conn = self._client.binary(f"RETR {remote_path}")
        try:
            with conn, open(part_path, "wb") as f:
                while not self._cancelled.is_set():
                    block = conn.read(self.BLOCK_SIZE)
                    if not block:
                        break
                    f.write(block)
                    done += len(block)
                    report(done, total)
        except BaseException:
            part_path.unlink(missing_ok=True)
            raise

        if self._cancelled.is_set():
            part_path.unlink(missing_ok=True)
            return
        os.replace(part_path, local_path)

    def _upload(self, remote_path: str, local_path: Path, report) -> None:
        total = local_path.stat().st_size
        done = 0
        with open(local_path, "rb") as f:
            with self._client.binary(f"STOR {remote_path}") as conn:
                while not self._cancelled.is_set():
                    block = f.read(self.BLOCK_SIZE)
                    if not block:
                        break
                    conn.write(block)
                    done += len(block)
                    report(done, total)
