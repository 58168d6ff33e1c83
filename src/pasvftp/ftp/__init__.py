"""FTP protocol module for pasvftp.

This module handles the client side of the FTP control and data channels:
- Reply / ReplyCode: Server reply model and code classification
- read_reply: Single-line and multi-line reply reader
- passive: PASV/EPSV negotiation and DataConnection
- FTPClient: Control session (login, commands, transfers)
- FileTransfer: Whole-file downloads and uploads with progress
- Exceptions: FTP-specific error types
"""
