"""Unit tests for passive-mode negotiation and DataConnection.

Tests PASV/EPSV decoding, address negotiation, the transfer sequence
and the confirmation read on close.
"""

import socket
from unittest.mock import patch

import pytest

from pasvftp.ftp.connection import ConnectionState, FTPClient
from pasvftp.ftp.exceptions import (
    ErrorKind,
    FTPConnectionError,
    FTPMalformedReplyError,
    FTPReplyError,
    FTPTimeoutError,
    FTPTransferInProgressError,
    FTPTransportError,
)
from pasvftp.ftp.passive import (
    DataConnection,
    PassiveAddress,
    obtain_passive_address,
    parse_epsv_reply,
    parse_pasv_reply,
)
from pasvftp.ftp.reply import Reply


WELCOME = b"220 Service ready\r\n"
TYPE_OK = b"200 Type set\r\n"
PASV_OK = b"227 Entering Passive Mode (192,0,2,47,4,7)\r\n"
EPSV_OK = b"229 Entering Extended Passive Mode (|||1031|)\r\n"


class TestParsePasvReply:
    """Tests for parse_pasv_reply()."""

    def test_decodes_address(self):
        """Test the six numbers become host and port."""
        address = parse_pasv_reply("Entering Passive Mode. 192,0,2,47,4,7")
        assert address == PassiveAddress("192.0.2.47", 1031)

    def test_parenthesized(self):
        """Test the common '(h1,...,p2)' form."""
        address = parse_pasv_reply("Entering Passive Mode (10,0,0,5,195,80).")
        assert address.host == "10.0.0.5"
        assert address.port == 195 * 256 + 80

    @pytest.mark.parametrize("message", [
        "Entering Passive Mode",
        "Entering Passive Mode (192,0,2,47,4)",
        "Entering Passive Mode (192,0,2,a,4,7)",
    ])
    def test_missing_numbers(self, message):
        """Test replies without six numbers are malformed."""
        with pytest.raises(FTPMalformedReplyError, match="PASV reply provided no port"):
            parse_pasv_reply(message)

    def test_number_out_of_range(self):
        """Test numbers above 255 are malformed."""
        with pytest.raises(FTPMalformedReplyError, match="PASV reply provided no port"):
            parse_pasv_reply("Entering Passive Mode (192,0,2,47,4,256)")

    @pytest.mark.parametrize("message", [
        "Entering Passive Mode (" + "9" * 5000 + ",0,2,47,4,7)",
        "Entering Passive Mode (1920,0,2,47,4,7)",
        "Entering Passive Mode (١٩٢,0,2,47,4,7)",
    ])
    def test_rejects_long_or_non_ascii_numbers(self, message):
        """Test oversized and non-ASCII digit runs are malformed, not ValueError."""
        with pytest.raises(FTPMalformedReplyError, match="PASV reply provided no port"):
            parse_pasv_reply(message)


class TestParseEpsvReply:
    """Tests for parse_epsv_reply()."""

    def test_decodes_port(self):
        """Test the port between the delimiters is returned."""
        assert parse_epsv_reply("Entering Extended Passive Mode. (|||1031|)") == 1031

    def test_uses_last_delimiters(self):
        """Test the last '(|||' in the message is used."""
        assert parse_epsv_reply("Use (|||1|) no, (|||2121|)") == 2121

    @pytest.mark.parametrize("message", [
        "Entering Extended Passive Mode",
        "Entering Extended Passive Mode (|||1031",
        "|) before (|||1031",
        "Entering Extended Passive Mode (||||)",
        "Entering Extended Passive Mode (|||port|)",
        "Entering Extended Passive Mode (|||70000|)",
        "Entering Extended Passive Mode (|||" + "9" * 5000 + "|)",
        "Entering Extended Passive Mode (|||001031|)",
        "Entering Extended Passive Mode (|||١٠٣١|)",
    ])
    def test_malformed(self, message):
        """Test missing, inverted or non-numeric ports are malformed."""
        with pytest.raises(FTPMalformedReplyError, match="EPSV reply provided no port"):
            parse_epsv_reply(message)


class TestObtainPassiveAddress:
    """Tests for PASV/EPSV selection."""

    def test_ipv4_uses_pasv(self, control_socket, written):
        """Test IPv4 control connections send PASV."""
        sock = control_socket(WELCOME + PASV_OK)
        client = FTPClient(sock)

        address = obtain_passive_address(client)

        assert address == PassiveAddress("192.0.2.47", 1031)
        assert written(sock) == b"PASV\r\n"

    def test_ipv6_uses_epsv_with_control_host(self, control_socket, written):
        """Test IPv6 control connections send EPSV and reuse the peer host."""
        sock = control_socket(
            WELCOME + EPSV_OK,
            family=socket.AF_INET6,
            peer=("2001:db8::1", 21, 0, 0),
        )
        client = FTPClient(sock)

        address = obtain_passive_address(client)

        assert address == PassiveAddress("2001:db8::1", 1031)
        assert written(sock) == b"EPSV\r\n"

    def test_pasv_requires_exact_code(self, control_socket):
        """Test a positive reply other than 227 is still a failure."""
        client = FTPClient(control_socket(WELCOME + b"200 Sure\r\n"))

        with pytest.raises(FTPReplyError) as exc_info:
            obtain_passive_address(client)

        assert exc_info.value.reply == Reply(200, "Sure")
        assert exc_info.value.kind == ErrorKind.NEGATIVE_REPLY

    def test_epsv_requires_exact_code(self, control_socket):
        """Test an IPv6 session does not fall back when EPSV is refused."""
        sock = control_socket(
            WELCOME + b"500 EPSV not understood\r\n",
            family=socket.AF_INET6,
            peer=("2001:db8::1", 21, 0, 0),
        )
        client = FTPClient(sock, prefer_epsv=True)

        with pytest.raises(FTPReplyError) as exc_info:
            obtain_passive_address(client)
        assert exc_info.value.code == 500

    def test_prefer_epsv_on_ipv4(self, control_socket, written):
        """Test prefer_epsv sends EPSV first on IPv4."""
        sock = control_socket(WELCOME + EPSV_OK, peer=("198.51.100.7", 21))
        client = FTPClient(sock, prefer_epsv=True)

        address = obtain_passive_address(client)

        assert address == PassiveAddress("198.51.100.7", 1031)
        assert written(sock) == b"EPSV\r\n"

    def test_prefer_epsv_falls_back_to_pasv(self, control_socket, written):
        """Test a permanent EPSV refusal falls back to PASV."""
        sock = control_socket(WELCOME + b"502 Command not implemented\r\n" + PASV_OK)
        client = FTPClient(sock, prefer_epsv=True)

        address = obtain_passive_address(client)

        assert address == PassiveAddress("192.0.2.47", 1031)
        assert written(sock) == b"EPSV\r\nPASV\r\n"

    def test_prefer_epsv_temporary_failure_is_raised(self, control_socket):
        """Test a transient EPSV failure is not masked by PASV."""
        client = FTPClient(control_socket(WELCOME + b"421 Closing\r\n"), prefer_epsv=True)

        with pytest.raises(FTPReplyError) as exc_info:
            obtain_passive_address(client)
        assert exc_info.value.code == 421


class TestTransfer:
    """Tests for the TYPE / PASV / command sequence."""

    @patch("pasvftp.ftp.passive.socket.create_connection")
    def test_success(self, mock_connect, control_socket, written, data_socket):
        """Test a successful sequence returns a DataConnection."""
        mock_connect.return_value = data_socket
        sock = control_socket(WELCOME + TYPE_OK + PASV_OK + b"150 Opening data connection\r\n")
        client = FTPClient(sock, timeout=15)

        conn = client.binary("RETR file.bin")

        assert isinstance(conn, DataConnection)
        assert written(sock) == b"TYPE I\r\nPASV\r\nRETR file.bin\r\n"
        mock_connect.assert_called_once_with(("192.0.2.47", 1031), timeout=15)
        assert client.state == ConnectionState.TRANSFERRING

    @patch("pasvftp.ftp.passive.socket.create_connection")
    def test_text_sets_ascii_type(self, mock_connect, control_socket, written, data_socket):
        """Test text() sends TYPE A."""
        mock_connect.return_value = data_socket
        sock = control_socket(WELCOME + TYPE_OK + PASV_OK + b"150 Here it comes\r\n")

        FTPClient(sock).text("RETR notes.txt")

        assert written(sock).startswith(b"TYPE A\r\n")

    @patch("pasvftp.ftp.passive.socket.create_connection")
    def test_type_refused(self, mock_connect, control_socket, written):
        """Test a refused TYPE stops before any data connection."""
        sock = control_socket(WELCOME + b"504 Type not supported\r\n")

        with pytest.raises(FTPReplyError) as exc_info:
            FTPClient(sock).binary("RETR file.bin")

        assert exc_info.value.code == 504
        mock_connect.assert_not_called()
        assert written(sock) == b"TYPE I\r\n"

    @patch("pasvftp.ftp.passive.socket.create_connection")
    def test_command_refused_closes_data_socket(self, mock_connect, control_socket, data_socket):
        """Test the data socket is closed before a refused command is reported."""
        mock_connect.return_value = data_socket
        sock = control_socket(WELCOME + TYPE_OK + PASV_OK + b"550 No such file\r\n")
        client = FTPClient(sock)

        with pytest.raises(FTPReplyError) as exc_info:
            client.binary("RETR missing.bin")

        assert exc_info.value.reply == Reply(550, "No such file")
        assert data_socket.close.call_count == 1
        assert client.state == ConnectionState.CONNECTED

    @patch("pasvftp.ftp.passive.socket.create_connection")
    def test_command_transport_error_closes_data_socket(self, mock_connect, control_socket, data_socket):
        """Test the data socket is closed when the command reply cannot be read."""
        mock_connect.return_value = data_socket
        sock = control_socket(WELCOME + TYPE_OK + PASV_OK)

        with pytest.raises(FTPTransportError):
            FTPClient(sock).binary("RETR file.bin")

        data_socket.close.assert_called_once()

    @patch("pasvftp.ftp.passive.socket.create_connection")
    def test_dial_failure(self, mock_connect, control_socket):
        """Test dial errors become FTPConnectionError."""
        mock_connect.side_effect = ConnectionRefusedError("refused")
        sock = control_socket(WELCOME + TYPE_OK + PASV_OK)

        with pytest.raises(FTPConnectionError) as exc_info:
            FTPClient(sock).binary("RETR file.bin")

        assert exc_info.value.host == "192.0.2.47"
        assert exc_info.value.port == 1031


class TestDataConnection:
    """Tests for DataConnection I/O and close()."""

    @pytest.fixture
    def open_transfer(self, control_socket, data_socket):
        """Open a transfer; returns a factory taking the trailing server output."""
        def factory(trailer: bytes):
            sock = control_socket(
                WELCOME + TYPE_OK + PASV_OK + b"150 Opening\r\n" + trailer
            )
            client = FTPClient(sock)
            with patch("pasvftp.ftp.passive.socket.create_connection", return_value=data_socket):
                conn = client.binary("STOR upload.bin")
            return client, conn, sock
        return factory

    def test_close_reads_confirmation(self, open_transfer, data_socket):
        """Test close() closes the socket and returns the 226 reply."""
        client, conn, _ = open_transfer(b"226 Transfer complete\r\n")

        reply = conn.close()

        assert reply == Reply(226, "Transfer complete")
        data_socket.close.assert_called_once()
        assert conn.closed is True
        assert client.state == ConnectionState.CONNECTED

    def test_close_negative_confirmation(self, open_transfer, data_socket):
        """Test a failed transfer is reported by close()."""
        client, conn, _ = open_transfer(b"426 Connection closed; transfer aborted\r\n")

        with pytest.raises(FTPReplyError) as exc_info:
            conn.close()

        assert exc_info.value.code == 426
        data_socket.close.assert_called_once()
        assert client.state == ConnectionState.CONNECTED

    def test_close_socket_error_still_reads_reply(self, open_transfer, data_socket):
        """Test the confirmation is consumed even when the socket close fails."""
        data_socket.close.side_effect = OSError("close failed")
        client, conn, _ = open_transfer(b"226 Done\r\n200 NOOP ok\r\n")

        with pytest.raises(FTPTransportError, match="close data connection"):
            conn.close()

        assert client.do("NOOP") == Reply(200, "NOOP ok")

    def test_close_both_failures(self, open_transfer, data_socket):
        """Test the socket error wins and chains the reply error."""
        data_socket.close.side_effect = OSError("close failed")
        _, conn, _ = open_transfer(b"451 Local error\r\n")

        with pytest.raises(FTPTransportError) as exc_info:
            conn.close()

        assert isinstance(exc_info.value.__cause__, FTPReplyError)
        assert exc_info.value.__cause__.code == 451

    def test_close_twice(self, open_transfer, data_socket):
        """Test a second close() does not read another reply."""
        _, conn, _ = open_transfer(b"226 Done\r\n")

        first = conn.close()
        second = conn.close()

        assert first is second
        data_socket.close.assert_called_once()

    def test_context_manager(self, open_transfer, data_socket):
        """Test leaving the with block closes the connection."""
        _, conn, _ = open_transfer(b"226 Done\r\n")

        with conn as stream:
            stream.write(b"payload")

        data_socket.sendall.assert_called_once_with(b"payload")
        assert conn.reply == Reply(226, "Done")

    def test_read(self, open_transfer, data_socket):
        """Test read() returns socket data."""
        data_socket.recv.side_effect = [b"abc", b""]
        _, conn, _ = open_transfer(b"226 Done\r\n")

        assert conn.read(1024) == b"abc"
        assert conn.read(1024) == b""
        data_socket.recv.assert_called_with(1024)

    def test_readinto(self, open_transfer, data_socket):
        """Test readinto() fills the caller's buffer from the socket."""
        data_socket.recv_into.return_value = 3
        _, conn, _ = open_transfer(b"226 Done\r\n")
        buffer = bytearray(8)

        assert conn.readinto(buffer) == 3
        data_socket.recv_into.assert_called_once_with(buffer)

    def test_readinto_timeout(self, open_transfer, data_socket):
        """Test a data socket timeout during readinto() is FTPTimeoutError."""
        data_socket.recv_into.side_effect = socket.timeout("timed out")
        _, conn, _ = open_transfer(b"226 Done\r\n")

        with pytest.raises(FTPTimeoutError):
            conn.readinto(bytearray(8))

    def test_fileno(self, open_transfer, data_socket):
        """Test fileno() exposes the data socket descriptor for select()."""
        data_socket.fileno.return_value = 7
        _, conn, _ = open_transfer(b"226 Done\r\n")

        assert conn.fileno() == 7

    def test_read_error(self, open_transfer, data_socket):
        """Test data socket failures are transport errors."""
        data_socket.recv.side_effect = ConnectionResetError("reset")
        _, conn, _ = open_transfer(b"226 Done\r\n")

        with pytest.raises(FTPTransportError):
            conn.read()

    def test_commands_refused_while_open(self, open_transfer, written):
        """Test no command is sent while the data connection is open."""
        client, conn, sock = open_transfer(b"226 Done\r\n")
        before = written(sock)

        with pytest.raises(FTPTransferInProgressError, match="NOOP"):
            client.do("NOOP")

        assert written(sock) == before
        conn.close()
