"""pasvftp: a minimal passive-mode FTP client.

Reads RFC 959 replies, negotiates PASV/EPSV data connections and ties
each transfer to the server's confirmation reply.
"""

__version__ = "0.1.0"
