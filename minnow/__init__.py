"""Wire formats, sockets, TUN devices and a poll-based event loop for a user-space TCP/IP stack."""

__version__ = "0.1.0"