"""Tests for the localhost TCP probe."""

import socket
from unittest.mock import patch

from portclash.probe import is_port_open


def test_listening_port_is_open():
    """A bound, listening socket reports open."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        s.listen(1)
        port = s.getsockname()[1]
        assert is_port_open("127.0.0.1", port) is True


def test_bound_but_not_listening_is_closed():
    """A port nobody listens on reports closed (connection refused)."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        port = s.getsockname()[1]
        assert is_port_open("127.0.0.1", port) is False


def test_transport_errors_are_not_open():
    """Unexpected socket errors are normalized to False."""
    with patch("portclash.probe.socket.create_connection", side_effect=OSError("unreachable")):
        assert is_port_open("127.0.0.1", 2222) is False


def test_timeout_is_not_open():
    """Timeouts are normalized to False."""
    with patch("portclash.probe.socket.create_connection", side_effect=socket.timeout()):
        assert is_port_open("10.255.255.1", 22, timeout=0.01) is False
