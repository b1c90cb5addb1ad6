"""Localhost TCP probe — is anything accepting connections on a port?"""

import logging
import socket
from typing import Callable

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_TIMEOUT = 1.0  # seconds

# (host, port) -> True if a listener accepts connections
PortProbe = Callable[[str, int], bool]


def is_port_open(host: str, port: int, timeout: float = DEFAULT_TIMEOUT) -> bool:
    """
    Connect to host:port and close immediately.
    Refused, unreachable, timed out or any other socket error counts as not open.
    """
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except (ConnectionRefusedError, socket.timeout):
        return False
    except OSError as e:
        logger.debug("Probe of %s:%d failed: %s", host, port, e)
        return False
