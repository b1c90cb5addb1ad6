"""Error taxonomy."""


class PortClashError(Exception):
    """Base class for every error raised by portclash."""


class PortCollision(PortClashError):
    """A host port is already in use and repair is disabled."""

    def __init__(self, guest_port: int, host_port: int):
        self.guest_port = guest_port
        self.host_port = host_port
        super().__init__(f"Forwarded port {guest_port} => {host_port} collides: host port {host_port} is in use")


class NoUsablePortsAvailable(PortClashError):
    """Repair was requested but the usable port pool is exhausted."""

    def __init__(self, machine: str, guest_port: int, host_port: int):
        self.machine = machine
        self.guest_port = guest_port
        self.host_port = host_port
        super().__init__(
            f"[{machine}] cannot repair forwarded port {guest_port} => {host_port}: no usable ports left"
        )


class ConfigError(PortClashError):
    """Machine configuration is missing, unreadable or invalid."""
