"""Structured records for machines, forwarded ports and collision options."""

from dataclasses import dataclass, field

# Conventional guest-SSH forwarding range, inclusive
DEFAULT_USABLE_PORT_RANGE = range(2200, 2251)


@dataclass
class ForwardedPort:
    """One guest -> host port rule. `host` may be rewritten by the resolver."""

    guest: int
    host: int
    id: str = ""
    protocol: str = "tcp"  # "tcp" or "udp"
    host_ip: str | None = None
    guest_ip: str | None = None

    def __post_init__(self) -> None:
        if not self.id:
            self.id = f"{self.guest}-{self.host}"


@dataclass
class Machine:
    """A virtual machine's network configuration."""

    name: str = "default"
    forwarded_ports: list[ForwardedPort] = field(default_factory=list)
    usable_port_range: set[int] = field(default_factory=lambda: set(DEFAULT_USABLE_PORT_RANGE))
    networks: list[dict] = field(default_factory=list)  # non-forwarded entries, kept verbatim


@dataclass
class CollisionOptions:
    """Knobs for one resolution run."""

    repair: bool = False
    extra_in_use: frozenset[int] = frozenset()
    remap: dict[int, int] = field(default_factory=dict)


@dataclass(frozen=True)
class RepairNotice:
    """Emitted once per repaired mapping, in resolution order."""

    guest_port: int
    old_host_port: int
    new_host_port: int
    machine: str = "default"
