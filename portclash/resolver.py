"""Collision resolver — detect and repair forwarded host port collisions."""

from __future__ import annotations

import logging
from typing import Callable, Iterable, MutableSequence

from .config import get_forwarded_ports, get_usable_port_range
from .errors import NoUsablePortsAvailable, PortCollision
from .models import CollisionOptions, ForwardedPort, Machine, RepairNotice
from .probe import DEFAULT_HOST, PortProbe, is_port_open

logger = logging.getLogger(__name__)

Notify = Callable[[RepairNotice], None]


def resolve_collisions(
    ports: MutableSequence[ForwardedPort],
    usable_range: Iterable[int],
    options: CollisionOptions | None = None,
    probe: PortProbe = is_port_open,
    notify: Notify | None = None,
    machine_name: str = "default",
) -> list[RepairNotice]:
    """
    Check every forwarded port for a host collision, in order.

    Raises PortCollision when a host port is taken and repair is off, and
    NoUsablePortsAvailable when repair is on but the pool is empty. Repaired
    ports are rewritten in place; earlier repairs are kept when a later port fails.
    Returns one RepairNotice per repaired port.
    """
    options = options or CollisionOptions()
    extra_in_use = set(options.extra_in_use)
    remap = options.remap

    logger.info("Detecting any forwarded port collisions...")
    logger.debug("Extra in use: %s", sorted(extra_in_use))
    logger.debug("Remap: %s", remap)
    logger.debug("Repair: %s", options.repair)

    usable = set(usable_range) - extra_in_use

    # Declared host ports are never handed out as replacements
    for fp in ports:
        usable.discard(fp.host)

    notices: list[RepairNotice] = []
    for fp in ports:
        guest_port = fp.guest
        host_port = fp.host

        if host_port in remap:
            logger.debug("Remap port override: %d => %d", host_port, remap[host_port])
            host_port = remap[host_port]

        if host_port not in extra_in_use and not probe(DEFAULT_HOST, host_port):
            fp.host = host_port
            continue

        if not options.repair:
            raise PortCollision(guest_port, host_port)

        logger.info("Attempting to repair FP collision: %d", host_port)
        if not usable:
            raise NoUsablePortsAvailable(machine_name, guest_port, host_port)

        repaired_port = min(usable)
        usable.remove(repaired_port)
        fp.host = repaired_port
        logger.info("Repaired FP collision: %d to %d", host_port, repaired_port)

        notice = RepairNotice(
            guest_port=guest_port,
            old_host_port=host_port,
            new_host_port=repaired_port,
            machine=machine_name,
        )
        notices.append(notice)
        if notify is not None:
            notify(notice)

    return notices


def resolve_machine(
    machine: Machine,
    options: CollisionOptions | None = None,
    probe: PortProbe = is_port_open,
    notify: Notify | None = None,
) -> list[RepairNotice]:
    """Resolve one machine's forwarded ports against its own usable range."""
    return resolve_collisions(
        get_forwarded_ports(machine),
        get_usable_port_range(machine),
        options=options,
        probe=probe,
        notify=notify,
        machine_name=machine.name,
    )


def resolve_machines(
    machines: Iterable[Machine],
    options: CollisionOptions | None = None,
    probe: PortProbe = is_port_open,
    notify: Notify | None = None,
) -> dict[str, list[RepairNotice]]:
    """
    Resolve several machines one after another.
    Host ports settled for earlier machines count as in use for later ones.
    """
    options = options or CollisionOptions()
    claimed: set[int] = set()
    results: dict[str, list[RepairNotice]] = {}
    for machine in machines:
        machine_options = CollisionOptions(
            repair=options.repair,
            extra_in_use=frozenset(options.extra_in_use) | frozenset(claimed),
            remap=options.remap,
        )
        results[machine.name] = resolve_machine(machine, machine_options, probe=probe, notify=notify)
        claimed.update(fp.host for fp in machine.forwarded_ports)
    return results
