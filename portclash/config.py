"""Machine configuration loading — YAML, TOML or JSON files."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Iterable

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore

import yaml

from .errors import ConfigError
from .models import DEFAULT_USABLE_PORT_RANGE, CollisionOptions, ForwardedPort, Machine

logger = logging.getLogger(__name__)

FORWARDED_PORT = "forwarded_port"
PROTOCOLS = {"tcp", "udp"}
MIN_PORT = 1
MAX_PORT = 65535

_RANGE_RE = re.compile(r"^\s*(\d+)\s*(?:\.\.|-)\s*(\d+)\s*$")


def _read_document(path: Path) -> dict[str, Any]:
    """Parse a config file by extension. Unknown extensions are tried as YAML."""
    path = Path(path)
    try:
        text = path.read_text()
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    suffix = path.suffix.lower()
    try:
        if suffix == ".toml":
            data = tomllib.loads(text)
        elif suffix == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (tomllib.TOMLDecodeError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Malformed config {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: top level must be a mapping")
    return data


def _port(value: Any, where: str) -> int:
    """Validate one port number."""
    if isinstance(value, bool):
        raise ConfigError(f"{where}: port must be an integer, got {value!r}")
    try:
        port = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{where}: port must be an integer, got {value!r}") from None
    if isinstance(value, float) and value != port:
        raise ConfigError(f"{where}: port must be an integer, got {value!r}")
    if not MIN_PORT <= port <= MAX_PORT:
        raise ConfigError(f"{where}: port {port} out of range {MIN_PORT}-{MAX_PORT}")
    return port


def parse_port_range(value: Any, where: str = "usable_port_range") -> set[int]:
    """
    Accepts [low, high] inclusive bounds, "low..high" / "low-high",
    or an explicit list of ports.
    """
    if value is None:
        return set(DEFAULT_USABLE_PORT_RANGE)
    if isinstance(value, str):
        m = _RANGE_RE.match(value)
        if not m:
            raise ConfigError(f"{where}: expected 'low..high', got {value!r}")
        low, high = _port(m.group(1), where), _port(m.group(2), where)
        if low > high:
            raise ConfigError(f"{where}: empty range {value!r}")
        return set(range(low, high + 1))
    if isinstance(value, dict):
        low, high = _port(value.get("low"), where), _port(value.get("high"), where)
        if low > high:
            raise ConfigError(f"{where}: empty range {low}..{high}")
        return set(range(low, high + 1))
    if isinstance(value, (list, tuple)):
        # Two ascending numbers read as bounds; anything else is an explicit list
        if len(value) == 2 and _port(value[0], where) < _port(value[1], where):
            return set(range(_port(value[0], where), _port(value[1], where) + 1))
        return {_port(v, where) for v in value}
    raise ConfigError(f"{where}: unsupported value {value!r}")


def _forwarded_port(entry: dict, where: str) -> ForwardedPort:
    for key in ("guest", "host"):
        if key not in entry:
            raise ConfigError(f"{where}: forwarded port is missing '{key}'")
    protocol = str(entry.get("protocol", "tcp")).lower()
    if protocol not in PROTOCOLS:
        raise ConfigError(f"{where}: unknown protocol {protocol!r}")
    return ForwardedPort(
        guest=_port(entry["guest"], f"{where}.guest"),
        host=_port(entry["host"], f"{where}.host"),
        id=str(entry.get("id") or ""),
        protocol=protocol,
        host_ip=entry.get("host_ip"),
        guest_ip=entry.get("guest_ip"),
    )


def machine_from_dict(data: dict, default_name: str = "default") -> Machine:
    """Build a Machine from a config mapping. Non-forwarded networks are kept but ignored."""
    name = str(data.get("name") or default_name)
    ports: list[ForwardedPort] = []
    others: list[dict] = []
    networks = data.get("networks") or []
    if not isinstance(networks, list):
        raise ConfigError(f"{name}.networks: expected a list, got {networks!r}")
    for i, entry in enumerate(networks):
        where = f"{name}.networks[{i}]"
        if not isinstance(entry, dict):
            raise ConfigError(f"{where}: expected a mapping, got {entry!r}")
        if entry.get("type") != FORWARDED_PORT:
            others.append(entry)
            continue
        ports.append(_forwarded_port(entry, where))
    return Machine(
        name=name,
        forwarded_ports=ports,
        usable_port_range=parse_port_range(data.get("usable_port_range"), f"{name}.usable_port_range"),
        networks=others,
    )


def load_machines(path: Path) -> list[Machine]:
    """Load every machine from a config file (a `machines:` list or a single machine)."""
    data = _read_document(path)
    entries = data.get("machines")
    if entries is None:
        return [machine_from_dict(data)]
    if not isinstance(entries, list):
        raise ConfigError(f"{path}: 'machines' must be a list")
    machines = []
    for i, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise ConfigError(f"{path}: machines[{i}] must be a mapping")
        machines.append(machine_from_dict(entry, default_name=f"machine{i + 1}"))
    names = [m.name for m in machines]
    if len(set(names)) != len(names):
        raise ConfigError(f"{path}: duplicate machine names in {names}")
    logger.debug("Loaded %d machine(s) from %s", len(machines), path)
    return machines


def options_from_dict(data: dict | None) -> CollisionOptions:
    """Build CollisionOptions from a `port_collision:` section."""
    if not data:
        return CollisionOptions()
    if not isinstance(data, dict):
        raise ConfigError("port_collision must be a mapping")
    remap_raw = data.get("remap") or {}
    if not isinstance(remap_raw, dict):
        raise ConfigError("port_collision.remap must be a mapping")
    repair = data.get("repair", False)
    if not isinstance(repair, bool):
        raise ConfigError(f"port_collision.repair must be true or false, got {repair!r}")
    extra_raw = data.get("extra_in_use") or []
    if not isinstance(extra_raw, list):
        raise ConfigError(f"port_collision.extra_in_use must be a list, got {extra_raw!r}")
    return CollisionOptions(
        repair=repair,
        extra_in_use=frozenset(_port(p, "port_collision.extra_in_use") for p in extra_raw),
        remap={
            _port(k, "port_collision.remap"): _port(v, "port_collision.remap")
            for k, v in remap_raw.items()
        },
    )


def load_options(path: Path) -> CollisionOptions:
    """Read the optional `port_collision:` section of a config file."""
    return options_from_dict(_read_document(path).get("port_collision"))


def parse_remap(values: Iterable[str]) -> dict[int, int]:
    """Parse "HOST:NEW" pairs, e.g. ["2222:2200"]."""
    remap: dict[int, int] = {}
    for v in values:
        old, sep, new = v.partition(":")
        if not sep:
            raise ConfigError(f"Invalid remap {v!r}, expected HOST:NEW")
        remap[_port(old.strip(), "remap")] = _port(new.strip(), "remap")
    return remap


def merge_options(
    base: CollisionOptions,
    repair: bool | None = None,
    extra_in_use: Iterable[int] = (),
    remap: dict[int, int] | None = None,
) -> CollisionOptions:
    """Overlay command-line values on file options. Explicit values win."""
    return CollisionOptions(
        repair=base.repair if repair is None else repair,
        extra_in_use=base.extra_in_use | frozenset(_port(p, "extra_in_use") for p in extra_in_use),
        remap={**base.remap, **(remap or {})},
    )


def get_usable_port_range(machine: Machine) -> set[int]:
    """Candidate host ports for repair."""
    return set(machine.usable_port_range)


def get_forwarded_ports(machine: Machine) -> list[ForwardedPort]:
    """Forwarded-port rules in declaration order (same objects, mutable)."""
    return machine.forwarded_ports
