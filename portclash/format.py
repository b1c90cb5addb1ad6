"""Terminal output formatting — repair notices, error remediation, mapping table."""

import shutil
import textwrap
from typing import List

import click

from .errors import NoUsablePortsAvailable, PortClashError, PortCollision
from .models import Machine, RepairNotice


def _get_width() -> int:
    """Terminal width, capped at 72 columns."""
    try:
        return min(72, shutil.get_terminal_size((72, 24)).columns)
    except OSError:
        return 72


def _wrap(text: str, indent: int = 0, width: int = 72) -> List[str]:
    """Wrap a paragraph; continuation lines are indented two more columns."""
    return textwrap.wrap(
        text,
        width=width,
        initial_indent=" " * indent,
        subsequent_indent=" " * (indent + 2),
        break_on_hyphens=False,
    )


def format_repair_notice(notice: RepairNotice) -> str:
    """One-line user message for a repaired collision."""
    return (
        f"Fixed port collision for {notice.guest_port} => {notice.old_host_port}. "
        f"Now on port {notice.new_host_port}."
    )


def _remediation(exc: PortClashError) -> List[str]:
    if isinstance(exc, PortCollision):
        return [
            f"The forwarded port to {exc.host_port} is already in use on the host machine.",
            "To fix this, change the host port of this forwarded port in the machine "
            "configuration, stop whatever is listening on it, or rerun with --repair "
            "to move it to a free port automatically.",
        ]
    if isinstance(exc, NoUsablePortsAvailable):
        return [
            f"Machine '{exc.machine}' needs a new host port for guest port {exc.guest_port} "
            f"(host port {exc.host_port} is in use), but every port in its "
            "usable_port_range is taken.",
            "Widen usable_port_range, free some ports, or pick an explicit host port.",
        ]
    return [str(exc)]


def format_error(exc: PortClashError) -> str:
    """Multi-line, wrapped error text with remediation advice."""
    width = _get_width()
    title = click.style("Port collision", fg="red", bold=True)
    if isinstance(exc, NoUsablePortsAvailable):
        title = click.style("No usable ports available", fg="red", bold=True)
    lines = [title]
    for para in _remediation(exc):
        lines.append("")
        lines.extend(_wrap(para, indent=2, width=width))
    return "\n".join(lines)


def format_mappings(machine: Machine, notices: List[RepairNotice] | None = None) -> str:
    """Boxed table of a machine's forwarded ports. Repaired rows are highlighted."""
    width = _get_width()
    repaired = {(n.guest_port, n.new_host_port): n for n in notices or []}
    lines = []

    lines.append("┌" + "─" * (width - 2) + "┐")
    lines.append(f" portclash · {machine.name}")
    lines.append("─" * width)

    if not machine.forwarded_ports:
        lines.append("  (no forwarded ports)")
    for fp in machine.forwarded_ports:
        row = f"  {fp.guest:>5} => {fp.host:<5} {fp.protocol}"
        if fp.host_ip:
            row += f"  host_ip={fp.host_ip}"
        n = repaired.get((fp.guest, fp.host))
        if n is not None:
            row = click.style(row + f"  (was {n.old_host_port})", fg="yellow")
        lines.append(row)

    lines.append("─" * width)
    if notices:
        lines.append(click.style(f" {len(notices)} collision(s) repaired.", fg="yellow"))
    else:
        lines.append(click.style(" No collisions.", fg="green"))
    lines.append("└" + "─" * (width - 2) + "┘")
    return "\n".join(lines)
