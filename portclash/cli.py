"""CLI entry point — load machines, resolve forwarded port collisions, print results."""

import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional

import click
import typer

from .config import load_machines, load_options, merge_options, parse_remap
from .errors import ConfigError, PortClashError
from .format import format_error, format_mappings, format_repair_notice
from .probe import DEFAULT_HOST, DEFAULT_TIMEOUT, is_port_open
from .resolver import resolve_machines


def _err(msg: str) -> None:
    """Raise a styled error (red box) — used for all CLI usage errors."""
    raise click.BadParameter(msg)


_SUBCOMMANDS = {"resolve", "probe"}


def _preprocess_argv():
    """Fix argv so `portclash machine.yaml ...` means `portclash resolve machine.yaml ...`."""
    argv = sys.argv[1:]
    # Global options (--verbose) take no value, so the first bare token is the command
    for i, t in enumerate(argv):
        if t.startswith("-"):
            continue
        if t not in _SUBCOMMANDS:
            sys.argv[1:] = [*argv[:i], "resolve", *argv[i:]]
        return


app = typer.Typer(help="Detect and repair forwarded-port collisions for virtual machines.")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log resolution details"),
) -> None:
    """Forwarded-port collision checks."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _machine_json(machine, notices) -> dict:
    return {
        "name": machine.name,
        "forwarded_ports": [asdict(fp) for fp in machine.forwarded_ports],
        "repairs": [asdict(n) for n in notices],
    }


@app.command("resolve")
def resolve_cmd(
    config: Path = typer.Argument(..., exists=True, file_okay=True, dir_okay=False, help="Machine config (YAML, TOML or JSON)"),
    machine: Optional[List[str]] = typer.Option(None, "--machine", "-m", help="Only resolve these machines"),
    repair: Optional[bool] = typer.Option(None, "--repair/--no-repair", help="Move colliding ports to free ones"),
    extra_in_use: Optional[List[int]] = typer.Option(None, "--extra-in-use", "-x", help="Treat port as in use"),
    remap: Optional[List[str]] = typer.Option(None, "--remap", "-r", help="Override a host port, HOST:NEW"),
    json_out: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Resolve forwarded port collisions for the machines in CONFIG."""
    try:
        machines = load_machines(config)
        options = merge_options(
            load_options(config),
            repair=repair,
            extra_in_use=extra_in_use or [],
            remap=parse_remap(remap or []),
        )
    except ConfigError as e:
        _err(str(e))

    if machine:
        unknown = [m for m in machine if m not in {x.name for x in machines}]
        if unknown:
            _err(f"Unknown machine(s): {', '.join(unknown)}\nAvailable: {', '.join(x.name for x in machines)}")
        machines = [x for x in machines if x.name in machine]

    def _notify(notice) -> None:
        if not json_out:
            typer.echo(format_repair_notice(notice), err=True)

    try:
        results = resolve_machines(machines, options, notify=_notify)
    except PortClashError as e:
        typer.echo(format_error(e), err=True)
        raise typer.Exit(1)

    if json_out:
        output = {"machines": [_machine_json(m, results[m.name]) for m in machines]}
        typer.echo(json.dumps(output, indent=2))
        return
    for m in machines:
        typer.echo(format_mappings(m, results[m.name]))


@app.command("probe")
def probe_cmd(
    port: int = typer.Argument(..., min=1, max=65535, help="TCP port"),
    host: str = typer.Option(DEFAULT_HOST, "--host", help="Address to connect to"),
    timeout: float = typer.Option(DEFAULT_TIMEOUT, "--timeout", "-t", help="Connect timeout (seconds)"),
) -> None:
    """Report whether PORT accepts TCP connections. Exit 1 when open."""
    if is_port_open(host, port, timeout=timeout):
        typer.echo(f"{host}:{port} open")
        raise typer.Exit(1)
    typer.echo(f"{host}:{port} closed")


def _main() -> None:
    """Entry point: preprocess argv (portclash x.yaml -> portclash resolve x.yaml), then run app."""
    _preprocess_argv()
    app()


if __name__ == "__main__":
    _main()
