"""Tests for user-facing messages."""

import click

from portclash.errors import NoUsablePortsAvailable, PortCollision
from portclash.format import format_error, format_mappings, format_repair_notice
from portclash.models import ForwardedPort, Machine, RepairNotice


def test_repair_notice_text():
    """Notice names guest, old and new ports."""
    n = RepairNotice(guest_port=22, old_host_port=2222, new_host_port=2200)
    assert format_repair_notice(n) == "Fixed port collision for 22 => 2222. Now on port 2200."


def test_collision_error_mentions_port_and_repair():
    """PortCollision text points at --repair."""
    text = click.unstyle(format_error(PortCollision(80, 8080)))
    assert "8080" in text
    assert "--repair" in text


def test_exhausted_error_mentions_machine():
    """NoUsablePortsAvailable text names the machine and the range."""
    text = click.unstyle(format_error(NoUsablePortsAvailable("web", 22, 2222)))
    assert "No usable ports available" in text
    assert "'web'" in text
    assert "usable_port_range" in text


def test_mappings_table_marks_repairs():
    """Repaired rows show the old host port."""
    m = Machine(name="web", forwarded_ports=[ForwardedPort(22, 2200), ForwardedPort(80, 8080)])
    text = click.unstyle(format_mappings(m, [RepairNotice(22, 2222, 2200, "web")]))
    assert "portclash · web" in text
    assert "(was 2222)" in text
    assert "1 collision(s) repaired." in text


def test_mappings_table_clean():
    """No notices -> no-collision footer."""
    text = click.unstyle(format_mappings(Machine(name="x")))
    assert "(no forwarded ports)" in text
    assert "No collisions." in text


def test_wrap_indents_continuation_lines():
    """Long paragraphs wrap at the width; follow-on lines get two extra spaces."""
    from portclash.format import _wrap

    lines = _wrap("word " * 30, indent=2, width=40)
    assert len(lines) > 1
    assert all(len(line) <= 40 for line in lines)
    assert lines[0].startswith("  word")
    assert all(line.startswith("    word") for line in lines[1:])
