"""
Rich renderables for an engine Snapshot.

Used by the interactive debugger; pure functions of the snapshot, so
rendering can never disturb the engine.
"""

from typing import Iterable, Optional, Tuple

from rich import box
from rich.columns import Columns
from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .engine import Snapshot

IP_STYLE = "bold black on yellow"
BREAKPOINT_STYLE = "bold white on red"
STACK_ROWS = 12


def _printable(ch: str) -> str:
    return ch if ' ' <= ch <= '~' else '·'


def _extent(snapshot: Snapshot) -> Tuple[int, int]:
    """Columns/rows worth drawing: the used part of the grid plus the IP."""
    cols = rows = 0
    for y, row in enumerate(snapshot.grid):
        stripped = row.rstrip(' ')
        if stripped:
            rows = y + 1
            cols = max(cols, len(stripped))
    return max(cols, snapshot.x + 1), max(rows, snapshot.y + 1)


def render_grid(snapshot: Snapshot, breakpoints: Iterable[Tuple[int, int]] = ()) -> Panel:
    cols, rows = _extent(snapshot)
    marks = set(breakpoints)
    text = Text(no_wrap=True)
    for y in range(rows):
        row = snapshot.grid[y]
        for x in range(cols):
            ch = _printable(row[x])
            if (x, y) == snapshot.position:
                text.append(ch, style=IP_STYLE)
            elif (x, y) in marks:
                text.append(ch, style=BREAKPOINT_STYLE)
            else:
                text.append(ch)
        if y != rows - 1:
            text.append("\n")
    return Panel(text, title="Grid", box=box.ROUNDED, expand=False)


def render_stack(snapshot: Snapshot) -> Panel:
    table = Table(box=None, show_header=False, pad_edge=False)
    table.add_column(justify="right", style="dim")
    table.add_column(justify="right")
    table.add_column(justify="left", style="cyan")
    items = list(snapshot.stack)
    for depth, value in enumerate(reversed(items[-STACK_ROWS:])):
        char = _printable(chr(value)) if 0 <= value < 0x110000 else ''
        table.add_row(str(depth), str(value), char)
    if len(items) > STACK_ROWS:
        table.add_row("", f"... {len(items) - STACK_ROWS} more", "")
    if not items:
        table.add_row("", "(empty)", "")
    return Panel(table, title=f"Stack [{len(items)}]", box=box.ROUNDED, expand=False)


def render_status(snapshot: Snapshot) -> Panel:
    table = Table(box=None, show_header=False, pad_edge=False)
    table.add_column(style="bold")
    table.add_column()
    if snapshot.fault is not None:
        state = Text(f"FAULTED ({snapshot.fault.value})", style="bold red")
    elif snapshot.terminated:
        state = Text("TERMINATED", style="bold green")
    else:
        state = Text("READY", style="bold")
    table.add_row("State", state)
    table.add_row("IP", f"({snapshot.x}, {snapshot.y})")
    table.add_row("Direction", f"{snapshot.direction.name} {snapshot.direction.arrow}")
    table.add_row("Cell", repr(snapshot.current))
    table.add_row("String mode", "on" if snapshot.string_mode else "off")
    table.add_row("Steps", str(snapshot.steps))
    for kind, count in snapshot.recovered.items():
        table.add_row("Recovered", f"{kind.value} x{count}")
    return Panel(table, title="IP", box=box.ROUNDED, expand=False)


def render_output(output_text: str, tail: int = 8) -> Panel:
    lines = output_text.splitlines()[-tail:] if output_text else []
    body = Text("\n".join(lines)) if lines else Text("(no output)", style="dim")
    return Panel(body, title="Output", box=box.ROUNDED, expand=False)


def render_snapshot(snapshot: Snapshot, output_text: Optional[str] = None,
                    breakpoints: Iterable[Tuple[int, int]] = ()) -> Group:
    parts = [
        render_grid(snapshot, breakpoints),
        Columns([render_status(snapshot), render_stack(snapshot)]),
    ]
    if output_text is not None:
        parts.append(render_output(output_text))
    return Group(*parts)
