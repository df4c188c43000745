"""
Interactive terminal stepper for Befunge93 programs.

Plays the role of a "Load / Step / Run" front end: the engine is driven
only through load(), step(), run() and inspect(), and the state is redrawn
with rich after every command.

Commands:
    s [N]     step N instructions (default 1)
    r [N]     run until end, fault, breakpoint or N steps
    b X Y     toggle a breakpoint on cell (X, Y)
    c         clear all breakpoints
    i TEXT    queue TEXT as program input
    l         reload the program (reset IP, stack, grid and output)
    q         quit
    ?         help
"""

import logging
import shlex
from typing import Optional

from rich.console import Console

from .engine import Engine, RunOutcome, StepOutcome
from .io_port import BufferedPort
from .viewer import render_snapshot

log = logging.getLogger(__name__)

DEFAULT_RUN_LIMIT = 100_000

HELP = """\
s [N]    step N instructions (default 1)
r [N]    run until end, fault, breakpoint or N steps
b X Y    toggle breakpoint at (X, Y)
c        clear breakpoints
i TEXT   queue TEXT as program input
l        reload the program
q        quit
?        this help"""


class Debugger:

    def __init__(self, source: str, engine: Optional[Engine] = None,
                 console: Optional[Console] = None, input_data: str = ''):
        self.port = BufferedPort(input_data)
        self.engine = engine or Engine(self.port)
        self.engine.port = self.port
        self.console = console or Console()
        self.source = source
        self.input_data = input_data
        self.engine.load(source)

    def render(self):
        self.console.print(render_snapshot(
            self.engine.inspect(),
            output_text=self.port.output_text,
            breakpoints=self.engine.breakpoints,
        ))

    def reload(self):
        self.port.reset()
        self.port.feed(self.input_data)
        self.engine.load(self.source)
        self.console.print("[bold]Program reloaded[/bold]")

    # ── Commands ──

    def do_step(self, count: int = 1):
        for _ in range(count):
            outcome = self.engine.step()
            if outcome is StepOutcome.ALREADY_TERMINATED:
                self.console.print("[yellow]Already terminated, 'l' to reload[/yellow]")
                return
            if outcome is not StepOutcome.CONTINUED:
                self.console.print(f"[bold]{outcome.value}[/bold]")
                return

    def do_run(self, limit: int = DEFAULT_RUN_LIMIT):
        result = self.engine.run(step_limit=limit)
        message = f"{result.outcome.value} after {result.steps} steps"
        if result.outcome is RunOutcome.FAULTED:
            message += f" ({result.fault.value})"
        self.console.print(f"[bold]{message}[/bold]")

    def do_breakpoint(self, x: int, y: int):
        cell = self.engine.grid.wrap(x, y)
        if cell in self.engine.breakpoints:
            self.engine.remove_breakpoint(*cell)
            self.console.print(f"Breakpoint removed at {cell}")
        else:
            self.engine.add_breakpoint(*cell)
            self.console.print(f"Breakpoint set at {cell}")

    def execute(self, line: str) -> bool:
        """Run one command line. Returns False when the user quits."""
        try:
            words = shlex.split(line)
        except ValueError as e:
            self.console.print(f"[red]{e}[/red]")
            return True
        if not words:
            return True
        cmd, args = words[0].lower(), words[1:]

        try:
            if cmd in ('q', 'quit', 'exit'):
                return False
            elif cmd in ('s', 'step'):
                self.do_step(int(args[0]) if args else 1)
            elif cmd in ('r', 'run'):
                self.do_run(int(args[0]) if args else DEFAULT_RUN_LIMIT)
            elif cmd in ('b', 'break'):
                if len(args) != 2:
                    self.console.print("[red]usage: b X Y[/red]")
                    return True
                self.do_breakpoint(int(args[0]), int(args[1]))
            elif cmd in ('c', 'clear'):
                self.engine.clear_breakpoints()
                self.console.print("Breakpoints cleared")
            elif cmd in ('i', 'input'):
                text = ' '.join(args)
                self.port.feed(text + '\n')
                self.input_data += text + '\n'
            elif cmd in ('l', 'load', 'reload'):
                self.reload()
            elif cmd in ('?', 'h', 'help'):
                self.console.print(HELP)
                return True
            else:
                self.console.print(f"[red]Unknown command: {cmd}[/red] ('?' for help)")
                return True
        except ValueError:
            self.console.print(f"[red]Bad number in: {line}[/red]")
            return True

        self.render()
        return True

    def loop(self):
        self.render()
        while True:
            try:
                line = self.console.input("[bold cyan]bf93>[/bold cyan] ")
            except EOFError:
                break
            if not self.execute(line):
                break
