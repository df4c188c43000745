"""
befunge93: Befunge93 interpreter
================================
Executes programs for the classic 80x25 Befunge93 torus: one instruction
pointer, one integer stack, self-modifying grid.

Architecture:
    ┌──────────┐    ┌──────────┐    ┌────────────────┐    ┌──────────┐
    │ Program  │───>│   Grid   │<──>│     Engine     │<──>│ I/O Port │
    │ (text)   │    │ (80x25)  │    │ IP + Stack +   │    │ (caller) │
    └──────────┘    └──────────┘    │ opcode table   │    └──────────┘
                                    └────────────────┘
    - grid.py:          playfield, wraparound addressing, LoadError
    - stack.py:         integer LIFO, empty pops read 0
    - ip.py:            position, direction, string mode
    - instructions.py:  character -> mnemonic table
    - arith.py:         C-style / and %
    - engine.py:        load / step / run / inspect
    - io_port.py:       BufferedPort (memory), StreamPort (byte streams)
    - viewer.py, debugger.py: rich front end for stepping
"""

__version__ = "0.4.0"

from typing import Optional, Union

from .config import (
    WIDTH, HEIGHT, DEFAULT_MAX_STEPS, DivisionPolicy, InputPolicy,
    EngineConfig, PROFILES, get_profile,
)
from .grid import Grid, LoadError
from .stack import Stack
from .ip import Direction, InstructionPointer
from .io_port import IOPort, BufferedPort, StreamPort
from .engine import (
    Engine, StepOutcome, RunOutcome, FaultKind, RunResult, Snapshot,
)


def run_source(source: str, input_data: Union[bytes, str] = b'', *,
               step_limit: Optional[int] = DEFAULT_MAX_STEPS,
               config: Optional[EngineConfig] = None):
    """Run a program to completion against in-memory I/O.

    Returns:
        (output bytes, RunResult)
    """
    port = BufferedPort(input_data)
    engine = Engine(port, config)
    engine.load(source)
    result = engine.run(step_limit=step_limit)
    return port.output, result
