"""
Befunge93 Engine: IP state machine over Grid + Stack

Integrates:
  - Grid (grid.py)                  program space, self-modifiable
  - Stack (stack.py)                integer LIFO, underflow reads 0
  - InstructionPointer (ip.py)      position, direction, string mode
  - Instruction table (instructions.py)
  - I/O port (io_port.py)           supplied by the caller, never owned

Execution model, one step():
  1. Read the cell under the IP
  2. Decode it (string mode overrides everything except `"`)
  3. Run the handler: mutate Stack / Grid / IP direction, maybe do I/O
  4. Advance the IP one cell with wraparound (`#` has already moved it once)
  5. If the instruction was `@`, the engine is now terminated

run() is only a loop over step(), so a debugger single-stepping and a batch
run see identical semantics.

Step outcomes:
  CONTINUED           instruction done, more to run
  TERMINATED          `@` executed on this step
  FAULTED             a fault halted the engine (see engine.fault); the
                      faulting instruction had no effect and the IP did
                      not move
  ALREADY_TERMINATED  nothing done, load() again to restart

Run outcomes:
  TERMINATED, FAULTED, LIMIT_REACHED, CANCELLED, BREAKPOINT
"""

import logging
import random
import threading
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Set, Tuple

from . import instructions as ins
from .arith import BINARY_OPS, logical_not
from .config import DivisionPolicy, EngineConfig, InputPolicy
from .grid import Grid
from .io_port import BufferedPort, IOPort
from .ip import DIRECTIONS, Direction, InstructionPointer
from .stack import Stack

log = logging.getLogger(__name__)


class StepOutcome(Enum):
    CONTINUED = 'CONTINUED'
    TERMINATED = 'TERMINATED'
    FAULTED = 'FAULTED'
    ALREADY_TERMINATED = 'ALREADY_TERMINATED'


class RunOutcome(Enum):
    TERMINATED = 'TERMINATED'
    FAULTED = 'FAULTED'
    LIMIT_REACHED = 'LIMIT_REACHED'
    CANCELLED = 'CANCELLED'
    BREAKPOINT = 'BREAKPOINT'


class FaultKind(Enum):
    DIVISION_BY_ZERO = 'DIVISION_BY_ZERO'
    END_OF_INPUT = 'END_OF_INPUT'


@dataclass(frozen=True)
class RunResult:
    outcome: RunOutcome
    steps: int
    fault: Optional[FaultKind] = None


@dataclass(frozen=True)
class Snapshot:
    """Read-only view of the engine for front ends."""
    grid: Tuple[str, ...]
    stack: Tuple[int, ...]
    x: int
    y: int
    direction: Direction
    string_mode: bool
    terminated: bool
    fault: Optional[FaultKind]
    steps: int
    last_output: str
    recovered: Dict[FaultKind, int] = field(default_factory=dict)

    @property
    def position(self) -> Tuple[int, int]:
        return self.x, self.y

    @property
    def current(self) -> str:
        """Character under the IP."""
        return self.grid[self.y][self.x]


class Engine:
    """Befunge93 interpreter.

    Usage:
        port = BufferedPort()
        engine = Engine(port)
        engine.load('21+.@')
        result = engine.run(step_limit=1000)
        port.output   # b"3 "
    """

    def __init__(self, port: Optional[IOPort] = None,
                 config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.port = port if port is not None else BufferedPort()

        self.grid = Grid(self.config.width, self.config.height)
        self.stack = Stack()
        self.ip = InstructionPointer()
        self.rng = random.Random(self.config.seed)

        self.terminated = False
        self.fault: Optional[FaultKind] = None
        self.steps = 0
        self.last_output = ''
        self.source: Optional[str] = None
        # Faults absorbed under the ZERO policies
        self.recovered: Counter = Counter()

        self._step_output = []
        self._breakpoints: Set[Tuple[int, int]] = set()
        self._trace = False
        self._trace_output = []

        self._dispatch = self._build_dispatch()

    # ══════════════════════════════════════════════
    # Loading
    # ══════════════════════════════════════════════

    def load(self, text: str):
        """Put `text` on the grid and reset to the start state.

        Raises LoadError (and keeps the previous program and state) when
        the text is unusable.
        """
        grid = Grid(self.config.width, self.config.height)
        cols, rows = grid.load(text)

        self.grid = grid
        self.source = text
        self.stack.clear()
        self.ip.reset()
        self.terminated = False
        self.fault = None
        self.steps = 0
        self.last_output = ''
        self.recovered.clear()
        self._trace_output.clear()
        log.info("Loaded program: %d columns x %d rows", cols, rows)

    # ══════════════════════════════════════════════
    # Execution
    # ══════════════════════════════════════════════

    def step(self) -> StepOutcome:
        """Execute the instruction under the IP and advance."""
        if self.terminated:
            return StepOutcome.ALREADY_TERMINATED

        code = self.grid.get_code(self.ip.x, self.ip.y)
        mnem = ins.decode(code, self.ip.string_mode)
        self._step_output = []

        if self._trace:
            self._record_trace(code, mnem)

        try:
            self._dispatch[mnem](code)
        except _Fault as e:
            self.fault = e.kind
            self.terminated = True
            self.last_output = ''
            log.warning("Fault %s at (%d,%d) after %d steps",
                        e.kind.value, self.ip.x, self.ip.y, self.steps)
            return StepOutcome.FAULTED

        self.steps += 1
        self.last_output = ''.join(self._step_output)
        self.ip.move(self.grid.width, self.grid.height)

        if self.terminated:
            log.debug("Program ended after %d steps", self.steps)
            return StepOutcome.TERMINATED
        return StepOutcome.CONTINUED

    def run(self, step_limit: Optional[int] = None,
            cancel: Optional[threading.Event] = None) -> RunResult:
        """Step until the program ends, faults, or the caller stops it.

        Args:
            step_limit: Maximum steps for this call (default: config.max_steps,
                        None there means unbounded)
            cancel:     Event checked between steps; set it to stop the run

        Returns:
            RunResult with the reason execution stopped and the steps taken
        """
        if step_limit is None:
            step_limit = self.config.max_steps

        if self.terminated:
            outcome = RunOutcome.FAULTED if self.fault else RunOutcome.TERMINATED
            return RunResult(outcome, 0, self.fault)

        taken = 0
        while True:
            if taken and self.ip.position in self._breakpoints:
                return RunResult(RunOutcome.BREAKPOINT, taken)
            if step_limit is not None and taken >= step_limit:
                log.info("Step limit %d reached", step_limit)
                return RunResult(RunOutcome.LIMIT_REACHED, taken)
            if cancel is not None and cancel.is_set():
                log.info("Run cancelled after %d steps", taken)
                return RunResult(RunOutcome.CANCELLED, taken)

            outcome = self.step()
            if outcome is StepOutcome.FAULTED:
                return RunResult(RunOutcome.FAULTED, taken, self.fault)
            taken += 1
            if outcome is StepOutcome.TERMINATED:
                return RunResult(RunOutcome.TERMINATED, taken)

    def inspect(self) -> Snapshot:
        return Snapshot(
            grid=tuple(self.grid.rows()),
            stack=self.stack.snapshot(),
            x=self.ip.x,
            y=self.ip.y,
            direction=self.ip.direction,
            string_mode=self.ip.string_mode,
            terminated=self.terminated,
            fault=self.fault,
            steps=self.steps,
            last_output=self.last_output,
            recovered=dict(self.recovered),
        )

    # ══════════════════════════════════════════════
    # Output helpers (record per-step output)
    # ══════════════════════════════════════════════

    def _write_text(self, text: str):
        self.port.write_text(text)
        self._step_output.append(text)

    def _write_char(self, code: int):
        self.port.write_char(code)
        self._step_output.append(chr(code & 0xFF))

    # ══════════════════════════════════════════════
    # Instruction handlers
    # ══════════════════════════════════════════════
    # Handler signature: handler(code) where code is the cell just read.
    # A handler that faults must raise before touching any state.

    def _build_dispatch(self) -> dict:
        return {
            ins.PUSH_DIGIT:  self._op_digit,
            ins.ADD:         self._op_binary,
            ins.SUB:         self._op_binary,
            ins.MUL:         self._op_binary,
            ins.DIV:         self._op_divide,
            ins.MOD:         self._op_divide,
            ins.GT:          self._op_binary,
            ins.NOT:         self._op_not,
            ins.RIGHT:       self._op_right,
            ins.LEFT:        self._op_left,
            ins.UP:          self._op_up,
            ins.DOWN:        self._op_down,
            ins.RANDOM:      self._op_random,
            ins.HIF:         self._op_hif,
            ins.VIF:         self._op_vif,
            ins.STRING:      self._op_string,
            ins.STRING_PUSH: self._op_string_push,
            ins.DUP:         self._op_dup,
            ins.SWAP:        self._op_swap,
            ins.POP:         self._op_pop,
            ins.OUT_INT:     self._op_out_int,
            ins.OUT_CHAR:    self._op_out_char,
            ins.BRIDGE:      self._op_bridge,
            ins.GET:         self._op_get,
            ins.PUT:         self._op_put,
            ins.IN_INT:      self._op_in_int,
            ins.IN_CHAR:     self._op_in_char,
            ins.END:         self._op_end,
            ins.NOP:         self._op_nop,
        }

    # ── Stack / arithmetic ──

    def _op_digit(self, code):
        self.stack.push(code - 0x30)

    def _op_binary(self, code):
        b = self.stack.pop()
        a = self.stack.pop()
        self.stack.push(BINARY_OPS[chr(code)](a, b))

    def _op_divide(self, code):
        if self.stack.peek() == 0:
            if self.config.division is DivisionPolicy.FAULT:
                raise _Fault(FaultKind.DIVISION_BY_ZERO)
            self.stack.pop()
            self.stack.pop()
            self.stack.push(0)
            self._recover(FaultKind.DIVISION_BY_ZERO)
            return
        self._op_binary(code)

    def _op_not(self, code):
        self.stack.push(logical_not(self.stack.pop()))

    def _op_dup(self, code):
        if not self.stack:
            self.stack.push(0)
            return
        self.stack.push(self.stack.peek())

    def _op_swap(self, code):
        b = self.stack.pop()
        a = self.stack.pop()
        self.stack.push(b)
        self.stack.push(a)

    def _op_pop(self, code):
        self.stack.pop()

    # ── Direction ──

    def _op_right(self, code):
        self.ip.direction = Direction.RIGHT

    def _op_left(self, code):
        self.ip.direction = Direction.LEFT

    def _op_up(self, code):
        self.ip.direction = Direction.UP

    def _op_down(self, code):
        self.ip.direction = Direction.DOWN

    def _op_random(self, code):
        self.ip.direction = self.rng.choice(DIRECTIONS)

    def _op_hif(self, code):
        self.ip.direction = Direction.LEFT if self.stack.pop() else Direction.RIGHT

    def _op_vif(self, code):
        self.ip.direction = Direction.UP if self.stack.pop() else Direction.DOWN

    def _op_bridge(self, code):
        self.ip.move(self.grid.width, self.grid.height)

    # ── String mode ──

    def _op_string(self, code):
        self.ip.toggle_string_mode()

    def _op_string_push(self, code):
        self.stack.push(code)

    # ── Grid access (self-modification) ──

    def _op_get(self, code):
        y = self.stack.pop()
        x = self.stack.pop()
        self.stack.push(self.grid.get_code(x, y))

    def _op_put(self, code):
        y = self.stack.pop()
        x = self.stack.pop()
        v = self.stack.pop()
        self.grid.set(x, y, v & 0xFF)

    # ── I/O ──

    def _op_out_int(self, code):
        self._write_text(f"{self.stack.pop()} ")

    def _op_out_char(self, code):
        self._write_char(self.stack.pop())

    def _op_in_int(self, code):
        self._push_input(self.port.read_integer())

    def _op_in_char(self, code):
        self._push_input(self.port.read_char())

    def _push_input(self, value: Optional[int]):
        if value is None:
            if self.config.end_of_input is InputPolicy.FAULT:
                raise _Fault(FaultKind.END_OF_INPUT)
            self._recover(FaultKind.END_OF_INPUT)
            value = 0
        self.stack.push(value)

    # ── Control ──

    def _op_end(self, code):
        self.terminated = True

    def _op_nop(self, code):
        pass

    def _recover(self, kind: FaultKind):
        self.recovered[kind] += 1
        log.debug("%s at (%d,%d): pushed 0 and continued",
                  kind.value, self.ip.x, self.ip.y)

    # ══════════════════════════════════════════════
    # Breakpoint API
    # ══════════════════════════════════════════════

    def add_breakpoint(self, x: int, y: int):
        """run() stops when the IP arrives on this cell."""
        self._breakpoints.add(self.grid.wrap(x, y))

    def remove_breakpoint(self, x: int, y: int):
        self._breakpoints.discard(self.grid.wrap(x, y))

    def clear_breakpoints(self):
        self._breakpoints.clear()

    @property
    def breakpoints(self) -> Set[Tuple[int, int]]:
        return set(self._breakpoints)

    # ══════════════════════════════════════════════
    # Trace / Debug
    # ══════════════════════════════════════════════

    def enable_trace(self, enable: bool = True):
        """Record every executed step (also logged at DEBUG)."""
        self._trace = enable

    def _record_trace(self, code: int, mnem: str):
        top = self.stack.snapshot()[-8:]
        line = f"({self.ip.x:2d},{self.ip.y:2d}) {chr(code)!r:5s} {mnem:11s} stack={list(top)}"
        self._trace_output.append(line)
        log.debug(line)

    def get_trace(self) -> str:
        return '\n'.join(self._trace_output)

    def clear_trace(self):
        self._trace_output.clear()


# Internal exception for fault flow control
class _Fault(Exception):
    def __init__(self, kind: FaultKind):
        super().__init__(kind.value)
        self.kind = kind
