"""
Befunge93 Engine Tests

Each test loads a small program into a fresh engine with an in-memory
port and checks output bytes, stack contents and IP state.
"""

import sys
import os
import random
import threading
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from befunge93 import (
    Engine, BufferedPort, EngineConfig, LoadError, StepOutcome, RunOutcome,
    FaultKind, Direction, WIDTH, HEIGHT, get_profile,
)


def _engine(source, input_data=b'', config=None):
    port = BufferedPort(input_data)
    engine = Engine(port, config)
    engine.load(source)
    return engine, port


def _run(source, input_data=b'', config=None, limit=10_000):
    engine, port = _engine(source, input_data, config)
    result = engine.run(step_limit=limit)
    return engine, port, result


STRICT = get_profile('strict')


# ═══════════════════════════════════════════════
# Lifecycle
# ═══════════════════════════════════════════════

class TestLifecycle:
    def test_load_then_inspect_is_start_state(self):
        engine, _ = _engine("v\n>@")
        snap = engine.inspect()
        assert snap.position == (0, 0)
        assert snap.direction is Direction.RIGHT
        assert snap.stack == ()
        assert snap.terminated is False
        assert snap.string_mode is False
        assert snap.fault is None
        assert snap.steps == 0

    def test_add_and_print(self):
        """21+.@ prints "3 " and halts."""
        engine, port, result = _run("21+.@")
        assert port.output == b"3 "
        assert result.outcome is RunOutcome.TERMINATED
        assert result.steps == 5
        assert engine.terminated
        assert engine.stack.snapshot() == ()

    def test_single_end_instruction(self):
        engine, port = _engine("@")
        assert engine.step() is StepOutcome.TERMINATED
        assert engine.steps == 1
        assert port.output == b""
        assert engine.stack.snapshot() == ()
        assert engine.step() is StepOutcome.ALREADY_TERMINATED
        assert engine.steps == 1

    def test_run_after_termination_does_nothing(self):
        engine, _, _ = _run("@")
        result = engine.run()
        assert result.outcome is RunOutcome.TERMINATED
        assert result.steps == 0

    def test_load_resets_everything(self):
        engine, port, _ = _run("\"ab\"@")
        engine.load("21+.@")
        snap = engine.inspect()
        assert snap.position == (0, 0)
        assert snap.stack == ()
        assert not snap.terminated
        assert snap.steps == 0
        assert engine.run().outcome is RunOutcome.TERMINATED

    def test_failed_load_keeps_previous_state(self):
        engine, _ = _engine("21+.@")
        engine.step()
        with pytest.raises(LoadError):
            engine.load("")
        assert engine.grid.get(0, 0) == '2'
        assert engine.ip.position == (1, 0)
        assert engine.stack.snapshot() == (2,)
        assert engine.steps == 1

    def test_inspect_does_not_mutate(self):
        engine, _ = _engine("12+@")
        engine.step()
        assert engine.inspect() == engine.inspect()
        assert engine.ip.position == (1, 0)

    def test_unloaded_engine_is_blank(self):
        engine = Engine()
        assert engine.grid.rows()[0] == " " * WIDTH
        result = engine.run(step_limit=10)
        assert result.outcome is RunOutcome.LIMIT_REACHED


# ═══════════════════════════════════════════════
# Stack underflow
# ═══════════════════════════════════════════════

class TestUnderflow:
    EXPECTED = {
        '+': (0,), '-': (0,), '*': (0,), '/': (0,), '%': (0,),
        '!': (1,), '`': (0,), ':': (0,), '\\': (0, 0), '$': (),
        '.': (), ',': (), '_': (), '|': (), 'g': (ord('g'),), 'p': (),
    }

    def test_every_operator_on_empty_stack(self):
        for op, stack in self.EXPECTED.items():
            engine, _ = _engine(op + "@")
            assert engine.step() is StepOutcome.CONTINUED, op
            assert engine.stack.snapshot() == stack, op

    def test_print_on_empty_stack(self):
        _, port, _ = _run(".@")
        assert port.output == b"0 "

    def test_put_on_empty_stack_writes_zero_at_origin(self):
        engine, _ = _engine("p@")
        engine.step()
        assert engine.grid.get_code(0, 0) == 0


# ═══════════════════════════════════════════════
# Arithmetic and logic
# ═══════════════════════════════════════════════

class TestArithmetic:
    @pytest.mark.parametrize("source,expected", [
        ("73-.@", b"4 "),
        ("73*.@", b"21 "),
        ("73/.@", b"2 "),
        ("73%.@", b"1 "),
        ("07-3/.@", b"-2 "),
        ("07-3%.@", b"-1 "),
        ("37`.@", b"0 "),
        ("73`.@", b"1 "),
        ("33`.@", b"0 "),
        ("0!.@", b"1 "),
        ("5!.@", b"0 "),
        ("99*9*9*.@", b"6561 "),
    ])
    def test_binary_and_unary(self, source, expected):
        _, port, result = _run(source)
        assert port.output == expected
        assert result.outcome is RunOutcome.TERMINATED


class TestDivisionByZero:
    def test_reference_pushes_zero(self):
        engine, port, result = _run("50/.@")
        assert port.output == b"0 "
        assert result.outcome is RunOutcome.TERMINATED
        assert engine.recovered[FaultKind.DIVISION_BY_ZERO] == 1

    def test_reference_modulo_pushes_zero(self):
        _, port, _ = _run("50%.@")
        assert port.output == b"0 "

    def test_strict_faults_without_side_effects(self):
        engine, port = _engine("50/.@", config=STRICT)
        assert engine.step() is StepOutcome.CONTINUED
        assert engine.step() is StepOutcome.CONTINUED
        assert engine.step() is StepOutcome.FAULTED
        assert engine.fault is FaultKind.DIVISION_BY_ZERO
        assert engine.stack.snapshot() == (5, 0)
        assert engine.ip.position == (2, 0)
        assert engine.terminated
        assert engine.step() is StepOutcome.ALREADY_TERMINATED

    def test_strict_run_reports_fault(self):
        engine, port, result = _run("50%.@", config=STRICT)
        assert result.outcome is RunOutcome.FAULTED
        assert result.fault is FaultKind.DIVISION_BY_ZERO
        assert result.steps == 2
        assert port.output == b""
        assert engine.inspect().fault is FaultKind.DIVISION_BY_ZERO


# ═══════════════════════════════════════════════
# Stack manipulation
# ═══════════════════════════════════════════════

class TestStackOps:
    def test_dup(self):
        engine, _, _ = _run("5:@")
        assert engine.stack.snapshot() == (5, 5)

    def test_dup_empty_pushes_single_zero(self):
        engine, _, _ = _run(":@")
        assert engine.stack.snapshot() == (0,)

    def test_swap(self):
        engine, _, _ = _run("12\\@")
        assert engine.stack.snapshot() == (2, 1)

    def test_swap_with_one_value(self):
        engine, _, _ = _run("1\\@")
        assert engine.stack.snapshot() == (1, 0)

    def test_discard(self):
        engine, _, _ = _run("12$@")
        assert engine.stack.snapshot() == (1,)


# ═══════════════════════════════════════════════
# Control flow
# ═══════════════════════════════════════════════

class TestDirections:
    def test_down_then_right(self):
        _, port, _ = _run("v\n>2.@")
        assert port.output == b"2 "

    def test_left_wraps_to_last_column(self):
        engine, _ = _engine("<")
        engine.step()
        assert engine.ip.position == (WIDTH - 1, 0)
        assert engine.ip.direction is Direction.LEFT

    def test_up_wraps_to_last_row(self):
        engine, _ = _engine("^")
        engine.step()
        assert engine.ip.position == (0, HEIGHT - 1)

    def test_right_wraps_to_first_column(self):
        engine, _ = _engine("@")
        engine.ip.x = WIDTH - 1
        assert engine.step() is StepOutcome.CONTINUED
        assert engine.ip.position == (0, 0)
        assert engine.step() is StepOutcome.TERMINATED

    def test_left_wrap_reaches_program_end(self):
        """`<` at column 0 wraps around and runs the row backwards."""
        _, port, result = _run("<@.3")
        assert port.output == b"3 "
        assert result.outcome is RunOutcome.TERMINATED

    def test_bridge_skips_next_cell(self):
        _, port, _ = _run("#.1.@")
        assert port.output == b"1 "

    def test_horizontal_if_zero_goes_right(self):
        _, port, _ = _run("0_1.@")
        assert port.output == b"1 "

    def test_horizontal_if_nonzero_goes_left(self):
        engine, _, result = _run("1v\n@_")
        assert result.outcome is RunOutcome.TERMINATED
        assert engine.ip.direction is Direction.LEFT

    def test_vertical_if_zero_goes_down(self):
        _, _, result = _run("0|\n @", limit=10)
        assert result.outcome is RunOutcome.TERMINATED

    def test_vertical_if_nonzero_goes_up(self):
        lines = [""] * HEIGHT
        lines[0] = "1|"
        lines[HEIGHT - 1] = " @"
        engine, _, result = _run("\n".join(lines), limit=10)
        assert result.outcome is RunOutcome.TERMINATED
        assert engine.ip.direction is Direction.UP

    def test_random_direction_is_seedable(self):
        config = EngineConfig(seed=1234)
        picks = []
        for _ in range(2):
            engine, _ = _engine("?", config=config)
            seq = []
            for _ in range(5):
                engine.ip.x, engine.ip.y = 0, 0
                engine.step()
                seq.append(engine.ip.direction)
            picks.append(seq)
        assert picks[0] == picks[1]
        assert all(d in Direction for d in picks[0])

    def test_random_covers_all_directions(self):
        engine, _ = _engine("?")
        engine.rng = random.Random(0)
        seen = set()
        for _ in range(200):
            engine.ip.x, engine.ip.y = 0, 0
            engine.step()
            seen.add(engine.ip.direction)
        assert seen == set(Direction)


# ═══════════════════════════════════════════════
# String mode
# ═══════════════════════════════════════════════

class TestStringMode:
    def test_pushes_codes_in_order(self):
        engine, _, _ = _run('"ab"@')
        assert engine.stack.snapshot() == (97, 98)
        assert engine.ip.string_mode is False

    def test_instructions_are_not_executed(self):
        engine, port, _ = _run('"1+.@"@')
        assert engine.stack.snapshot() == (ord('1'), ord('+'), ord('.'), ord('@'))
        assert port.output == b""

    def test_spaces_are_pushed(self):
        engine, _, _ = _run('" "@')
        assert engine.stack.snapshot() == (32,)

    def test_mode_is_visible_mid_string(self):
        engine, _ = _engine('"a"@')
        engine.step()
        assert engine.inspect().string_mode is True


# ═══════════════════════════════════════════════
# Grid access
# ═══════════════════════════════════════════════

class TestGetPut:
    def test_put_then_get(self):
        engine, _, _ = _run('"X"00p00g@')
        assert engine.grid.get(0, 0) == 'X'
        assert engine.stack.snapshot() == (ord('X'),)

    def test_get_reads_program_text(self):
        engine, _, _ = _run("10g@")
        assert engine.stack.snapshot() == (ord('0'),)

    def test_self_modification_changes_execution(self):
        """p writes '@' into the cell the IP is about to reach."""
        _, port, result = _run('"@"60p 5.@')
        assert result.outcome is RunOutcome.TERMINATED
        assert result.steps == 7
        assert port.output == b""

    def test_put_wraps_coordinates(self):
        engine, _, _ = _run('"Z"01-01-p@')
        assert engine.grid.get(WIDTH - 1, HEIGHT - 1) == 'Z'

    def test_put_stores_a_byte(self):
        engine, _, _ = _run("01-00p@")
        assert engine.grid.get_code(0, 0) == 255


# ═══════════════════════════════════════════════
# I/O
# ═══════════════════════════════════════════════

class TestIO:
    def test_read_integer_and_echo_char(self):
        _, port, result = _run("&,@", input_data=b"65")
        assert port.output == b"A"
        assert result.outcome is RunOutcome.TERMINATED

    def test_read_two_integers(self):
        _, port, _ = _run("&&+.@", input_data="3 4\n")
        assert port.output == b"7 "

    def test_read_negative_integer(self):
        _, port, _ = _run("&.@", input_data="-12")
        assert port.output == b"-12 "

    def test_read_chars(self):
        _, port, _ = _run("~~..@", input_data="Hi")
        assert port.output == b"105 72 "

    def test_print_char(self):
        _, port, _ = _run('"A",@')
        assert port.output == b"A"

    def test_last_output_tracks_latest_step(self):
        engine, _ = _engine("21+.@")
        for _ in range(4):
            engine.step()
        assert engine.last_output == "3 "
        engine.step()
        assert engine.last_output == ""

    def test_end_of_input_reference_pushes_zero(self):
        engine, port, result = _run("&~..@")
        assert port.output == b"0 0 "
        assert result.outcome is RunOutcome.TERMINATED
        assert engine.recovered[FaultKind.END_OF_INPUT] == 2

    def test_end_of_input_strict_faults(self):
        engine, port, result = _run("&.@", config=STRICT)
        assert result.outcome is RunOutcome.FAULTED
        assert result.fault is FaultKind.END_OF_INPUT
        assert engine.stack.snapshot() == ()
        assert engine.ip.position == (0, 0)

    def test_strict_with_input_runs_normally(self):
        _, port, result = _run("~,@", input_data="z", config=STRICT)
        assert port.output == b"z"
        assert result.outcome is RunOutcome.TERMINATED


# ═══════════════════════════════════════════════
# run() controls
# ═══════════════════════════════════════════════

class TestRunControl:
    def test_step_limit(self):
        engine, _, result = _run(">", limit=100)
        assert result.outcome is RunOutcome.LIMIT_REACHED
        assert result.steps == 100
        assert engine.steps == 100
        assert not engine.terminated

    def test_limit_from_config(self):
        engine, _ = _engine(">", config=EngineConfig(max_steps=7))
        result = engine.run()
        assert result.outcome is RunOutcome.LIMIT_REACHED
        assert result.steps == 7

    def test_run_can_resume_after_limit(self):
        engine, port = _engine("21+.@")
        assert engine.run(step_limit=2).outcome is RunOutcome.LIMIT_REACHED
        result = engine.run()
        assert result.outcome is RunOutcome.TERMINATED
        assert result.steps == 3
        assert port.output == b"3 "

    def test_cancel_before_start(self):
        engine, _ = _engine(">")
        cancel = threading.Event()
        cancel.set()
        result = engine.run(cancel=cancel)
        assert result.outcome is RunOutcome.CANCELLED
        assert result.steps == 0

    def test_cancel_from_output(self):
        """A port that sets the event on output stops a non-halting program."""
        cancel = threading.Event()

        class CancellingPort(BufferedPort):
            def write_text(self, text):
                super().write_text(text)
                cancel.set()

        engine = Engine(CancellingPort())
        engine.load("1.")
        result = engine.run(cancel=cancel)
        assert result.outcome is RunOutcome.CANCELLED
        assert result.steps == 2

    def test_breakpoint(self):
        engine, port = _engine("5>:.1-:v\n ^     _@")
        engine.add_breakpoint(3, 0)
        result = engine.run()
        assert result.outcome is RunOutcome.BREAKPOINT
        assert result.steps == 3
        assert engine.ip.position == (3, 0)
        assert port.output == b""

        result = engine.run()
        assert result.outcome is RunOutcome.BREAKPOINT
        assert result.steps == 14
        assert port.output == b"5 "

        engine.clear_breakpoints()
        assert engine.run().outcome is RunOutcome.TERMINATED
        assert port.output == b"5 4 3 2 1 "

    def test_breakpoint_coordinates_wrap(self):
        engine, _ = _engine("@")
        engine.add_breakpoint(-1, -1)
        assert engine.breakpoints == {(WIDTH - 1, HEIGHT - 1)}
        engine.remove_breakpoint(WIDTH - 1, HEIGHT - 1)
        assert engine.breakpoints == set()

    def test_trace(self):
        engine, _ = _engine("21+.@")
        engine.enable_trace()
        engine.run()
        lines = engine.get_trace().splitlines()
        assert len(lines) == 5
        assert "PUSH_DIGIT" in lines[0]
        assert "ADD" in lines[2]
        assert "END" in lines[4]
        engine.clear_trace()
        assert engine.get_trace() == ""
