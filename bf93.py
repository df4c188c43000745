#!/usr/bin/env python3
"""
bf93 - Befunge93 interpreter CLI

Usage:
    python bf93.py run <program.bf|-> [-i TEXT] [--profile reference|strict]
                       [--max-steps N] [--seed N] [--trace] [-v] [--log-file F]
    python bf93.py debug <program.bf> [-i TEXT] [--profile ...] [--seed N]

`run` executes the program with stdin/stdout as its I/O port (or the
-i text as input). A program of `-` is read from stdin, in which case
program input comes only from -i.

`debug` opens the interactive stepper (step / run / breakpoints).

Exit status:
    0    program reached `@`
    1    file or load error
    3    program faulted (strict profile)
    4    step limit reached
    130  interrupted

Examples:
    python bf93.py run programs/hello_world.bf
    python bf93.py run programs/factorial.bf --max-steps 1000
    echo 65 | python bf93.py run echo.bf --profile strict
    python bf93.py debug programs/quine.bf
"""

import argparse
import io
import logging
import os
import sys

# Allow running from project root without installing
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from rich.console import Console

from befunge93 import __version__
from befunge93.config import DEFAULT_MAX_STEPS, DEFAULT_PROFILE, PROFILES, get_profile
from befunge93.debugger import Debugger
from befunge93.engine import Engine, RunOutcome
from befunge93.grid import LoadError
from befunge93.io_port import StreamPort
from befunge93.logsetup import setup_logging, verbosity_to_level

log = logging.getLogger("befunge93.cli")

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_FAULTED = 3
EXIT_LIMIT = 4
EXIT_INTERRUPTED = 130

_EXIT_CODES = {
    RunOutcome.TERMINATED: EXIT_OK,
    RunOutcome.FAULTED: EXIT_FAULTED,
    RunOutcome.LIMIT_REACHED: EXIT_LIMIT,
    RunOutcome.CANCELLED: EXIT_INTERRUPTED,
    RunOutcome.BREAKPOINT: EXIT_OK,
}


def _read_program(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        return f.read()


def _build_config(args):
    config = get_profile(args.profile)
    return config.with_overrides(seed=args.seed)


def _add_common(p):
    p.add_argument("program", help="Program file (use - for stdin with 'run')")
    p.add_argument("-i", "--input", default=None,
                   help="Program input text (default: stdin for 'run')")
    p.add_argument("--profile", default=DEFAULT_PROFILE, choices=list(PROFILES.keys()),
                   help=f"Fault policy profile (default: {DEFAULT_PROFILE})")
    p.add_argument("--seed", type=int, default=None,
                   help="Seed for the `?` instruction")
    p.add_argument("-v", "--verbose", action="count", default=0,
                   help="Increase log verbosity (-v, -vv)")
    p.add_argument("--log-file", default=None,
                   help="Write a DEBUG log to this file")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bf93",
        description="Befunge93 interpreter",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Profiles: " + ", ".join(
            f"{name} ({cfg.description})" for name, cfg in PROFILES.items()),
    )
    parser.add_argument("--version", action="version", version=f"bf93 {__version__}")
    sub = parser.add_subparsers(dest="command", metavar="command")

    # ── run ──────────────────────────────────────────────────────────────
    p_run = sub.add_parser("run", help="Run a program to completion")
    _add_common(p_run)
    p_run.add_argument("--max-steps", type=int, default=DEFAULT_MAX_STEPS,
                       help=f"Stop after N steps, 0 for no limit (default: {DEFAULT_MAX_STEPS})")
    p_run.add_argument("--trace", action="store_true",
                       help="Print an instruction trace to stderr after the run")

    # ── debug ────────────────────────────────────────────────────────────
    p_dbg = sub.add_parser("debug", help="Step through a program interactively")
    _add_common(p_dbg)

    return parser


def cmd_run(args) -> int:
    try:
        source = _read_program(args.program)
    except OSError as e:
        print(f"Error reading {args.program}: {e}", file=sys.stderr)
        return EXIT_ERROR

    stdout = sys.stdout.buffer
    if args.input is not None:
        stdin = io.BytesIO(args.input.encode("latin-1", errors="replace"))
    elif args.program == "-":
        stdin = None
    else:
        stdin = getattr(sys.stdin, "buffer", None)

    engine = Engine(StreamPort(stdin, stdout), _build_config(args))
    try:
        engine.load(source)
    except LoadError as e:
        print(f"Load error: {e}", file=sys.stderr)
        return EXIT_ERROR

    if args.trace:
        engine.enable_trace()

    limit = args.max_steps if args.max_steps > 0 else None
    try:
        result = engine.run(step_limit=limit)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return EXIT_INTERRUPTED
    finally:
        if args.trace:
            print(engine.get_trace(), file=sys.stderr)

    log.info("%s after %d steps", result.outcome.value, result.steps)
    if result.outcome is RunOutcome.FAULTED:
        print(f"Fault: {result.fault.value} at ({engine.ip.x},{engine.ip.y})",
              file=sys.stderr)
    elif result.outcome is RunOutcome.LIMIT_REACHED:
        print(f"Step limit reached ({result.steps} steps)", file=sys.stderr)
    return _EXIT_CODES[result.outcome]


def cmd_debug(args) -> int:
    try:
        source = _read_program(args.program)
    except OSError as e:
        print(f"Error reading {args.program}: {e}", file=sys.stderr)
        return EXIT_ERROR

    engine = Engine(config=_build_config(args))
    try:
        debugger = Debugger(source, engine=engine, console=Console(),
                            input_data=args.input or "")
    except LoadError as e:
        print(f"Load error: {e}", file=sys.stderr)
        return EXIT_ERROR
    try:
        debugger.loop()
    except KeyboardInterrupt:
        return EXIT_INTERRUPTED
    return EXIT_OK


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return EXIT_ERROR

    setup_logging(console_level=verbosity_to_level(args.verbose),
                  log_file=args.log_file)

    try:
        if args.command == "run":
            return cmd_run(args)
        return cmd_debug(args)
    except Exception as e:
        print(f"Internal error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 2


if __name__ == "__main__":
    sys.exit(main())
