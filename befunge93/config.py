"""
Befunge93 Engine Configuration

Grid geometry, fault policies and named profiles.

Befunge93 sources disagree on what `/` and `%` do with a zero divisor and
what `&` / `~` do once input runs dry. Both are policy choices here:

  ZERO   push 0 and keep running (reference interpreter behaviour)
  FAULT  halt the engine and report the fault kind in the step outcome

Profiles bundle those choices the same way compiler targets bundle an
origin and stack address. The CLI selects one with --profile and can
override individual fields.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional


# Canonical Befunge93 playfield
WIDTH = 80
HEIGHT = 25

# Batch runs stop here unless the caller asks for something else
DEFAULT_MAX_STEPS = 10_000_000


class DivisionPolicy(Enum):
    ZERO = 'zero'
    FAULT = 'fault'


class InputPolicy(Enum):
    ZERO = 'zero'
    FAULT = 'fault'


@dataclass(frozen=True)
class EngineConfig:
    """Tunables for one Engine instance."""
    width: int = WIDTH
    height: int = HEIGHT
    division: DivisionPolicy = DivisionPolicy.ZERO
    end_of_input: InputPolicy = InputPolicy.ZERO
    max_steps: Optional[int] = None
    seed: Optional[int] = None
    description: str = ''

    def __post_init__(self):
        if self.width < 1 or self.height < 1:
            raise ValueError(f"Grid must be at least 1x1, got {self.width}x{self.height}")
        if self.max_steps is not None and self.max_steps < 0:
            raise ValueError(f"max_steps must be >= 0, got {self.max_steps}")

    def with_overrides(self, **changes) -> 'EngineConfig':
        """Copy with the non-None keyword arguments applied."""
        changes = {k: v for k, v in changes.items() if v is not None}
        return replace(self, **changes)


PROFILES = {
    'reference': EngineConfig(
        description='Push 0 on division by zero and on end of input',
    ),
    'strict': EngineConfig(
        division=DivisionPolicy.FAULT,
        end_of_input=InputPolicy.FAULT,
        description='Halt with a fault on division by zero or end of input',
    ),
}

DEFAULT_PROFILE = 'reference'


def get_profile(name: str) -> EngineConfig:
    try:
        return PROFILES[name]
    except KeyError:
        raise ValueError(
            f"Unknown profile '{name}' (choices: {', '.join(PROFILES)})"
        ) from None
