"""
Befunge93 Instruction Pointer

IP state:
  x, y         current cell, always in-bounds after move()
  direction    one of RIGHT, DOWN, LEFT, UP
  string_mode  toggled by `"`; while set, cells are pushed instead of run

Direction only changes through `> < ^ v`, `?`, `_` and `|`.
"""

from enum import Enum
from typing import Tuple


class Direction(Enum):
    RIGHT = (1, 0)
    DOWN = (0, 1)
    LEFT = (-1, 0)
    UP = (0, -1)

    @property
    def delta(self) -> Tuple[int, int]:
        return self.value

    @property
    def arrow(self) -> str:
        return _ARROWS[self]


_ARROWS = {
    Direction.RIGHT: '>',
    Direction.DOWN: 'v',
    Direction.LEFT: '<',
    Direction.UP: '^',
}

# Order `?` draws from
DIRECTIONS = (Direction.RIGHT, Direction.DOWN, Direction.LEFT, Direction.UP)


class InstructionPointer:

    __slots__ = ('x', 'y', 'direction', 'string_mode')

    def __init__(self):
        self.reset()

    def reset(self):
        """Back to the Befunge93 start state: top-left, heading right."""
        self.x: int = 0
        self.y: int = 0
        self.direction: Direction = Direction.RIGHT
        self.string_mode: bool = False

    @property
    def position(self) -> Tuple[int, int]:
        return self.x, self.y

    def move(self, width: int, height: int):
        """Advance one cell in the current direction, wrapping at the edges."""
        dx, dy = self.direction.delta
        self.x = (self.x + dx) % width
        self.y = (self.y + dy) % height

    def toggle_string_mode(self):
        self.string_mode = not self.string_mode

    def __repr__(self):
        return (f"InstructionPointer(x={self.x}, y={self.y}, "
                f"direction={self.direction.name}, string_mode={self.string_mode})")
