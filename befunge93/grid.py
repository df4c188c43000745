"""
Befunge93 Playfield: fixed-size character grid with torus addressing

Layout:
  (0, 0) is the top-left cell, x grows to the right, y grows downward.
  Cells are stored row-major in one flat list of integer character codes.

Addressing never fails: every coordinate, negative or past the edge, is
reduced modulo the grid size before the cell is touched. That is the only
addressing mode Befunge93 has, and it is what lets `p` and `g` aim anywhere.

Loading follows the language definition rather than the text:
  - rows are split on any line break
  - rows shorter than the grid are padded with spaces
  - anything past column `width` or row `height` is dropped silently
"""

from typing import List, Tuple, Union

from .config import WIDTH, HEIGHT

SPACE = ord(' ')


class LoadError(Exception):
    """Program text cannot be placed on the grid."""
    pass


def _split_rows(text: str) -> List[str]:
    """Rows break on \\n and \\r\\n only; other control characters are cells.

    A final line break does not start an extra row.
    """
    lines = text.split('\n')
    if lines[-1] == '':
        lines.pop()
    return [line[:-1] if line.endswith('\r') else line for line in lines]


class Grid:
    """Fixed `width` x `height` playfield of character codes.

    The dimensions are set once in the constructor. `load()` rewrites the
    contents; `set()` mutates one cell (self-modifying code via `p`).
    """

    __slots__ = ('width', 'height', '_cells')

    def __init__(self, width: int = WIDTH, height: int = HEIGHT):
        if width < 1 or height < 1:
            raise ValueError(f"Grid must be at least 1x1, got {width}x{height}")
        self.width = width
        self.height = height
        self._cells: List[int] = [SPACE] * (width * height)

    @classmethod
    def from_text(cls, text: str, width: int = WIDTH, height: int = HEIGHT) -> 'Grid':
        grid = cls(width, height)
        grid.load(text)
        return grid

    # --- Addressing ---

    def _index(self, x: int, y: int) -> int:
        return (y % self.height) * self.width + (x % self.width)

    def wrap(self, x: int, y: int) -> Tuple[int, int]:
        """Reduce any coordinate pair to the in-bounds cell it names."""
        return x % self.width, y % self.height

    # --- Cell access ---

    def get(self, x: int, y: int) -> str:
        """Character at (x, y), wrapped."""
        return chr(self._cells[self._index(x, y)])

    def get_code(self, x: int, y: int) -> int:
        return self._cells[self._index(x, y)]

    def set(self, x: int, y: int, ch: Union[str, int]):
        """Overwrite the cell at (x, y), wrapped.

        `ch` is either a one-character string or an integer code.
        """
        if isinstance(ch, str):
            if len(ch) != 1:
                raise ValueError(f"Cell value must be a single character, got {ch!r}")
            code = ord(ch)
        else:
            code = int(ch)
        self._cells[self._index(x, y)] = code

    # --- Bulk load ---

    def clear(self):
        self._cells = [SPACE] * (self.width * self.height)

    def load(self, text: str) -> Tuple[int, int]:
        """Replace the grid contents with `text`.

        Returns the (columns, rows) extent that actually landed on the
        grid. Raises LoadError when nothing executable would be loaded:
        empty text, or text whose in-bounds part is all whitespace.
        """
        if not text:
            raise LoadError("Program text is empty")

        lines = _split_rows(text)[:self.height]
        cells = [SPACE] * (self.width * self.height)
        used_cols = 0
        visible = False
        for y, line in enumerate(lines):
            row = line[:self.width]
            base = y * self.width
            for x, ch in enumerate(row):
                cells[base + x] = ord(ch)
                if not ch.isspace():
                    visible = True
            used_cols = max(used_cols, len(row))

        if not visible:
            raise LoadError("Program text has no instructions inside the "
                            f"{self.width}x{self.height} grid")

        self._cells = cells
        return used_cols, len(lines)

    # --- Inspection ---

    def rows(self) -> List[str]:
        """All rows as strings, trailing spaces kept."""
        return [
            ''.join(chr(c) for c in self._cells[y * self.width:(y + 1) * self.width])
            for y in range(self.height)
        ]

    def bounds(self) -> Tuple[int, int]:
        """(columns, rows) of the smallest top-left box holding every non-space cell."""
        max_x = max_y = -1
        for i, code in enumerate(self._cells):
            if code != SPACE:
                y, x = divmod(i, self.width)
                max_x = max(max_x, x)
                max_y = max(max_y, y)
        return max_x + 1, max_y + 1

    def dump(self) -> str:
        """Used part of the grid as text, trailing spaces stripped."""
        cols, rows = self.bounds()
        return '\n'.join(row[:cols].rstrip() for row in self.rows()[:rows])

    def __repr__(self):
        return f"Grid({self.width}x{self.height})"
