"""
Befunge93 Stack: unbounded LIFO of signed integers

Underflow is not an error in Befunge93. Popping or peeking an empty stack
yields 0, so every operator works on an empty stack as if it were an
endless well of zeros.
"""

from typing import Iterator, List, Tuple


class Stack:

    __slots__ = ('_items',)

    def __init__(self, items=()):
        self._items: List[int] = [int(v) for v in items]

    def push(self, value: int):
        self._items.append(int(value))

    def pop(self) -> int:
        """Remove and return the top value, 0 if empty."""
        if self._items:
            return self._items.pop()
        return 0

    def peek(self) -> int:
        """Top value without removing it, 0 if empty."""
        if self._items:
            return self._items[-1]
        return 0

    def clear(self):
        self._items.clear()

    def snapshot(self) -> Tuple[int, ...]:
        """Bottom-to-top copy for display."""
        return tuple(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __iter__(self) -> Iterator[int]:
        return iter(self._items)

    def __repr__(self):
        return f"Stack({self._items!r})"
