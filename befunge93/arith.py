"""
Befunge93 Arithmetic Helpers

Binary operators pop b (top) then a, and compute `a op b`.

Division and modulo follow C semantics, as in the reference Befunge93
interpreter written in C: the quotient truncates toward zero and the
remainder takes the sign of the dividend. Python's `//` and `%` floor
instead, so they are not used directly:

    C:       -7 / 2 == -3     -7 % 2 == -1
    Python:  -7 // 2 == -4    -7 % 2 ==  1

A zero divisor never reaches these functions; the engine applies its
division policy first.
"""


def div_trunc(a: int, b: int) -> int:
    """a / b, quotient truncated toward zero."""
    q = abs(a) // abs(b)
    return q if (a < 0) == (b < 0) else -q


def mod_trunc(a: int, b: int) -> int:
    """a % b with the sign of a, so that a == b * div_trunc(a, b) + mod_trunc(a, b)."""
    return a - b * div_trunc(a, b)


def greater(a: int, b: int) -> int:
    return 1 if a > b else 0


def logical_not(a: int) -> int:
    return 1 if a == 0 else 0


BINARY_OPS = {
    '+': lambda a, b: a + b,
    '-': lambda a, b: a - b,
    '*': lambda a, b: a * b,
    '/': div_trunc,
    '%': mod_trunc,
    '`': greater,
}
