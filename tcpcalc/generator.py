"""Random arithmetic expressions together with their values."""

import random

from tcpcalc.calculator import calculate

OPERATORS = ("+", "-", "*", "/")
MIN_NUMBER = 1
MAX_NUMBER = 100


class ExpressionGenerator:
    """Produces random expressions of integers joined by binary operators."""

    def __init__(self, seed=None):
        self._rng = random.Random(seed)

    def _number(self) -> str:
        return str(self._rng.randint(MIN_NUMBER, MAX_NUMBER))

    def generate(self, count: int) -> tuple[str, float]:
        """Return an expression of ``count`` numbers, terminated by a space, and its value."""
        parts = [self._number()]
        for _ in range(count - 1):
            parts.append(self._rng.choice(OPERATORS))
            parts.append(self._number())
        expression = "".join(parts)
        return expression + " ", calculate(expression)