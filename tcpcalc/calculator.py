"""Infix arithmetic evaluation with the four basic operators and parentheses."""

import math
import re

_WHITESPACE = " \t\n\v\f\r"
_DIGITS = "0123456789"
_OPERATORS = "+-*/"
_PRIORITY = {"+": 1, "-": 1, "*": 2, "/": 2, "(": 0}
_NUMBER_PREFIX = re.compile(r"-?(?:[0-9]+\.?[0-9]*|\.[0-9]+)")


class CalculationError(ValueError):
    """Raised when an expression cannot be evaluated."""


def _priority(operation: str) -> int:
    try:
        return _PRIORITY[operation]
    except KeyError:
        raise CalculationError("Unknown operation") from None


def _apply(values: list[float], operations: list[str]) -> float:
    right = values.pop()
    left = values.pop()
    operation = operations.pop()
    if operation == "+":
        return left + right
    if operation == "-":
        return left - right
    if operation == "*":
        return left * right
    if operation == "/":
        if right == 0:
            raise CalculationError("Division by zero")
        return left / right
    raise CalculationError("Unknown operation")


def _parse_number(text: str) -> float:
    """Read the longest leading decimal number of ``text``."""
    match = _NUMBER_PREFIX.match(text)
    if match is None:
        raise CalculationError(f"Invalid number: {text!r}")
    value = float(match.group())
    if math.isinf(value):
        raise CalculationError(f"Number out of range: {text!r}")
    return value


def _starts_number(expression: str, position: int) -> bool:
    char = expression[position]
    if char in _DIGITS:
        return True
    if char != "-":
        return False
    if position == 0:
        return True
    previous = expression[position - 1]
    return previous in _OPERATORS or previous == "("


def calculate(expression: str) -> float:
    """Evaluate an infix expression and return its value.

    A minus sign at the start, or directly after an operator or an opening
    parenthesis, is part of the number that follows it.
    """
    values: list[float] = []
    operations: list[str] = []
    length = len(expression)
    position = 0

    while position < length:
        char = expression[position]

        if char in _WHITESPACE:
            position += 1
            continue

        if _starts_number(expression, position):
            end = position + 1 if char == "-" else position
            while end < length and (expression[end] in _DIGITS or expression[end] == "."):
                end += 1
            values.append(_parse_number(expression[position:end]))
            position = end
            continue

        if char in _OPERATORS:
            while operations and _priority(operations[-1]) >= _priority(char):
                if len(values) < 2:
                    break
                values.append(_apply(values, operations))
            operations.append(char)
        elif char == "(":
            operations.append(char)
        elif char == ")":
            while operations and operations[-1] != "(":
                if len(values) < 2:
                    raise CalculationError("Invalid expression")
                values.append(_apply(values, operations))
            if not operations:
                raise CalculationError("Invalid expression")
            operations.pop()
        else:
            raise CalculationError("Invalid expression")
        position += 1

    while operations:
        if len(values) < 2:
            raise CalculationError("Invalid expression")
        values.append(_apply(values, operations))

    if not values:
        raise CalculationError("Empty expression")
    return values[-1]