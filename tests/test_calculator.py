import pytest

from tcpcalc.calculator import CalculationError, calculate


@pytest.mark.parametrize(
    ("expression", "expected"),
    [
        ("2+3*4", 2 + 3 * 4),
        ("(2+3)*4", (2 + 3) * 4),
        ("10/4", 10 / 4),
        ("-3+5", -3 + 5),
        ("2*-3", 2 * -3),
        ("7-2-1", 7 - 2 - 1),
        ("8/2/2", 8 / 2 / 2),
        (" 1 + 2 ", 1 + 2),
        ("\t6\n*\r7", 6 * 7),
        ("(-1)", -1),
        ("1.5*2", 1.5 * 2),
        ("5-(-2)", 5 - (-2)),
        ("((1+2)*(3+4))/7", ((1 + 2) * (3 + 4)) / 7),
        ("3.", 3.0),
        ("42", 42),
        ("100-5*3+8/4", 100 - 5 * 3 + 8 / 4),
    ],
)
def test_evaluates_like_python(expression, expected):
    assert calculate(expression) == pytest.approx(expected)


@pytest.mark.parametrize(
    "expression",
    [
        "1/0",
        "1/(2-2)",
        "abc",
        "1+",
        "+1",
        "(1+2",
        "1+2)",
        "",
        "   ",
        "-",
        "-(2)",
        "2^3",
        ".5+1",
        "3- -2",
        "1" * 400,
    ],
)
def test_invalid_expressions_raise(expression):
    with pytest.raises(CalculationError):
        calculate(expression)


def test_error_is_value_error():
    with pytest.raises(ValueError):
        calculate("1/0")


def test_division_by_zero_message():
    with pytest.raises(CalculationError, match="Division by zero"):
        calculate("5/0")


def test_adjacent_numbers_yield_last_value():
    assert calculate("1 2") == 2.0


def test_extra_decimal_point_reads_leading_number():
    assert calculate("1.2.3") == 1.2


def test_negative_zero_divisor_rejected():
    with pytest.raises(CalculationError):
        calculate("4/-0")


def test_unicode_digits_are_rejected():
    with pytest.raises(CalculationError):
        calculate("\u0663+1")


def test_result_is_float():
    result = calculate("7/7")
    assert isinstance(result, float) and result == 1.0