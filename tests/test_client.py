import random
import socket
import threading

import pytest

from tcpcalc.client import (
    ConnectionState,
    LoadClient,
    Outcome,
    check_response,
    main,
    split_expression,
)
from tcpcalc.server import CalculatorServer


class _ScriptedRandom:
    def __init__(self, values):
        self._values = list(values)

    def randint(self, low, high):
        value = self._values.pop(0)
        assert low <= value <= high
        return value


@pytest.mark.parametrize("seed", range(20))
def test_split_rejoins_to_expression(seed):
    expression = "12+34*56-78/9 "
    fragments = split_expression(expression, random.Random(seed))
    assert "".join(fragments) == expression
    assert 1 <= len(fragments) <= 5
    assert all(fragments)


def test_split_short_expression_into_characters():
    fragments = split_expression("7 ", random.Random(1))
    assert fragments == ["7", " "]


def test_split_at_scripted_points():
    rng = _ScriptedRandom([3, 2, 4])
    assert split_expression("12+34 ", rng) == ["12", "+3", "4 "]


def test_split_duplicate_points_collapse():
    rng = _ScriptedRandom([3, 2, 2])
    assert split_expression("12+34 ", rng) == ["12", "+34 "]


def test_split_is_deterministic_for_seed():
    expression = "1+2+3+4+5+6 "
    first = split_expression(expression, random.Random(42))
    second = split_expression(expression, random.Random(42))
    assert first == second


def test_check_error_response():
    assert check_response("ERROR", 3.0) == (Outcome.ERROR, None)


def test_check_matching_response():
    assert check_response("3.000000", 3.0) == (Outcome.OK, 3.0)


def test_check_within_tolerance():
    outcome, value = check_response("0.333333", 1 / 3)
    assert outcome is Outcome.OK
    assert value == pytest.approx(1 / 3, abs=1e-6)


def test_check_wrong_response():
    assert check_response("4.000000", 3.0) == (Outcome.WRONG, 4.0)


def test_check_unparsable_response():
    assert check_response("abc", 1.0) == (Outcome.UNPARSABLE, None)


def test_check_numeric_prefix_is_read():
    assert check_response("2.5xyz", 2.5) == (Outcome.OK, 2.5)


def test_check_negative_value():
    assert check_response("-1.500000", -1.5) == (Outcome.OK, -1.5)


def test_connection_state_defaults():
    with socket.socket() as sock:
        state = ConnectionState(sock, "1+2 ", 3.0)
        assert state.buffer == ""
        assert len(state.fragments) == 0
        assert state.sending_complete is False


def test_run_against_server():
    with CalculatorServer(0, "127.0.0.1") as server:
        thread = threading.Thread(target=server.serve, daemon=True)
        thread.start()
        results = LoadClient(seed=7).run(3, 5, "127.0.0.1", server.port)
    thread.join(timeout=5)
    assert len(results) == 5
    assert all(outcome is Outcome.OK for _, outcome in results)
    assert all(not expression.endswith(" ") for expression, _ in results)


def test_run_with_invalid_address_opens_nothing():
    assert LoadClient(seed=1).run(3, 4, "not-an-address", 1) == []


def test_run_against_closed_port_ends():
    with socket.socket() as probe:
        probe.bind(("127.0.0.1", 0))
        port = probe.getsockname()[1]
    results = LoadClient(seed=3).run(2, 2, "127.0.0.1", port)
    assert all(outcome in (Outcome.FAILED, Outcome.CLOSED) for _, outcome in results)


def test_main_rejects_wrong_argument_count():
    assert main(["3", "2"]) == 1


def test_main_rejects_non_numeric_arguments():
    assert main(["three", "2", "127.0.0.1", "80"]) == 1


def test_main_runs_against_server():
    with CalculatorServer(0, "127.0.0.1") as server:
        thread = threading.Thread(target=server.serve, daemon=True)
        thread.start()
        status = main(["2", "3", "127.0.0.1", str(server.port)])
    thread.join(timeout=5)
    assert status == 0