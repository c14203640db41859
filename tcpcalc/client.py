"""A load-generating client that sends random expressions in fragments and checks the answers."""

import enum
import errno
import math
import random
import re
import selectors
import socket
import sys
from collections import deque
from dataclasses import dataclass, field

from tcpcalc.generator import ExpressionGenerator

BUFFER_SIZE = 1024
ERROR_RESPONSE = "ERROR"
TOLERANCE = 1e-6
_WAIT_TIMEOUT = 1.0
_SEND_FLAGS = getattr(socket, "MSG_NOSIGNAL", 0)
_NUMBER_PREFIX = re.compile(
    r"\s*([+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|inf(?:inity)?|nan))",
    re.IGNORECASE,
)


class Outcome(enum.Enum):
    """How one request ended."""

    OK = "ok"
    WRONG = "wrong"
    ERROR = "error"
    UNPARSABLE = "unparsable"
    CLOSED = "closed"
    FAILED = "failed"


@dataclass
class ConnectionState:
    """Progress of one request on one connection."""

    sock: socket.socket
    expression: str
    expected: float
    buffer: str = ""
    fragments: deque = field(default_factory=deque)
    sending_complete: bool = False


def split_expression(expression: str, rng: random.Random) -> list[str]:
    """Cut ``expression`` into between two and five consecutive fragments at random points."""
    count = rng.randint(2, 5)
    if count >= len(expression):
        return list(expression)
    cuts = {0, len(expression)}
    cuts.update(rng.randint(1, len(expression) - 1) for _ in range(count - 1))
    points = sorted(cuts)
    return [expression[start:end] for start, end in zip(points, points[1:])]


def _parse_number(text: str) -> float:
    match = _NUMBER_PREFIX.match(text)
    if match is None:
        raise ValueError(f"not a number: {text!r}")
    literal = match.group(1)
    value = float(literal)
    if math.isinf(value) and "inf" not in literal.lower():
        raise ValueError(f"number out of range: {text!r}")
    return value


def check_response(response: str, expected: float) -> tuple[Outcome, float | None]:
    """Judge a server reply (without its terminating space) against the expected value.

    Returns the outcome and the value the server sent, when it sent one.
    """
    if response == ERROR_RESPONSE:
        return Outcome.ERROR, None
    try:
        value = _parse_number(response)
    except ValueError:
        return Outcome.UNPARSABLE, None
    if abs(value - expected) > TOLERANCE:
        return Outcome.WRONG, value
    return Outcome.OK, value


class LoadClient:
    """Opens many connections at once, each sending one expression and checking its answer."""

    def __init__(self, seed=None):
        self._generator = ExpressionGenerator(seed)
        self._rng = random.Random(seed)
        self._selector: selectors.BaseSelector | None = None
        self._connections: dict[socket.socket, ConnectionState] = {}
        self._results: list[tuple[str, Outcome]] = []

    def run(self, count: int, connections: int, address: str, port: int) -> list[tuple[str, Outcome]]:
        """Send ``connections`` expressions of ``count`` numbers each and wait for every answer.

        Returns each expression, without its terminator, with how its request ended.
        """
        self._results = []
        self._connections = {}
        with selectors.DefaultSelector() as selector:
            self._selector = selector
            try:
                for _ in range(connections):
                    sock = self._connect(address, port)
                    if sock is None:
                        continue
                    expression, expected = self._generator.generate(count)
                    state = ConnectionState(sock, expression, expected)
                    state.fragments.extend(split_expression(expression, self._rng))
                    self._connections[sock] = state
                    selector.register(sock, selectors.EVENT_WRITE)

                while self._connections:
                    for key, events in selector.select(timeout=_WAIT_TIMEOUT):
                        self._handle(key.fileobj, events)
            finally:
                for sock in list(self._connections):
                    self._finish(sock, None)
                self._selector = None
        return self._results

    @staticmethod
    def _connect(address: str, port: int) -> socket.socket | None:
        try:
            socket.inet_pton(socket.AF_INET, address)
        except OSError:
            print(f"Invalid address: {address}", file=sys.stderr, flush=True)
            return None
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        except OSError:
            print("Failed to create socket", file=sys.stderr, flush=True)
            return None
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        sock.setblocking(False)
        result = sock.connect_ex((address, port))
        if result not in (0, errno.EINPROGRESS, errno.EWOULDBLOCK):
            print("Failed to connect", file=sys.stderr, flush=True)
            sock.close()
            return None
        return sock

    def _handle(self, sock: socket.socket, events: int) -> None:
        state = self._connections.get(sock)
        if state is None:
            return
        if events & selectors.EVENT_WRITE:
            self._send(state)
        if events & selectors.EVENT_READ and sock in self._connections:
            self._receive(state)

    def _send(self, state: ConnectionState) -> None:
        if not state.fragments:
            return
        fragment = state.fragments[0]
        try:
            sent = state.sock.send(fragment.encode("latin-1"), _SEND_FLAGS)
        except BlockingIOError:
            return
        except OSError as error:
            print(f"Failed to send expression: {error}", file=sys.stderr, flush=True)
            self._finish(state.sock, Outcome.FAILED)
            return
        if sent == len(fragment):
            state.fragments.popleft()
        elif sent > 0:
            state.fragments[0] = fragment[sent:]
        if not state.fragments:
            state.sending_complete = True
            self._selector.modify(state.sock, selectors.EVENT_READ)

    def _receive(self, state: ConnectionState) -> None:
        try:
            data = state.sock.recv(BUFFER_SIZE - 1)
        except BlockingIOError:
            return
        except OSError:
            self._finish(state.sock, Outcome.FAILED)
            return
        if not data:
            print(f"Server closed connection for fd {state.sock.fileno()}", flush=True)
            self._finish(state.sock, Outcome.CLOSED)
            return

        state.buffer += data.decode("latin-1")
        response, separator, _ = state.buffer.partition(" ")
        if not separator:
            return
        outcome, value = check_response(response, state.expected)
        self._report(state, response, outcome, value)
        self._finish(state.sock, outcome)

    @staticmethod
    def _report(state: ConnectionState, response: str, outcome: Outcome, value: float | None) -> None:
        if outcome is Outcome.ERROR:
            print(f"Server returned ERROR for expression: {state.expression}", file=sys.stderr, flush=True)
        elif outcome is Outcome.UNPARSABLE:
            print(f"Failed to parse server response: {response}", file=sys.stderr, flush=True)
        elif outcome is Outcome.WRONG:
            print(
                f"Wrong result! Expression: {state.expression} Server result: {value:g} "
                f"Correct result: {state.expected:g}",
                file=sys.stderr,
                flush=True,
            )
        else:
            print(f"OK: {state.expression[:-1]} = {value:g}", flush=True)

    def _finish(self, sock: socket.socket, outcome: Outcome | None) -> None:
        state = self._connections.pop(sock, None)
        if self._selector is not None:
            try:
                self._selector.unregister(sock)
            except (KeyError, ValueError):
                pass
        sock.close()
        if state is not None and outcome is not None:
            self._results.append((state.expression.rstrip(" "), outcome))


_USAGE = "Usage: tcpcalc-client <n> <connections> <server_addr> <server_port>"


def main(argv=None) -> int:
    """Run the load client with the arguments given on the command line."""
    args = sys.argv[1:] if argv is None else list(argv)
    if len(args) != 4:
        print(_USAGE, file=sys.stderr)
        return 1
    try:
        count = int(args[0])
        connections = int(args[1])
        port = int(args[3])
    except ValueError:
        print(_USAGE, file=sys.stderr)
        return 1
    address = args[2]

    try:
        LoadClient().run(count, connections, address, port)
    except (OSError, RuntimeError, ValueError) as error:
        print(f"Client error: {error}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())