"""A TCP server that evaluates space-terminated arithmetic expressions."""

import selectors
import socket
import sys
import threading

from tcpcalc.calculator import calculate

BUFFER_SIZE = 1024
ERROR_RESPONSE = "ERROR "
_POLL_INTERVAL = 0.1


def respond(expression: str) -> str:
    """Return the reply for one expression: its value in fixed notation, or ERROR."""
    try:
        result = calculate(expression)
    except (ValueError, ArithmeticError):
        return ERROR_RESPONSE
    return f"{result:f} "


def split_requests(buffer: str) -> tuple[list[str], str]:
    """Split complete, non-empty expressions off ``buffer``.

    Returns the expressions and the unterminated remainder.
    """
    *complete, remainder = buffer.split(" ")
    return [expression for expression in complete if expression], remainder


class CalculatorServer:
    """Accepts clients and answers every expression they send."""

    def __init__(self, port: int, host: str = "0.0.0.0"):
        self.port = port
        self.host = host
        self._listener: socket.socket | None = None
        self._selector: selectors.BaseSelector | None = None
        self._buffers: dict[socket.socket, str] = {}
        self._stop = threading.Event()
        self._lock = threading.Lock()

    def start(self) -> None:
        """Bind and listen; ``port`` is updated when 0 was asked for."""
        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            listener.bind((self.host, self.port))
            listener.setblocking(False)
            listener.listen(socket.SOMAXCONN)
        except OSError:
            listener.close()
            raise
        selector = selectors.DefaultSelector()
        selector.register(listener, selectors.EVENT_READ)
        self._listener = listener
        self._selector = selector
        self.port = listener.getsockname()[1]
        self._stop.clear()
        print(f"Server started on port {self.port}", flush=True)

    def serve(self) -> None:
        """Handle events until :meth:`close` is called."""
        if self._selector is None or self._listener is None:
            raise RuntimeError("Server is not started")
        with self._lock:
            while not self._stop.is_set():
                for key, _ in self._selector.select(timeout=_POLL_INTERVAL):
                    if key.fileobj is self._listener:
                        self._accept()
                    else:
                        self._read(key.fileobj)

    def run(self) -> None:
        """Start the server and serve forever."""
        self.start()
        self.serve()

    def close(self) -> None:
        """Stop serving and release every socket."""
        self._stop.set()
        with self._lock:
            for client in list(self._buffers):
                self._drop(client)
            if self._selector is not None:
                self._selector.close()
                self._selector = None
            if self._listener is not None:
                self._listener.close()
                self._listener = None

    def __enter__(self) -> "CalculatorServer":
        self.start()
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def _accept(self) -> None:
        try:
            client, _ = self._listener.accept()
        except BlockingIOError:
            return
        except OSError:
            print("Failed to accept connection", file=sys.stderr, flush=True)
            return
        client.setblocking(False)
        try:
            self._selector.register(client, selectors.EVENT_READ)
        except (OSError, ValueError):
            print("Failed to add client to selector", file=sys.stderr, flush=True)
            client.close()
            return
        self._buffers[client] = ""
        print(f"New client connected: {client.fileno()}", flush=True)

    def _read(self, client: socket.socket) -> None:
        try:
            data = client.recv(BUFFER_SIZE - 1)
        except BlockingIOError:
            return
        except OSError:
            self._drop(client)
            return
        if not data:
            print(f"Client {client.fileno()} disconnected", flush=True)
            self._drop(client)
            return

        buffer = self._buffers.get(client, "") + data.decode("latin-1")
        expressions, self._buffers[client] = split_requests(buffer)
        for expression in expressions:
            self._answer(client, expression)

    @staticmethod
    def _answer(client: socket.socket, expression: str) -> None:
        try:
            client.send(respond(expression).encode("latin-1"))
        except OSError:
            pass

    def _drop(self, client: socket.socket) -> None:
        if self._selector is not None:
            try:
                self._selector.unregister(client)
            except (KeyError, ValueError):
                pass
        client.close()
        self._buffers.pop(client, None)


def main(argv=None) -> int:
    """Run the server on the port given on the command line."""
    args = sys.argv[1:] if argv is None else list(argv)
    if len(args) != 1:
        print("Usage: tcpcalc-server <port>", file=sys.stderr)
        return 1
    try:
        port = int(args[0])
    except ValueError:
        print("Usage: tcpcalc-server <port>", file=sys.stderr)
        return 1

    server = CalculatorServer(port)
    try:
        server.run()
    except KeyboardInterrupt:
        return 0
    except (OSError, RuntimeError) as error:
        print(f"Server error: {error}", file=sys.stderr)
        return 1
    finally:
        server.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())