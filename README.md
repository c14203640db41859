# tcpcalc

A small TCP service that evaluates arithmetic expressions. It comes with a client
that puts load on the service and checks every answer.

## Protocol

A client sends expressions. A single space ends each one. For every expression the
server replies with one of two answers:

- the result in fixed six-decimal notation followed by a space, for example `7.000000 `
- `ERROR ` if the expression cannot be evaluated

Expressions may use the following:

- the operators `+`, `-`, `*` and `/`
- parentheses
- decimal numbers
- a unary minus at the start, or directly after an operator or `(`

The usual precedence applies. Division by zero is an error. The server skips empty
expressions, which come from consecutive spaces.

## Installation

    pip install .

## Running the server

    tcpcalc-server 5555

The server listens on every interface (`0.0.0.0`) on the given port. It serves any
number of clients at once until it is interrupted with Ctrl-C.

## Running the load client

    tcpcalc-client <n> <connections> <server_addr> <server_port>

For example:

    tcpcalc-client 5 100 127.0.0.1 5555

This opens 100 connections at once. On each connection the client does the following:

1. It sends a random expression of 5 integers between 1 and 100, joined by random operators.
2. It splits the expression into two to five fragments and sends them separately.
3. It compares the server's reply with its own result, allowing a tolerance of `1e-6`.

The client reports each reply as follows:

- A correct answer prints `OK: <expression> = <result>` on standard output.
- A wrong answer, an `ERROR` reply or an unreadable reply is reported on standard error.

The server address must be an IPv4 address.

## Using the library

    from tcpcalc.calculator import calculate, CalculationError

    calculate("2+3*4")        # 14.0
    calculate("(1-3)*-2")     # 4.0

    try:
        calculate("1/0")
    except CalculationError:
        ...

`CalculationError` is a subclass of `ValueError`.

Random expressions come from `ExpressionGenerator`. The returned expression ends with
a space, ready to be sent to the server:

    from tcpcalc.generator import ExpressionGenerator

    expression, value = ExpressionGenerator(seed=1).generate(4)

### Server functions

`tcpcalc.server` has two helper functions:

- `respond(expression)` returns the reply the server would send for one expression.
- `split_requests(buffer)` separates complete expressions from an unterminated remainder.

### Starting the server from code

`CalculatorServer(port, host="0.0.0.0")` works as a context manager. Entering the
context binds and listens. With port 0, the `port` attribute is updated to the port
actually bound. Call `serve()` to handle clients until `close()` is called from
another thread:

    import threading
    from tcpcalc.server import CalculatorServer

    with CalculatorServer(0, "127.0.0.1") as server:
        thread = threading.Thread(target=server.serve)
        thread.start()
        ...
        server.close()
        thread.join()

`run()` starts the server and serves forever.

### Running the load client from code

`LoadClient(seed=None).run(count, connections, address, port)` returns a list of
`(expression, Outcome)` pairs, one per finished connection. `Outcome` has the values
`OK`, `WRONG`, `ERROR`, `UNPARSABLE`, `CLOSED` and `FAILED`.

`tcpcalc.client` also has two helper functions:

- `split_expression(expression, rng)` splits an expression into fragments.
- `check_response(response, expected)` judges a single reply.

## Tests

    pip install .[test]
    pytest