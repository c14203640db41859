"""A TCP arithmetic server, an expression evaluator and a load-testing client."""

__version__ = "0.1.0"
__all__ = ["calculator", "generator", "server", "client"]