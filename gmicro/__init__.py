"""Service toolkit: uint64 list helpers, configuration, request context, shutdown hooks, RPC client and proto tooling."""

__version__ = "0.1.0"