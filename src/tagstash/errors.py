"""Exceptions raised by tagstash."""


class UnsupportedOperationError(RuntimeError):
    """Raised when a cache store lacks a capability the caller asked for."""
