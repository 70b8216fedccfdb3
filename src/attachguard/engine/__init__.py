"""Database engines — implementations of the Engine protocol."""

from attachguard.engine._base import Engine, QueryResult

__all__ = [
    "Engine",
    "QueryResult",
]
