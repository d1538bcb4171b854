"""Local database access."""
from .base import LocalStore
from .sql import SQLStore

__all__ = ["LocalStore", "SQLStore"]
