"""Abstract local storage used by the transfer loops."""
from __future__ import annotations

from typing import List, Optional, Protocol

from ..common.codec import Page


class LocalStore(Protocol):
    """Protocol for the database the client reads from or writes into.

    Implementations report database failures as :class:`~dbrelay.errors.StoreError`.
    """

    def tables(self) -> List[str]:
        """Return table names in the order the database enumerates them."""

    def columns(self, table: str) -> List[str]:
        """Return the declared column names of *table*."""

    def count(self, table: str) -> int:
        """Return the number of rows currently in *table*."""

    def order_column(self, table: str) -> str:
        """Return the column pages of *table* are ordered by."""

    def fetch_page(self, table: str, order_by: str, limit: int, offset: int) -> Optional[Page]:
        """Return up to *limit* rows starting at *offset*, or ``None`` past the end."""

    def insert_page(self, table: str, page: Page) -> int:
        """Insert every row of *page* into *table* and return the row count."""

    def close(self) -> None:
        """Release connections held by the store."""


__all__ = ["LocalStore"]
