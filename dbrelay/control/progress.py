"""Per-table transfer state and progress reporting."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Protocol

from ..logging_utils import log_progress


@dataclass
class TransferCursor:
    """Mutable position of one table transfer.

    ``offset`` only moves through :meth:`advance`, after a page has been
    acknowledged by the server (send) or inserted locally (receive).
    """

    table: str
    chunksize: int
    order_by: Optional[str] = None
    offset: int = 0

    def advance(self, rows: int) -> None:
        if rows < 0:
            raise ValueError("cursor cannot move backwards")
        self.offset += rows


class ProgressReporter(Protocol):
    def start(self, table: str, total: int) -> None:
        ...

    def advance(self, table: str, rows: int) -> None:
        ...

    def finish(self, table: str) -> None:
        ...


class LogProgress:
    """Report per-table progress as structured log records."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or logging.getLogger("dbrelay.progress")
        self._totals: Dict[str, int] = {}
        self._done: Dict[str, int] = {}

    def start(self, table: str, total: int) -> None:
        self._totals[table] = total
        self._done[table] = 0
        log_progress(
            self._logger,
            table=table,
            rows_transferred=0,
            total_rows=total,
            state="STARTED",
        )

    def advance(self, table: str, rows: int) -> None:
        self._done[table] = self._done.get(table, 0) + rows
        log_progress(
            self._logger,
            table=table,
            rows_transferred=self._done[table],
            total_rows=self._totals.get(table, 0),
            state="IN_PROGRESS",
        )

    def finish(self, table: str) -> None:
        log_progress(
            self._logger,
            table=table,
            rows_transferred=self._done.get(table, 0),
            total_rows=self._totals.get(table, 0),
            state="COMPLETED",
        )

    def transferred(self, table: str) -> int:
        return self._done.get(table, 0)


__all__ = ["LogProgress", "ProgressReporter", "TransferCursor"]
