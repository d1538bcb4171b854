"""Outbound table transfer."""
from __future__ import annotations

import logging
from typing import Dict, Optional

from ..client.models import ChunkEnvelope
from ..client.session import ClientSession
from ..common.chunksize import ChunksizeAdvisor
from ..data.base import LocalStore
from ..errors import CorruptedChunkError
from .progress import ProgressReporter, TransferCursor

logger = logging.getLogger(__name__)


class TableSender:
    """Push every local table to the remote session page by page."""

    def __init__(
        self,
        session: ClientSession,
        store: LocalStore,
        advisor: ChunksizeAdvisor,
        progress: ProgressReporter,
        *,
        default_chunksize: int,
        max_corrupt_retries: Optional[int] = None,
    ) -> None:
        self.session = session
        self.store = store
        self.advisor = advisor
        self.progress = progress
        self.default_chunksize = default_chunksize
        self.max_corrupt_retries = max_corrupt_retries

    def send_all(self) -> Dict[str, int]:
        return {table: self.send_table(table) for table in self.store.tables()}

    def send_table(self, table: str) -> int:
        """Send *table* and return the number of rows the server acknowledged."""

        cursor = TransferCursor(
            table=table,
            chunksize=self.advisor.clamp(self.default_chunksize),
            order_by=self.store.order_column(table),
        )
        self.progress.start(table, self.store.count(table))
        logger.debug("Sending %s ordered by %s", table, cursor.order_by)

        while True:
            page = self.store.fetch_page(table, cursor.order_by, cursor.chunksize, cursor.offset)
            if page is None:
                break
            envelope = ChunkEnvelope.seal(page)
            cursor.chunksize = self._transmit(cursor, envelope)
            cursor.advance(len(page))
            self.progress.advance(table, len(page))

        self.progress.finish(table)
        return cursor.offset

    def _transmit(self, cursor: TransferCursor, envelope: ChunkEnvelope) -> int:
        """Post *envelope* until the server accepts it; return the next chunksize."""

        attempts = 0
        while True:
            attempts += 1
            chunksize, accepted = self.advisor.next(
                cursor.chunksize,
                lambda: self.session.push_table_page(cursor.table, envelope),
            )
            if accepted:
                return chunksize
            if self.max_corrupt_retries is not None and attempts > self.max_corrupt_retries:
                raise CorruptedChunkError(cursor.table, cursor.offset, attempts)
            logger.warning(
                "Server reported a corrupted page of %s at offset %d, resending (attempt %d)",
                cursor.table,
                cursor.offset,
                attempts + 1,
            )


__all__ = ["TableSender"]
