"""Inbound table transfer."""
from __future__ import annotations

import logging
from typing import Dict, Optional, Tuple

from ..client.models import ChunkEnvelope
from ..client.session import ClientSession
from ..common.chunksize import ChunksizeAdvisor
from ..common.formatting import format_number
from ..data.base import LocalStore
from ..errors import CorruptedChunkError
from .progress import ProgressReporter, TransferCursor

logger = logging.getLogger(__name__)


class TableReceiver:
    """Pull every table listed by the remote session into the local store."""

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

    def receive_all(self) -> Dict[str, int]:
        manifest = self.session.fetch_manifest()
        logger.info(
            "%d tables, %s records",
            len(manifest.tables),
            format_number(manifest.record_count),
        )
        return {
            table: self.receive_table(table, count)
            for table, count in manifest.tables.items()
        }

    def receive_table(self, table: str, expected_count: int = 0) -> int:
        """Receive *table* and return the number of rows inserted locally."""

        cursor = TransferCursor(table=table, chunksize=self.advisor.clamp(self.default_chunksize))
        self.progress.start(table, expected_count)

        while True:
            next_chunksize, envelope = self._fetch(cursor)
            page = envelope.open()
            if page is None:
                break
            inserted = self.store.insert_page(table, page)
            cursor.chunksize = next_chunksize
            cursor.advance(inserted)
            self.progress.advance(table, inserted)

        self.progress.finish(table)
        return cursor.offset

    def _fetch(self, cursor: TransferCursor) -> Tuple[int, ChunkEnvelope]:
        """Fetch the page under *cursor*, repeating the identical request while corrupted."""

        attempts = 0
        while True:
            attempts += 1
            next_chunksize, envelope = self.advisor.next(
                cursor.chunksize,
                lambda: self.session.fetch_table_page(cursor.table, cursor.chunksize, cursor.offset),
            )
            if envelope.is_intact():
                return next_chunksize, envelope
            if self.max_corrupt_retries is not None and attempts > self.max_corrupt_retries:
                raise CorruptedChunkError(cursor.table, cursor.offset, attempts)
            logger.warning(
                "Checksum mismatch for %s at offset %d, fetching again (attempt %d)",
                cursor.table,
                cursor.offset,
                attempts + 1,
            )


__all__ = ["TableReceiver"]
