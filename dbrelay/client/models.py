"""Wire models exchanged with the remote transfer endpoint."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from pydantic import BaseModel, Field, NonNegativeInt

from ..common import codec
from ..common.codec import Page


class TableManifest(BaseModel):
    """Remote tables and their row counts, in the order the server lists them."""

    tables: Dict[str, NonNegativeInt] = Field(
        default_factory=dict,
        description="Mapping of table name to row count; counts only drive progress",
    )

    @property
    def record_count(self) -> int:
        return sum(self.tables.values())


@dataclass(frozen=True)
class ChunkEnvelope:
    """Compressed page bytes and the checksum declared for them."""

    payload: bytes
    checksum: str

    @classmethod
    def seal(cls, page: Page | None) -> "ChunkEnvelope":
        payload = codec.encode(page)
        return cls(payload=payload, checksum=codec.digest(payload))

    def is_intact(self) -> bool:
        return codec.verify(self.payload, self.checksum)

    def open(self) -> Page | None:
        """Decode the payload; only call after :meth:`is_intact` succeeded."""

        return codec.decode(self.payload)


__all__ = ["ChunkEnvelope", "TableManifest"]
