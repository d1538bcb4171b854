"""SQLAlchemy backed local storage."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from sqlalchemy import MetaData, Table, create_engine, func, inspect, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import NoSuchTableError, SQLAlchemyError

from ..common.codec import Page
from ..common.formatting import mask_url
from ..errors import StoreError
from .base import LocalStore

logger = logging.getLogger(__name__)


@contextmanager
def _database_errors(action: str) -> Iterator[None]:
    """Re-raise SQLAlchemy failures as :class:`StoreError` naming *action*."""

    try:
        yield
    except SQLAlchemyError as exc:
        reason = getattr(exc, "orig", None) or exc
        raise StoreError(f"{action} failed: {reason}") from exc


class SQLStore(LocalStore):
    """Read and write table pages through a SQLAlchemy engine.

    Pages are ordered by a single column chosen by :meth:`order_column`.
    Offset pagination only stays stable when that column's values are unique
    and the table is not modified while it is being transferred. Database
    failures surface as :class:`~dbrelay.errors.StoreError`.
    """

    def __init__(self, database_url: Optional[str] = None, *, engine: Optional[Engine] = None) -> None:
        if engine is None:
            if not database_url:
                raise ValueError("SQLStore requires a database URL or an engine")
            with _database_errors(f"Opening local database {mask_url(database_url)}"):
                engine = create_engine(database_url)
            self._owns_engine = True
        else:
            self._owns_engine = False
        self.engine = engine
        self._metadata = MetaData()
        self._tables: Dict[str, Table] = {}

    def _table(self, name: str) -> Table:
        table = self._tables.get(name)
        if table is None:
            try:
                table = Table(name, self._metadata, autoload_with=self.engine)
            except NoSuchTableError as exc:
                raise StoreError(f"Table '{name}' not found in local database") from exc
            except SQLAlchemyError as exc:
                raise StoreError(f"Reading the definition of table '{name}' failed: {exc}") from exc
            self._tables[name] = table
        return table

    def tables(self) -> List[str]:
        with _database_errors("Listing local tables"):
            return inspect(self.engine).get_table_names()

    def columns(self, table: str) -> List[str]:
        return [column.name for column in self._table(table).columns]

    def count(self, table: str) -> int:
        sa_table = self._table(table)
        with _database_errors(f"Counting rows of {table}"):
            with self.engine.connect() as conn:
                return int(conn.scalar(select(func.count()).select_from(sa_table)) or 0)

    def order_column(self, table: str) -> str:
        """Prefer an ``id`` column, then a single column primary key, then the first column."""

        sa_table = self._table(table)
        names = [column.name for column in sa_table.columns]
        if not names:
            raise StoreError(f"Table '{table}' has no columns")
        for name in names:
            if name.lower() == "id":
                return name
        primary_key = [column.name for column in sa_table.primary_key.columns]
        if len(primary_key) == 1:
            return primary_key[0]
        return names[0]

    def fetch_page(self, table: str, order_by: str, limit: int, offset: int) -> Optional[Page]:
        sa_table = self._table(table)
        columns = list(sa_table.columns)
        stmt = (
            select(*columns)
            .order_by(sa_table.c[order_by])
            .limit(limit)
            .offset(offset)
        )
        with _database_errors(f"Reading {limit} rows of {table} at offset {offset}"):
            with self.engine.connect() as conn:
                rows = [tuple(row) for row in conn.execute(stmt)]
        return Page.from_rows([column.name for column in columns], rows)

    def insert_page(self, table: str, page: Page) -> int:
        sa_table = self._table(table)
        unknown = [name for name in page.header if name not in sa_table.c]
        if unknown:
            raise StoreError(f"Table '{table}' has no columns named {', '.join(unknown)}")
        payload = [dict(zip(page.header, row)) for row in page.rows]
        # One transaction per page: the rows are committed before the caller moves on.
        with _database_errors(f"Inserting {len(payload)} rows into {table}"):
            with self.engine.begin() as conn:
                conn.execute(sa_table.insert(), payload)
        logger.debug("Inserted %d rows into %s", len(payload), table)
        return len(payload)

    def close(self) -> None:
        if self._owns_engine:
            self.engine.dispose()


__all__ = ["SQLStore"]
