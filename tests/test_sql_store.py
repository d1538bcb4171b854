from __future__ import annotations

import pytest
from sqlalchemy.exc import IntegrityError

from dbrelay.common.codec import Page
from dbrelay.data.sql import SQLStore
from dbrelay.errors import StoreError


def _drain(store: SQLStore, table: str, limit: int):
    order_by = store.order_column(table)
    offset = 0
    pages = []
    while True:
        page = store.fetch_page(table, order_by, limit, offset)
        if page is None:
            return pages
        pages.append(page)
        offset += len(page)


def test_order_column_prefers_id_then_primary_key_then_first_column(sqlite_db):
    url = sqlite_db(
        "orders",
        "CREATE TABLE with_id (name TEXT, ID INTEGER)",
        "CREATE TABLE with_pk (code TEXT, sku TEXT PRIMARY KEY)",
        "CREATE TABLE composite (a INTEGER, b INTEGER, c TEXT, PRIMARY KEY (b, c))",
        "CREATE TABLE plain (label TEXT, amount INTEGER)",
    )
    store = SQLStore(url)
    try:
        assert store.order_column("with_id") == "ID"
        assert store.order_column("with_pk") == "sku"
        assert store.order_column("composite") == "a"
        assert store.order_column("plain") == "label"
    finally:
        store.close()


@pytest.mark.parametrize("limit", [1, 2, 3, 7, 10, 50])
def test_pagination_yields_every_row_exactly_once_in_order(sqlite_db, limit):
    inserts = [f"INSERT INTO users (id, name) VALUES ({i}, 'user-{i}')" for i in range(10, 0, -1)]
    url = sqlite_db("users", "CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT)", *inserts)
    store = SQLStore(url)
    try:
        pages = _drain(store, "users", limit)
    finally:
        store.close()

    ids = [row[0] for page in pages for row in page.rows]
    assert ids == list(range(1, 11))
    assert all(len(page) <= limit for page in pages)
    assert all(page.header == ("id", "name") for page in pages)


def test_empty_table_reports_end_marker_immediately(sqlite_db):
    url = sqlite_db("empty", "CREATE TABLE audit (id INTEGER PRIMARY KEY, note TEXT)")
    store = SQLStore(url)
    try:
        assert store.count("audit") == 0
        assert store.fetch_page("audit", "id", 10, 0) is None
    finally:
        store.close()


def test_insert_page_commits_rows_and_counts_them(sqlite_db):
    url = sqlite_db("target", "CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT)")
    store = SQLStore(url)
    try:
        inserted = store.insert_page("users", Page(header=["id", "name"], rows=[[1, "a"], [2, "b"]]))
        assert inserted == 2
        assert store.count("users") == 2
        assert store.tables() == ["users"]
        assert store.columns("users") == ["id", "name"]
    finally:
        store.close()


def test_insert_page_rejects_unknown_columns(sqlite_db):
    url = sqlite_db("target", "CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT)")
    store = SQLStore(url)
    try:
        with pytest.raises(StoreError, match="email"):
            store.insert_page("users", Page(header=["id", "email"], rows=[[1, "a@b"]]))
        assert store.count("users") == 0
    finally:
        store.close()


def test_missing_table_raises_store_error(sqlite_db):
    store = SQLStore(sqlite_db("blank"))
    try:
        with pytest.raises(StoreError, match="ghosts"):
            store.count("ghosts")
    finally:
        store.close()


def test_store_requires_url_or_engine():
    with pytest.raises(ValueError):
        SQLStore()


def test_duplicate_keys_roll_back_the_page(sqlite_db):
    url = sqlite_db(
        "dupes",
        "CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT)",
        "INSERT INTO users VALUES (1, 'ada')",
    )
    store = SQLStore(url)
    try:
        with pytest.raises(StoreError, match="Inserting 2 rows into users") as excinfo:
            store.insert_page("users", Page(header=["id", "name"], rows=[[2, "bob"], [1, "eve"]]))
        assert isinstance(excinfo.value.__cause__, IntegrityError)
        assert store.count("users") == 1
    finally:
        store.close()


def test_unusable_database_url_raises_store_error():
    with pytest.raises(StoreError, match="Opening local database"):
        SQLStore("nosuchdialect://db/app")
