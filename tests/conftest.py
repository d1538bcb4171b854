from __future__ import annotations

import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Callable, Iterator

import pytest

from fake_peer import PeerState, peer_client
from support import PEER_URL, open_store


@pytest.fixture
def sqlite_db(tmp_path: Path) -> Callable[..., str]:
    """Create a SQLite file from SQL statements and return its URL."""

    def _create(name: str, *statements: str) -> str:
        path = tmp_path / f"{name}.db"
        with closing(sqlite3.connect(path)) as conn:
            conn.executescript(";\n".join(statements))
            conn.commit()
        return f"sqlite:///{path}"

    return _create


@pytest.fixture
def peer_factory() -> Iterator[Callable[..., PeerState]]:
    stores = []

    def _create(url: str, **kwargs) -> PeerState:
        store = open_store(url)
        stores.append(store)
        return PeerState(store=store, **kwargs)

    yield _create
    for store in stores:
        store.engine.dispose()


@pytest.fixture
def http_factory():
    clients = []

    def _create(state: PeerState):
        client = peer_client(state, base_url=PEER_URL)
        clients.append(client)
        return client

    yield _create
    for client in clients:
        client.close()
