"""Small helpers shared by the test modules."""
from __future__ import annotations

from sqlalchemy import create_engine

from dbrelay.common.chunksize import ChunksizeAdvisor
from dbrelay.data.sql import SQLStore

PEER_URL = "http://testserver"


class SteppingClock:
    """Clock whose every reading is ``step`` seconds after the previous one."""

    def __init__(self, step: float) -> None:
        self.step = step
        self.now = 0.0

    def __call__(self) -> float:
        self.now += self.step
        return self.now


def steady_advisor(**kwargs) -> ChunksizeAdvisor:
    """An advisor that keeps the page size: every call takes exactly one second."""

    return ChunksizeAdvisor(clock=SteppingClock(1.0), **kwargs)


def open_store(url: str) -> SQLStore:
    # The fake peer runs requests on the test client's portal thread.
    return SQLStore(engine=create_engine(url, connect_args={"check_same_thread": False}))
