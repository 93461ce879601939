"""Shared pytest fixtures for qcd tests."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from qcd import AliasResolver, Database, PathStore, SessionStack

SESSION_A = "20240101120000000000001"
SESSION_B = "20240101120000000000002"

# 2024-01-01 12:00:00 UTC
START_TIME = 1_704_110_400


class FakeClock:
    """Controllable replacement for time.time."""

    def __init__(self, now: float = START_TIME) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def reset_logging() -> Iterator[None]:
    """Drop handlers bound to streams captured by a finished test."""
    yield
    logging.getLogger("qcd").handlers.clear()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "test_qcd.sqlite"


@pytest.fixture
def db(db_path: Path) -> Iterator[Database]:
    """An open database in a temporary directory."""
    with Database(db_path, timeout=0.1) as database:
        yield database


@pytest.fixture
def store(db: Database) -> PathStore:
    return PathStore(db)


@pytest.fixture
def resolver(db: Database) -> AliasResolver:
    return AliasResolver(db)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def stack(db: Database, clock: FakeClock) -> SessionStack:
    return SessionStack(db, SESSION_A, clock=clock)


@pytest.fixture
def other_stack(db: Database, clock: FakeClock) -> SessionStack:
    return SessionStack(db, SESSION_B, clock=clock)


@pytest.fixture
def pets_people(store: PathStore) -> PathStore:
    """A store holding the 'pets' and 'people' example entries."""
    store.add("/home/user/pets", alias="pets")
    store.add("/home/user/people", alias="people")
    return store
