from __future__ import annotations

from datetime import datetime

import pytest

from consultorio import records
from consultorio.db import configure_engine, init_db
from consultorio.seed import seed_base
from consultorio.store import ClinicStore

from tests.fakes import RecordingApi

# segunda-feira
NOW = datetime(2024, 6, 10, 9, 0)


class Clock:
    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def database(tmp_path):
    configure_engine(f"sqlite:///{tmp_path / 'consultorio_test.sqlite'}")
    init_db()
    seed_base()
    yield


@pytest.fixture
def store(database, clock) -> ClinicStore:
    s = ClinicStore(clock=clock)
    assert s.load()
    return s


@pytest.fixture
def memory_store(clock) -> ClinicStore:
    """Store sem banco: o gateway só registra as chamadas."""
    return ClinicStore(api=RecordingApi(), clock=clock)


@pytest.fixture
def ana(store):
    res = records.create_patient(store, {"name": "Ana", "phone": "(11) 98765-4321", "email": "ana@example.com"})
    return res.record
