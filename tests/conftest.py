"""
Shared fixtures: a controllable clock, an in-memory ledger, and a temporary
SQLite file for the Django-backed medium.
"""

import os
import tempfile
from datetime import datetime, timedelta, timezone

import pytest

# Must be in place before stakeledger.settings is first imported
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "stakeledger.settings")
os.environ.setdefault("LEDGER_STORAGE", "memory")
os.environ.setdefault(
    "LEDGER_DB_PATH",
    os.path.join(tempfile.mkdtemp(prefix="stakeledger-tests-"), "ledger.sqlite3"),
)


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def state(clock):
    from stakeledger.domains.ledger.state import LedgerState

    return LedgerState(clock=clock)


@pytest.fixture
def ledger(state):
    from stakeledger.domains.ledger.service import LedgerService

    return LedgerService(state)


@pytest.fixture(scope="session")
def django_store():
    """Creates the record table once per session in the temporary database."""
    from stakeledger.storage.init_db import init_store

    init_store()


@pytest.fixture
def django_medium(django_store):
    from stakeledger.django_apps.ledger.models import StoredRecord
    from stakeledger.storage.django_medium import DjangoMedium

    StoredRecord.objects.all().delete()
    yield DjangoMedium()
    StoredRecord.objects.all().delete()
