import os
import threading
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

import structlog

from stakeledger import settings
from stakeledger.domains.ledger.models import Account, AuditLogEntry, NotificationLogEntry, Stake, Transaction
from stakeledger.storage.ids import IdGenerator
from stakeledger.storage.medium import InMemoryMedium, StorageMedium, WriteBatch
from stakeledger.storage.store import PersistentStore

logger = structlog.get_logger("ledger_state")

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Region(str, Enum):
    ACCOUNTS = "accounts"
    TRANSACTIONS = "transactions"
    STAKES = "stakes"
    AUDIT_LOGS = "audit_logs"
    NOTIFICATION_LOGS = "notification_logs"


class LedgerState:
    """
    Aggregate owning every store of one ledger instance.

    Built once at process start and handed to the services; nothing in the
    ledger reaches for module-level state. `lock` serializes every step that
    reads and then writes balances, across the account, transaction and stake stores.
    """

    def __init__(self, medium: Optional[StorageMedium] = None, clock: Optional[Clock] = None):
        self.medium = medium if medium is not None else InMemoryMedium()
        self.clock = clock or utc_now
        self.lock = threading.RLock()

        self.accounts = PersistentStore(self.medium, Region.ACCOUNTS.value, Account)
        self.transactions = PersistentStore(self.medium, Region.TRANSACTIONS.value, Transaction)
        self.stakes = PersistentStore(self.medium, Region.STAKES.value, Stake)
        self.audit_logs = PersistentStore(self.medium, Region.AUDIT_LOGS.value, AuditLogEntry)
        self.notification_logs = PersistentStore(self.medium, Region.NOTIFICATION_LOGS.value, NotificationLogEntry)

        self.account_ids = IdGenerator(self.medium, Region.ACCOUNTS.value)
        self.transaction_ids = IdGenerator(self.medium, Region.TRANSACTIONS.value)
        self.stake_ids = IdGenerator(self.medium, Region.STAKES.value)
        self.audit_ids = IdGenerator(self.medium, Region.AUDIT_LOGS.value)
        self.notification_ids = IdGenerator(self.medium, Region.NOTIFICATION_LOGS.value)

    def now(self) -> datetime:
        return self.clock()

    def new_batch(self) -> WriteBatch:
        return WriteBatch()

    def commit(self, batch: WriteBatch) -> None:
        self.medium.apply(batch)


def build_state(storage: Optional[str] = None, clock: Optional[Clock] = None) -> LedgerState:
    """Builds the process-wide state for the configured storage backend."""
    storage = storage or settings.LEDGER_STORAGE

    if storage == "memory":
        medium = InMemoryMedium()
    elif storage == "django":
        os.environ.setdefault("DJANGO_SETTINGS_MODULE", "stakeledger.settings")
        from stakeledger.storage.init_db import init_store
        init_store()
        from stakeledger.storage.django_medium import DjangoMedium
        medium = DjangoMedium()
    else:
        raise ValueError(f"Unknown LEDGER_STORAGE backend: {storage!r}")

    logger.info("ledger_state_built", storage=storage)
    return LedgerState(medium=medium, clock=clock)
