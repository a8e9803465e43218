from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from stakeledger.domains.ledger.errors import NotFound
from stakeledger.domains.ledger.models import Transaction, TransactionKind
from stakeledger.domains.ledger.state import LedgerState
from stakeledger.storage.medium import WriteBatch


class TransactionLog:
    """Append-only log of committed balance movements, keyed by sequence number."""

    def __init__(self, state: LedgerState):
        self.state = state

    def stage(self, batch: WriteBatch, sender_id: int, receiver_id: int, amount: Decimal,
              kind: TransactionKind = TransactionKind.TRANSFER,
              reverses_id: Optional[int] = None) -> Transaction:
        """Builds the next transaction and adds its write to `batch`. Nothing is stored until commit."""
        transaction = Transaction(
            id=self.state.transaction_ids.next_id(),
            sender_id=sender_id,
            receiver_id=receiver_id,
            amount=amount,
            timestamp=self.state.now(),
            kind=kind,
            reverses_id=reverses_id,
        )
        self.state.transactions.stage_insert(batch, transaction.id, transaction)
        return transaction

    def get(self, transaction_id: int) -> Transaction:
        transaction = self.state.transactions.get(transaction_id)
        if transaction is None:
            raise NotFound(f"Transaction with id={transaction_id} not found.")
        return transaction

    def list(self) -> List[Transaction]:
        return self.state.transactions.values()

    def involving(self, account_id: int, since: datetime, until: datetime) -> List[Transaction]:
        return [
            txn for txn in self.state.transactions.values()
            if txn.involves(account_id) and since <= txn.timestamp <= until
        ]

    def find_reversal(self, transaction_id: int) -> Optional[Transaction]:
        for txn in self.state.transactions.values():
            if txn.kind == TransactionKind.REVERSAL and txn.reverses_id == transaction_id:
                return txn
        return None
