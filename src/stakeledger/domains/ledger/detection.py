from datetime import timedelta
from typing import List

import structlog

from stakeledger import settings
from stakeledger.domains.ledger.state import LedgerState
from stakeledger.domains.ledger.transactions import TransactionLog

logger = structlog.get_logger("suspicious_activity")


class SuspiciousActivityDetector:
    """
    Read-only heuristic over the trailing window of an account's transactions.
    It reports, it never blocks a transfer.
    """

    def __init__(self, state: LedgerState, transactions: TransactionLog,
                 window_seconds: int = settings.SUSPICIOUS_WINDOW_SECONDS,
                 max_transactions: int = settings.SUSPICIOUS_MAX_TRANSACTIONS,
                 amount_threshold=settings.SUSPICIOUS_AMOUNT):
        self.state = state
        self.transactions = transactions
        self.window = timedelta(seconds=window_seconds)
        self.max_transactions = max_transactions
        self.amount_threshold = amount_threshold

    def check(self, account_id: int) -> List[int]:
        with self.state.lock:
            now = self.state.now()
            recent = self.transactions.involving(account_id, now - self.window, now)

        if len(recent) > self.max_transactions:
            flagged = [txn.id for txn in recent]
            reason = "frequency"
        else:
            flagged = [txn.id for txn in recent if txn.amount > self.amount_threshold]
            reason = "amount"

        if flagged:
            logger.warning("suspicious_activity_detected", account_id=account_id, reason=reason,
                           in_window=len(recent), flagged=len(flagged))
        return flagged
