from typing import List

import structlog

from stakeledger.domains.ledger.errors import InvalidState
from stakeledger.domains.ledger.models import ActionType, AuditLogEntry, NotificationLogEntry
from stakeledger.domains.ledger.state import LedgerState

logger = structlog.get_logger("audit_log")


class AuditLog:
    """
    Append-only trail of privileged and system-initiated actions.

    Entries are written after the financial change they describe has committed and
    never take the ledger lock.
    """

    def __init__(self, state: LedgerState):
        self.state = state

    def log(self, action_type: ActionType, affected_account_id: int, details: str) -> AuditLogEntry:
        try:
            action_type = ActionType(action_type)
        except ValueError:
            raise InvalidState(f"Unknown audit action type {action_type!r}.")

        entry = AuditLogEntry(
            id=self.state.audit_ids.next_id(),
            action_type=action_type,
            affected_account_id=affected_account_id,
            timestamp=self.state.now(),
            details=details,
        )
        self.state.audit_logs.insert(entry.id, entry)
        logger.debug("audit_entry_written", entry_id=entry.id, action=entry.action_type.value,
                     account_id=affected_account_id)
        return entry

    def list(self) -> List[AuditLogEntry]:
        return self.state.audit_logs.values()


class NotificationLog:
    """User-facing messages, one region and one id sequence of their own."""

    def __init__(self, state: LedgerState):
        self.state = state

    def create(self, account_id: int, message: str) -> NotificationLogEntry:
        entry = NotificationLogEntry(
            id=self.state.notification_ids.next_id(),
            account_id=account_id,
            message=message,
            timestamp=self.state.now(),
        )
        self.state.notification_logs.insert(entry.id, entry)
        return entry

    def list(self) -> List[NotificationLogEntry]:
        return self.state.notification_logs.values()
