from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import List

import structlog

from stakeledger.domains.audit.logs import AuditLog, NotificationLog
from stakeledger.domains.ledger.accounts import AccountLedger
from stakeledger.domains.ledger.detection import SuspiciousActivityDetector
from stakeledger.domains.ledger.errors import InsufficientFunds, InvalidState, LedgerError, NotFound
from stakeledger.domains.ledger.models import (
    Account, ActionType, AuditLogEntry, NotificationLogEntry, Stake, Transaction, TransactionKind, to_amount,
)
from stakeledger.domains.ledger.state import LedgerState
from stakeledger.domains.ledger.transactions import TransactionLog
from stakeledger.domains.staking.engine import StakingEngine
from stakeledger.utils.metrics import REVERSALS_COMMITTED, TRANSFER_FAILURES, TRANSFERS_COMMITTED

logger = structlog.get_logger("ledger_service")


@dataclass
class TransferDTO:
    """DTO - Data Transfer Object"""
    sender_id: int
    receiver_id: int
    amount: Decimal


class LedgerService:
    """
    Operation surface of one ledger: composes the account ledger and transaction log
    for transfers and reversals, and fronts staking, detection and the side logs.
    """

    def __init__(self, state: LedgerState):
        self.state = state
        self.audit = AuditLog(state)
        self.notifications = NotificationLog(state)
        self.transactions = TransactionLog(state)
        self.staking = StakingEngine(state, self.transactions, self.audit)
        self.accounts = AccountLedger(state, self.transactions, self.audit, self.staking)
        self.detector = SuspiciousActivityDetector(state, self.transactions)

    # --- Transfers ------------------------------------------------------------

    def transfer_funds(self, sender_id: int, receiver_id: int, amount) -> Transaction:
        log = logger.bind(sender_id=sender_id, receiver_id=receiver_id)
        try:
            dto = TransferDTO(sender_id, receiver_id, to_amount(amount))
            transaction = self._commit_transfer(dto)
        except LedgerError as e:
            TRANSFER_FAILURES.labels(reason=e.code).inc()
            log.info("transfer_rejected", reason=e.code, detail=e.msg)
            raise

        TRANSFERS_COMMITTED.inc()
        log.info("transfer_committed", transaction_id=transaction.id, amount=str(transaction.amount))
        self.audit.log(ActionType.TRANSACTION_EXECUTION, sender_id,
                       f"Transferred {transaction.amount} to account {receiver_id} (transaction {transaction.id})")
        return transaction

    def _commit_transfer(self, dto: TransferDTO) -> Transaction:
        if dto.sender_id == dto.receiver_id:
            raise InvalidState("Sender and receiver must be different accounts.")

        with self.state.lock:
            sender = self.state.accounts.get(dto.sender_id)
            receiver = self.state.accounts.get(dto.receiver_id)
            if sender is None or receiver is None:
                raise NotFound("Sender or receiver account not found.")
            if sender.balance < dto.amount:
                raise InsufficientFunds("Insufficient funds in the sender's account.")

            batch = self.state.new_batch()
            transaction = self.transactions.stage(batch, sender.id, receiver.id, dto.amount)
            self.state.accounts.stage_insert(batch, sender.id, sender.debited(dto.amount))
            self.state.accounts.stage_insert(batch, receiver.id, receiver.credited(dto.amount))
            self.state.commit(batch)
        return transaction

    def reverse_transaction(self, transaction_id: int) -> Transaction:
        """
        Books the opposite movement of an earlier transaction as a new entry. The original
        is left untouched; a transaction can be reversed once.
        """
        log = logger.bind(transaction_id=transaction_id)

        with self.state.lock:
            original = self.transactions.get(transaction_id)
            if original.amount <= 0:
                raise InvalidState("Transaction amount must be positive for reversal.")
            if self.transactions.find_reversal(transaction_id) is not None:
                raise InvalidState(f"Transaction with id={transaction_id} is already reversed.")

            payer = self.state.accounts.get(original.receiver_id)
            payee = self.state.accounts.get(original.sender_id)
            if payer is None or payee is None:
                raise NotFound("Sender or receiver account of the original transaction not found.")
            if payer.balance < original.amount:
                raise InsufficientFunds("Insufficient balance for reversal.")

            batch = self.state.new_batch()
            reversal = self.transactions.stage(batch, payer.id, payee.id, original.amount,
                                               kind=TransactionKind.REVERSAL, reverses_id=original.id)
            self.state.accounts.stage_insert(batch, payer.id, payer.debited(original.amount))
            self.state.accounts.stage_insert(batch, payee.id, payee.credited(original.amount))
            self.state.commit(batch)

        REVERSALS_COMMITTED.inc()
        log.info("transaction_reversed", reversal_id=reversal.id, amount=str(reversal.amount))
        self.audit.log(ActionType.TRANSACTION_REVERSAL, payee.id,
                       f"Reversed transaction {original.id}: {reversal.amount} returned (transaction {reversal.id})")
        return reversal

    def get_all_transactions(self) -> List[Transaction]:
        transactions = self.transactions.list()
        if not transactions:
            raise NotFound("No transactions found.")
        return transactions

    def get_transaction(self, transaction_id: int) -> Transaction:
        return self.transactions.get(transaction_id)

    def check_for_suspicious_activity(self, account_id: int) -> List[int]:
        return self.detector.check(account_id)

    # --- Accounts -------------------------------------------------------------

    def create_account(self, holder_name: str, initial_balance=Decimal("0")) -> Account:
        return self.accounts.create_account(holder_name, initial_balance)

    def get_account(self, account_id: int) -> Account:
        return self.accounts.get_account(account_id)

    def get_account_balance(self, account_id: int) -> Decimal:
        return self.accounts.get_account_balance(account_id)

    def get_account_created_at(self, account_id: int) -> datetime:
        return self.accounts.get_account_created_at(account_id)

    def list_accounts(self) -> List[Account]:
        return self.accounts.list_accounts()

    def update_account_holder_name(self, account_id: int, holder_name: str) -> Account:
        return self.accounts.update_holder_name(account_id, holder_name)

    def delete_account(self, account_id: int, cascade: bool = False) -> Account:
        return self.accounts.delete_account(account_id, cascade=cascade)

    def apply_interest_to_all_accounts(self) -> List[Transaction]:
        return self.accounts.apply_interest_to_all()

    # --- Staking --------------------------------------------------------------

    def create_stake(self, account_id: int, amount, staking_period: int) -> Stake:
        return self.staking.create_stake(account_id, amount, staking_period)

    def get_stake(self, stake_id: int) -> Stake:
        return self.staking.get_stake(stake_id)

    def list_stakes(self) -> List[Stake]:
        return self.staking.list_stakes()

    def calculate_and_distribute_rewards(self) -> List[Stake]:
        return self.staking.calculate_and_distribute_rewards()

    # --- Side logs ------------------------------------------------------------

    def log_audit_entry(self, action_type: ActionType, affected_account_id: int, details: str) -> AuditLogEntry:
        return self.audit.log(action_type, affected_account_id, details)

    def get_audit_logs(self) -> List[AuditLogEntry]:
        return self.audit.list()

    def create_log_entry(self, account_id: int, message: str) -> NotificationLogEntry:
        return self.notifications.create(account_id, message)

    def get_logs(self) -> List[NotificationLogEntry]:
        return self.notifications.list()
