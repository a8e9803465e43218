from datetime import datetime
from decimal import Decimal
from typing import List

import structlog

from stakeledger import settings
from stakeledger.domains.audit.logs import AuditLog
from stakeledger.domains.ledger.errors import InvalidState, NotFound
from stakeledger.domains.ledger.models import (
    SYSTEM_ACCOUNT_ID, Account, ActionType, Transaction, TransactionKind, quantize, to_amount,
)
from stakeledger.domains.ledger.state import LedgerState
from stakeledger.domains.ledger.transactions import TransactionLog
from stakeledger.domains.staking.engine import StakingEngine
from stakeledger.utils.metrics import INTEREST_CREDITS

logger = structlog.get_logger("account_ledger")


class AccountLedger:

    def __init__(self, state: LedgerState, transactions: TransactionLog, audit: AuditLog, staking: StakingEngine):
        self.state = state
        self.transactions = transactions
        self.audit = audit
        self.staking = staking

    def create_account(self, holder_name: str, initial_balance=Decimal("0")) -> Account:
        balance = to_amount(initial_balance, allow_zero=True)

        with self.state.lock:
            account = Account(
                id=self.state.account_ids.next_id(),
                holder_name=holder_name,
                balance=balance,
                created_at=self.state.now(),
            )
            self.state.accounts.insert(account.id, account)

        logger.info("account_created", account_id=account.id, balance=str(balance))
        self.audit.log(ActionType.ACCOUNT_CREATION, account.id, f"Opened with balance {balance}")
        return account

    def get_account(self, account_id: int) -> Account:
        account = self.state.accounts.get(account_id)
        if account is None:
            raise NotFound(f"Account with id={account_id} not found.")
        return account

    def get_account_balance(self, account_id: int) -> Decimal:
        return self.get_account(account_id).balance

    def get_account_created_at(self, account_id: int) -> datetime:
        return self.get_account(account_id).created_at

    def list_accounts(self) -> List[Account]:
        with self.state.lock:
            return self.state.accounts.values()

    def update_holder_name(self, account_id: int, holder_name: str) -> Account:
        with self.state.lock:
            account = self.get_account(account_id).model_copy(update={"holder_name": holder_name})
            self.state.accounts.insert(account.id, account)

        self.audit.log(ActionType.ACCOUNT_UPDATE, account_id, f"Holder name set to {holder_name!r}")
        return account

    def delete_account(self, account_id: int, cascade: bool = False) -> Account:
        """
        Removes an account. Active stakes block deletion unless `cascade` is set, in which
        case they are settled with no reward in the same batch that removes the account.
        Transactions naming the account are kept.
        """
        with self.state.lock:
            account = self.get_account(account_id)
            active = self.staking.active_stakes_for(account_id)

            if active and not cascade:
                raise InvalidState(
                    f"Account with id={account_id} has {len(active)} active stake(s); settle them or cascade."
                )

            now = self.state.now()
            batch = self.state.new_batch()
            for stake in active:
                self.state.stakes.stage_insert(batch, stake.id, stake.settled(now, Decimal("0.0000")))
            self.state.accounts.stage_remove(batch, account_id)
            self.state.commit(batch)

        released = sum((stake.staked_amount for stake in active), Decimal("0.0000"))
        logger.info("account_deleted", account_id=account_id, settled_stakes=len(active),
                    released_principal=str(released), balance=str(account.balance))
        self.audit.log(
            ActionType.ACCOUNT_DELETION, account_id,
            f"Deleted with balance {account.balance}; {len(active)} stake(s) settled, principal {released} released",
        )
        return account

    def apply_interest_to_all(self) -> List[Transaction]:
        """
        Credits interest to every account as independent steps: a failure leaves the
        accounts already processed credited and the rest untouched.
        """
        credited = []
        for account_id in self.state.accounts.keys():
            with self.state.lock:
                account = self.state.accounts.get(account_id)
                if account is None:
                    continue  # deleted since the key snapshot
                interest = quantize(account.balance * settings.INTEREST_RATE)
                if interest <= 0:
                    continue

                batch = self.state.new_batch()
                txn = self.transactions.stage(batch, SYSTEM_ACCOUNT_ID, account_id, interest,
                                              kind=TransactionKind.INTEREST)
                self.state.accounts.stage_insert(batch, account_id, account.credited(interest))
                self.state.commit(batch)

            INTEREST_CREDITS.inc()
            credited.append(txn)
            self.audit.log(ActionType.INTEREST_APPLICATION, account_id,
                           f"Interest of {interest} credited (transaction {txn.id})")

        logger.info("interest_applied", accounts_credited=len(credited), rate=str(settings.INTEREST_RATE))
        return credited
