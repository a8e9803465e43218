from datetime import timedelta
from decimal import Decimal
from typing import List

import structlog

from stakeledger import settings
from stakeledger.domains.audit.logs import AuditLog
from stakeledger.domains.ledger.errors import InsufficientFunds, InvalidAmount, NotFound
from stakeledger.domains.ledger.models import (
    MAX_STAKING_PERIOD, SYSTEM_ACCOUNT_ID, ActionType, Stake, TransactionKind, quantize, to_amount,
)
from stakeledger.domains.ledger.state import LedgerState
from stakeledger.domains.ledger.transactions import TransactionLog
from stakeledger.utils.metrics import REWARDS_DISTRIBUTED, STAKES_CREATED

logger = structlog.get_logger("staking_engine")

DAYS_PER_YEAR = Decimal(365)
SECONDS_PER_DAY = Decimal(86400)


def calculate_reward(staked_amount: Decimal, staking_period: int,
                     annual_rate: Decimal = settings.REWARD_ANNUAL_RATE) -> Decimal:
    """Simple (non-compounding) daily accrual, rounded half-even to the minor unit."""
    days = Decimal(staking_period) / SECONDS_PER_DAY
    return quantize(staked_amount * (annual_rate / DAYS_PER_YEAR) * days)


class StakingEngine:

    def __init__(self, state: LedgerState, transactions: TransactionLog, audit: AuditLog):
        self.state = state
        self.transactions = transactions
        self.audit = audit

    def create_stake(self, account_id: int, amount, staking_period: int) -> Stake:
        amount = to_amount(amount)
        if isinstance(staking_period, bool) or not isinstance(staking_period, int) or staking_period <= 0:
            raise InvalidAmount(f"Staking period must be a positive number of seconds, got {staking_period!r}.")
        if staking_period > MAX_STAKING_PERIOD:
            raise InvalidAmount(f"Staking period of {staking_period}s is too long.")

        with self.state.lock:
            account = self.state.accounts.get(account_id)
            if account is None:
                raise NotFound(f"Account with id={account_id} not found.")
            if account.balance < amount:
                raise InsufficientFunds("Insufficient funds to stake.")

            now = self.state.now()
            try:
                now + timedelta(seconds=staking_period)
            except OverflowError:
                raise InvalidAmount(f"Stake of {staking_period}s would mature past the end of the calendar.")

            stake = Stake(
                id=self.state.stake_ids.next_id(),
                account_id=account_id,
                staked_amount=amount,
                staking_since=now,
                staking_period=staking_period,
            )
            batch = self.state.new_batch()
            self.state.stakes.stage_insert(batch, stake.id, stake)
            self.state.accounts.stage_insert(batch, account_id, account.debited(amount))
            self.state.commit(batch)

        STAKES_CREATED.inc()
        logger.info("stake_created", stake_id=stake.id, account_id=account_id,
                    amount=str(amount), matures_at=stake.matures_at.isoformat())
        self.audit.log(ActionType.STAKE_CREATION, account_id,
                       f"Staked {amount} for {staking_period}s (stake {stake.id})")
        return stake

    def get_stake(self, stake_id: int) -> Stake:
        stake = self.state.stakes.get(stake_id)
        if stake is None:
            raise NotFound(f"Stake with id={stake_id} not found.")
        return stake

    def list_stakes(self) -> List[Stake]:
        return self.state.stakes.values()

    def active_stakes_for(self, account_id: int) -> List[Stake]:
        return [s for s in self.state.stakes.values() if s.account_id == account_id and s.is_active]

    def calculate_and_distribute_rewards(self) -> List[Stake]:
        """
        Settles every matured active stake: the stake turns Settled, the reward is credited
        and recorded as a system transaction, in one batch per stake. Settled stakes are
        never paid again, so repeated calls are safe.
        """
        settled = []
        for stake_id in self.state.stakes.keys():
            with self.state.lock:
                stake = self.state.stakes.get(stake_id)
                now = self.state.now()
                if stake is None or not stake.is_active or not stake.is_mature(now):
                    continue

                account = self.state.accounts.get(stake.account_id)
                if account is None:
                    logger.warning("reward_skipped_missing_account", stake_id=stake_id, account_id=stake.account_id)
                    continue

                reward = calculate_reward(stake.staked_amount, stake.staking_period)
                closed = stake.settled(now, reward)

                batch = self.state.new_batch()
                self.state.stakes.stage_insert(batch, stake_id, closed)
                if reward > 0:
                    self.transactions.stage(batch, SYSTEM_ACCOUNT_ID, account.id, reward, kind=TransactionKind.REWARD)
                    self.state.accounts.stage_insert(batch, account.id, account.credited(reward))
                self.state.commit(batch)

            REWARDS_DISTRIBUTED.inc()
            settled.append(closed)
            self.audit.log(ActionType.REWARD_DISTRIBUTION, closed.account_id,
                           f"Distributed reward of {reward} for stake {stake_id}")

        logger.info("rewards_distributed", settled=len(settled))
        return settled
