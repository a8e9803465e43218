from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_EVEN
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from stakeledger.domains.ledger.errors import InvalidAmount, InvalidState

SYSTEM_ACCOUNT_ID = 0

# Minor unit: balances and amounts carry 4 decimal places
MINOR_UNIT = Decimal("0.0001")

# Longest period a timedelta can hold, in whole days
MAX_STAKING_PERIOD = timedelta.max.days * 86400


def quantize(value: Decimal) -> Decimal:
    return value.quantize(MINOR_UNIT, rounding=ROUND_HALF_EVEN)


def to_amount(value, allow_zero: bool = False) -> Decimal:
    """
    Normalizes a caller-supplied amount (Decimal, int, str or float) to the ledger's minor unit.
    Floats go through str() so 0.1 stays 0.1000 rather than its binary expansion.
    """
    if isinstance(value, bool):
        raise InvalidAmount(f"Amount must be a number, got {value!r}.")
    try:
        amount = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmount(f"Amount must be a number, got {value!r}.")

    if not amount.is_finite():
        raise InvalidAmount(f"Amount must be finite, got {value!r}.")
    try:
        amount = quantize(amount)
    except InvalidOperation:
        raise InvalidAmount(f"Amount {value!r} exceeds the ledger's precision.")
    if amount < 0 or (amount == 0 and not allow_zero):
        raise InvalidAmount(f"Amount must be positive, got {value!r}.")
    return amount


class ActionType(str, Enum):
    NONE = "none"
    ACCOUNT_CREATION = "account_creation"
    ACCOUNT_UPDATE = "account_update"
    ACCOUNT_DELETION = "account_deletion"
    TRANSACTION_EXECUTION = "transaction_execution"
    TRANSACTION_REVERSAL = "transaction_reversal"
    INTEREST_APPLICATION = "interest_application"
    STAKE_CREATION = "stake_creation"
    REWARD_DISTRIBUTION = "reward_distribution"


class TransactionKind(str, Enum):
    TRANSFER = "transfer"
    INTEREST = "interest"
    REWARD = "reward"
    REVERSAL = "reversal"


class StakeStatus(str, Enum):
    ACTIVE = "active"
    SETTLED = "settled"


class Account(BaseModel):
    id: int
    holder_name: str
    balance: Decimal = Decimal("0.0000")
    created_at: datetime

    def credited(self, amount: Decimal) -> "Account":
        return self.model_copy(update={"balance": self.balance + amount})

    def debited(self, amount: Decimal) -> "Account":
        # Callers check funds first; this guards the invariant itself
        if self.balance < amount:
            raise InvalidState(f"Debit of {amount} would overdraw account {self.id}.")
        return self.model_copy(update={"balance": self.balance - amount})


class Transaction(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    sender_id: int
    receiver_id: int
    amount: Decimal = Field(gt=0)
    timestamp: datetime
    kind: TransactionKind = TransactionKind.TRANSFER
    reverses_id: Optional[int] = None

    def involves(self, account_id: int) -> bool:
        return account_id in (self.sender_id, self.receiver_id)


class Stake(BaseModel):
    """Active -> Settled, once, at or after maturity."""
    id: int
    account_id: int
    staked_amount: Decimal = Field(gt=0)
    staking_since: datetime
    staking_period: int = Field(gt=0, description="Seconds")
    status: StakeStatus = StakeStatus.ACTIVE
    reward: Decimal = Decimal("0.0000")
    settled_at: Optional[datetime] = None

    @property
    def matures_at(self) -> datetime:
        return self.staking_since + timedelta(seconds=self.staking_period)

    @property
    def is_active(self) -> bool:
        return self.status == StakeStatus.ACTIVE

    def is_mature(self, now: datetime) -> bool:
        try:
            return now >= self.matures_at
        except OverflowError:
            # maturity past datetime.max is never reached
            return False

    def settled(self, at: datetime, reward: Decimal) -> "Stake":
        if not self.is_active:
            raise InvalidState(f"Stake {self.id} is already settled.")
        return self.model_copy(update={"status": StakeStatus.SETTLED, "reward": reward, "settled_at": at})


class AuditLogEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    action_type: ActionType = ActionType.NONE
    affected_account_id: int
    timestamp: datetime
    details: str = ""


class NotificationLogEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    account_id: int
    message: str
    timestamp: datetime
