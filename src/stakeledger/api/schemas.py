from decimal import Decimal
from typing import List

from pydantic import BaseModel, Field

from stakeledger.domains.ledger.models import MAX_STAKING_PERIOD, ActionType


class CreateAccountSchema(BaseModel):
    holder_name: str = Field(..., min_length=1, max_length=255)
    initial_balance: Decimal = Field(default=Decimal("0"), ge=0)


class UpdateHolderNameSchema(BaseModel):
    holder_name: str = Field(..., min_length=1, max_length=255)


class TransferSchema(BaseModel):
    sender_id: int = Field(..., ge=1)
    receiver_id: int = Field(..., ge=1)
    amount: Decimal = Field(..., gt=0)


class StakeSchema(BaseModel):
    account_id: int = Field(..., ge=1)
    amount: Decimal = Field(..., gt=0)
    staking_period: int = Field(..., gt=0, le=MAX_STAKING_PERIOD, description="Staking period in seconds")


class AuditEntrySchema(BaseModel):
    action_type: ActionType = ActionType.NONE
    affected_account_id: int = Field(..., ge=0)
    details: str = ""


class NotificationSchema(BaseModel):
    account_id: int = Field(..., ge=0)
    message: str = Field(..., min_length=1)


class BalanceResponse(BaseModel):
    account_id: int
    balance: Decimal


class SuspiciousActivityResponse(BaseModel):
    account_id: int
    transaction_ids: List[int]


class BatchResultResponse(BaseModel):
    status: str = "ok"
    processed: int
