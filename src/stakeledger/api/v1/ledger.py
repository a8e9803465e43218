from typing import List

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from starlette.requests import Request

from stakeledger.api.schemas import (
    AuditEntrySchema, BalanceResponse, BatchResultResponse, CreateAccountSchema, NotificationSchema,
    StakeSchema, SuspiciousActivityResponse, TransferSchema, UpdateHolderNameSchema,
)
from stakeledger.domains.ledger.models import Account, AuditLogEntry, NotificationLogEntry, Stake, Transaction
from stakeledger.domains.ledger.service import LedgerService

router = APIRouter()
logger = structlog.get_logger()


def get_ledger(request: Request) -> LedgerService:
    ledger = getattr(request.app.state, "ledger", None)
    if ledger is None:
        logger.error("ledger_unavailable")
        raise HTTPException(status_code=503, detail="Ledger Unavailable")
    return ledger


# Accounts

@router.post("/accounts", response_model=Account, status_code=status.HTTP_201_CREATED)
def create_account(body: CreateAccountSchema, ledger: LedgerService = Depends(get_ledger)):
    return ledger.create_account(body.holder_name, body.initial_balance)


@router.get("/accounts", response_model=List[Account])
def list_accounts(ledger: LedgerService = Depends(get_ledger)):
    return ledger.list_accounts()


@router.get("/accounts/{account_id}", response_model=Account)
def get_account(account_id: int, ledger: LedgerService = Depends(get_ledger)):
    return ledger.get_account(account_id)


@router.get("/accounts/{account_id}/balance", response_model=BalanceResponse)
def get_account_balance(account_id: int, ledger: LedgerService = Depends(get_ledger)):
    return BalanceResponse(account_id=account_id, balance=ledger.get_account_balance(account_id))


@router.patch("/accounts/{account_id}", response_model=Account)
def update_account_holder_name(account_id: int, body: UpdateHolderNameSchema,
                               ledger: LedgerService = Depends(get_ledger)):
    return ledger.update_account_holder_name(account_id, body.holder_name)


@router.delete("/accounts/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_account(account_id: int, cascade: bool = False, ledger: LedgerService = Depends(get_ledger)):
    ledger.delete_account(account_id, cascade=cascade)


@router.get("/accounts/{account_id}/suspicious", response_model=SuspiciousActivityResponse)
def check_for_suspicious_activity(account_id: int, ledger: LedgerService = Depends(get_ledger)):
    return SuspiciousActivityResponse(
        account_id=account_id,
        transaction_ids=ledger.check_for_suspicious_activity(account_id),
    )


@router.post("/interest", response_model=BatchResultResponse)
def apply_interest_to_all_accounts(ledger: LedgerService = Depends(get_ledger)):
    return BatchResultResponse(processed=len(ledger.apply_interest_to_all_accounts()))


# Transactions

@router.post("/transfers", response_model=Transaction, status_code=status.HTTP_201_CREATED)
def transfer_funds(body: TransferSchema, ledger: LedgerService = Depends(get_ledger)):
    return ledger.transfer_funds(body.sender_id, body.receiver_id, body.amount)


@router.get("/transactions", response_model=List[Transaction])
def get_all_transactions(ledger: LedgerService = Depends(get_ledger)):
    return ledger.get_all_transactions()


@router.post("/transactions/{transaction_id}/reverse", response_model=Transaction,
             status_code=status.HTTP_201_CREATED)
def reverse_transaction(transaction_id: int, ledger: LedgerService = Depends(get_ledger)):
    return ledger.reverse_transaction(transaction_id)


# Staking

@router.post("/stakes", response_model=Stake, status_code=status.HTTP_201_CREATED)
def create_stake(body: StakeSchema, ledger: LedgerService = Depends(get_ledger)):
    return ledger.create_stake(body.account_id, body.amount, body.staking_period)


@router.get("/stakes", response_model=List[Stake])
def list_stakes(ledger: LedgerService = Depends(get_ledger)):
    return ledger.list_stakes()


@router.get("/stakes/{stake_id}", response_model=Stake)
def get_stake(stake_id: int, ledger: LedgerService = Depends(get_ledger)):
    return ledger.get_stake(stake_id)


@router.post("/rewards/distribute", response_model=BatchResultResponse)
def calculate_and_distribute_rewards(ledger: LedgerService = Depends(get_ledger)):
    return BatchResultResponse(processed=len(ledger.calculate_and_distribute_rewards()))


# Logs

@router.post("/audit-logs", response_model=AuditLogEntry, status_code=status.HTTP_201_CREATED)
def log_audit_entry(body: AuditEntrySchema, ledger: LedgerService = Depends(get_ledger)):
    return ledger.log_audit_entry(body.action_type, body.affected_account_id, body.details)


@router.get("/audit-logs", response_model=List[AuditLogEntry])
def get_audit_logs(ledger: LedgerService = Depends(get_ledger)):
    return ledger.get_audit_logs()


@router.post("/logs", response_model=NotificationLogEntry, status_code=status.HTTP_201_CREATED)
def create_log_entry(body: NotificationSchema, ledger: LedgerService = Depends(get_ledger)):
    return ledger.create_log_entry(body.account_id, body.message)


@router.get("/logs", response_model=List[NotificationLogEntry])
def get_logs(ledger: LedgerService = Depends(get_ledger)):
    return ledger.get_logs()
