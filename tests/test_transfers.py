"""Transfer and reversal orchestration."""

import random
import threading
from decimal import Decimal

import pytest
from prometheus_client import REGISTRY

from stakeledger.domains.ledger.errors import InsufficientFunds, InvalidAmount, InvalidState, NotFound
from stakeledger.domains.ledger.models import ActionType, TransactionKind


@pytest.fixture
def pair(ledger):
    a = ledger.create_account("A", 1000)
    b = ledger.create_account("B", 0)
    return a, b


def test_transfer_then_reverse_scenario(ledger, pair):
    a, b = pair

    txn = ledger.transfer_funds(a.id, b.id, 300)
    assert ledger.get_account_balance(a.id) == Decimal("700")
    assert ledger.get_account_balance(b.id) == Decimal("300")
    history = ledger.get_all_transactions()
    assert [(t.sender_id, t.receiver_id, t.amount) for t in history] == [(a.id, b.id, Decimal("300"))]

    reversal = ledger.reverse_transaction(txn.id)
    assert (reversal.sender_id, reversal.receiver_id, reversal.amount) == (b.id, a.id, Decimal("300"))
    assert reversal.kind == TransactionKind.REVERSAL
    assert reversal.reverses_id == txn.id
    assert ledger.get_account_balance(a.id) == Decimal("1000")
    assert ledger.get_account_balance(b.id) == Decimal("0")
    assert len(ledger.get_all_transactions()) == 2
    # the original entry is untouched
    assert ledger.get_transaction(txn.id) == txn


def test_transfer_moves_exact_amount(ledger, pair):
    a, b = pair
    txn = ledger.transfer_funds(a.id, b.id, "0.0001")
    assert txn.amount == Decimal("0.0001")
    assert ledger.get_account_balance(a.id) == Decimal("999.9999")
    assert ledger.get_account_balance(b.id) == Decimal("0.0001")


def test_transfer_whole_balance(ledger, pair):
    a, b = pair
    ledger.transfer_funds(a.id, b.id, 1000)
    assert ledger.get_account_balance(a.id) == Decimal("0")


def test_insufficient_funds_changes_nothing(ledger, pair):
    a, b = pair
    with pytest.raises(InsufficientFunds):
        ledger.transfer_funds(a.id, b.id, "1000.0001")

    assert ledger.get_account_balance(a.id) == Decimal("1000")
    assert ledger.get_account_balance(b.id) == Decimal("0")
    with pytest.raises(NotFound, match="No transactions"):
        ledger.get_all_transactions()


def test_transfer_to_missing_account(ledger, pair):
    a, _ = pair
    with pytest.raises(NotFound):
        ledger.transfer_funds(a.id, 999, 10)
    with pytest.raises(NotFound):
        ledger.transfer_funds(999, a.id, 10)
    assert ledger.get_account_balance(a.id) == Decimal("1000")


@pytest.mark.parametrize("amount", [0, -5, "0.00001", "nan"])
def test_non_positive_amounts_rejected(ledger, pair, amount):
    a, b = pair
    with pytest.raises(InvalidAmount):
        ledger.transfer_funds(a.id, b.id, amount)


def test_self_transfer_rejected(ledger, pair):
    a, _ = pair
    with pytest.raises(InvalidState):
        ledger.transfer_funds(a.id, a.id, 10)


def test_same_tick_transfers_are_all_kept(ledger, pair):
    a, b = pair
    for _ in range(5):
        ledger.transfer_funds(a.id, b.id, 1)

    history = ledger.get_all_transactions()
    assert [t.id for t in history] == [1, 2, 3, 4, 5]
    assert len({t.timestamp for t in history}) == 1


def test_transfer_is_audited(ledger, pair):
    a, b = pair
    ledger.transfer_funds(a.id, b.id, 5)
    last = ledger.get_audit_logs()[-1]
    assert last.action_type == ActionType.TRANSACTION_EXECUTION
    assert last.affected_account_id == a.id


def test_transfer_metrics(ledger, pair):
    a, b = pair
    committed = REGISTRY.get_sample_value("stakeledger_transfers_committed_total") or 0
    rejected = REGISTRY.get_sample_value(
        "stakeledger_transfer_failures_total", {"reason": "insufficient_funds"}) or 0

    ledger.transfer_funds(a.id, b.id, 5)
    with pytest.raises(InsufficientFunds):
        ledger.transfer_funds(b.id, a.id, 50)

    assert REGISTRY.get_sample_value("stakeledger_transfers_committed_total") == committed + 1
    assert REGISTRY.get_sample_value(
        "stakeledger_transfer_failures_total", {"reason": "insufficient_funds"}) == rejected + 1


# --- Reversal -----------------------------------------------------------------

def test_reverse_missing_transaction(ledger):
    with pytest.raises(NotFound):
        ledger.reverse_transaction(1)


def test_transaction_reversed_only_once(ledger, pair):
    a, b = pair
    txn = ledger.transfer_funds(a.id, b.id, 100)
    ledger.reverse_transaction(txn.id)

    with pytest.raises(InvalidState, match="already reversed"):
        ledger.reverse_transaction(txn.id)
    assert ledger.get_account_balance(a.id) == Decimal("1000")


def test_reversal_needs_receiver_funds(ledger, pair):
    a, b = pair
    c = ledger.create_account("C", 0)
    txn = ledger.transfer_funds(a.id, b.id, 100)
    ledger.transfer_funds(b.id, c.id, 60)

    with pytest.raises(InsufficientFunds):
        ledger.reverse_transaction(txn.id)
    assert ledger.get_account_balance(a.id) == Decimal("900")
    assert ledger.get_account_balance(b.id) == Decimal("40")
    assert len(ledger.get_all_transactions()) == 2


def test_reversal_with_deleted_account(ledger, pair):
    a, b = pair
    txn = ledger.transfer_funds(a.id, b.id, 100)
    ledger.delete_account(a.id)

    with pytest.raises(NotFound):
        ledger.reverse_transaction(txn.id)
    assert ledger.get_account_balance(b.id) == Decimal("100")


def test_system_credit_cannot_be_reversed(ledger, pair):
    ledger.apply_interest_to_all_accounts()
    interest = ledger.get_all_transactions()[0]
    with pytest.raises(NotFound):
        ledger.reverse_transaction(interest.id)


def test_reversal_of_a_reversal_redoes_the_transfer(ledger, pair):
    a, b = pair
    txn = ledger.transfer_funds(a.id, b.id, 100)
    reversal = ledger.reverse_transaction(txn.id)
    ledger.reverse_transaction(reversal.id)

    assert ledger.get_account_balance(a.id) == Decimal("900")
    assert ledger.get_account_balance(b.id) == Decimal("100")


# --- Concurrency --------------------------------------------------------------

def test_concurrent_transfers_conserve_funds(ledger):
    accounts = [ledger.create_account(f"acct-{i}", 100).id for i in range(5)]
    total_before = sum(ledger.get_account_balance(i) for i in accounts)
    errors = []

    def worker(seed):
        rng = random.Random(seed)
        for _ in range(50):
            sender, receiver = rng.sample(accounts, 2)
            try:
                ledger.transfer_funds(sender, receiver, rng.randint(1, 40))
            except InsufficientFunds:
                pass
            except Exception as e:  # pragma: no cover - surfaced by the assert below
                errors.append(e)

    threads = [threading.Thread(target=worker, args=(seed,)) for seed in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    balances = [ledger.get_account_balance(i) for i in accounts]
    assert sum(balances) == total_before
    assert all(balance >= 0 for balance in balances)

    history = ledger.get_all_transactions()
    assert len({t.id for t in history}) == len(history)
