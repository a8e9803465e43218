"""Daily settlement job."""

from decimal import Decimal

import pytest

from stakeledger.domains.ledger.settlement import run_daily_settlement
from stakeledger.storage.medium import StorageFault

DAY = 86400


def test_settlement_settles_stakes_then_pays_interest(ledger, clock):
    staker = ledger.create_account("staker", 1500)
    saver = ledger.create_account("saver", 1000)
    ledger.create_stake(staker.id, 500, DAY)
    clock.advance(DAY)

    report = run_daily_settlement(ledger)

    assert report.stakes_settled == 1
    assert report.interest_credits == 2
    # reward 0.0685 lands before interest is computed on 1000.0685
    assert ledger.get_account_balance(staker.id) == Decimal("1010.0692")
    assert ledger.get_account_balance(saver.id) == Decimal("1010")


def test_settlement_without_interest(ledger, clock):
    account = ledger.create_account("saver", 1000)

    report = run_daily_settlement(ledger, apply_interest=False)

    assert report.stakes_settled == 0
    assert report.interest_credits == 0
    assert ledger.get_account_balance(account.id) == Decimal("1000")


def test_settlement_surfaces_storage_faults(ledger, state, monkeypatch):
    ledger.create_account("a", 100)
    ledger.create_account("b", 100)

    def broken_apply(batch):
        raise StorageFault("disk gone")

    monkeypatch.setattr(state.medium, "apply", broken_apply)
    with pytest.raises(StorageFault):
        run_daily_settlement(ledger)
