from dataclasses import dataclass
from datetime import datetime

import structlog

from stakeledger.domains.ledger.service import LedgerService
from stakeledger.domains.ledger.state import build_state
from stakeledger.settings import DEBUG
from stakeledger.utils.logging import configure_logging

logger = structlog.get_logger("settlement_job")


@dataclass
class SettlementReport:
    started_at: datetime
    stakes_settled: int = 0
    interest_credits: int = 0


def run_daily_settlement(ledger: LedgerService, apply_interest: bool = True) -> SettlementReport:
    """
    Daily batch: settles matured stakes, then (optionally) credits interest.

    Both steps are best-effort per entity; a storage fault stops the job and leaves
    whatever was committed before it in place.
    """
    report = SettlementReport(started_at=ledger.state.now())
    log = logger.bind(run_at=report.started_at.isoformat())
    log.info("starting_daily_settlement", apply_interest=apply_interest)

    try:
        report.stakes_settled = len(ledger.calculate_and_distribute_rewards())
        if apply_interest:
            report.interest_credits = len(ledger.apply_interest_to_all_accounts())
    except Exception as e:
        log.critical("settlement_failed", error=str(e), stakes_settled=report.stakes_settled)
        raise

    log.info("settlement_completed_successfully", stakes_settled=report.stakes_settled,
             interest_credits=report.interest_credits)
    return report


if __name__ == "__main__":
    configure_logging(debug=DEBUG)
    run_daily_settlement(LedgerService(build_state()))
