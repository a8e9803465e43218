from prometheus_client import Counter


TRANSFERS_COMMITTED = Counter('stakeledger_transfers_committed_total', 'Transfers committed to the ledger')
TRANSFER_FAILURES = Counter('stakeledger_transfer_failures_total', 'Transfers rejected by the ledger', ['reason'])
REVERSALS_COMMITTED = Counter('stakeledger_reversals_committed_total', 'Reversal transactions committed')
STAKES_CREATED = Counter('stakeledger_stakes_created_total', 'Stakes created')
REWARDS_DISTRIBUTED = Counter('stakeledger_rewards_distributed_total', 'Matured stakes settled with a reward payout')
INTEREST_CREDITS = Counter('stakeledger_interest_credits_total', 'Accounts credited with interest')
