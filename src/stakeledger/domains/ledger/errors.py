class LedgerError(Exception):
    """Base for errors returned to the caller of a ledger operation."""
    code = "ledger_error"
    status_code = 400

    def __init__(self, msg: str):
        super().__init__(msg)
        self.msg = msg


class NotFound(LedgerError):
    code = "not_found"
    status_code = 404


class InsufficientFunds(LedgerError):
    code = "insufficient_funds"
    status_code = 409


class InvalidAmount(LedgerError):
    code = "invalid_amount"
    status_code = 422


class InvalidState(LedgerError):
    code = "invalid_state"
    status_code = 409
