"""
Typed errors raised by the ledger.

Every error carries a machine readable ``code`` and a ``user_message`` that is
safe to show to an operator. Callers catch by type, never by message text.
"""
from typing import Optional


class LedgerError(Exception):
    code = "LEDGER_ERROR"
    user_message = "The ledger could not complete the request."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.user_message)


class EarningNotFound(LedgerError):
    code = "EARNING_NOT_FOUND"
    user_message = "Earning not found."

    def __init__(self, earning_id: int):
        self.earning_id = earning_id
        super().__init__(f"Earning {earning_id} not found")


class BeneficiaryNotFound(LedgerError):
    code = "BENEFICIARY_NOT_FOUND"
    user_message = "Beneficiary not found."

    def __init__(self, beneficiary_id: int):
        self.beneficiary_id = beneficiary_id
        super().__init__(f"Beneficiary {beneficiary_id} not found")


class InvalidEarningInput(LedgerError):
    code = "INVALID_EARNING_INPUT"
    user_message = "The earning amount or rate is invalid."


class InvalidStateTransition(LedgerError):
    code = "INVALID_STATE_TRANSITION"
    _PAST_TENSE = {"approve": "approved", "reject": "rejected"}

    def __init__(self, earning_id: int, current_status: str, decision: str):
        self.earning_id = earning_id
        self.current_status = current_status
        self.decision = decision
        self.user_message = f"Earning {earning_id} is already {current_status} and cannot be {self._PAST_TENSE.get(decision, decision)}."
        super().__init__(self.user_message)


class InsufficientBalance(LedgerError):
    code = "INSUFFICIENT_BALANCE"

    def __init__(self, beneficiary_id: int, requested_amount: int, available_amount: int):
        self.beneficiary_id = beneficiary_id
        self.requested_amount = requested_amount
        self.available_amount = available_amount
        self.user_message = (
            f"Requested amount {requested_amount} exceeds the available balance {available_amount}."
        )
        super().__init__(self.user_message)


class InvalidWithdrawalAmount(InsufficientBalance):
    code = "INVALID_WITHDRAWAL_AMOUNT"

    def __init__(self, beneficiary_id: int, requested_amount: int):
        super().__init__(beneficiary_id, requested_amount, 0)
        self.user_message = "Withdrawal amount must be greater than zero."
        self.args = (self.user_message,)


class DuplicateSourceSale(LedgerError):
    code = "DUPLICATE_SOURCE_SALE"

    def __init__(self, source_sale_id: str, beneficiary_id: int, existing_earning_id: Optional[int] = None):
        self.source_sale_id = source_sale_id
        self.beneficiary_id = beneficiary_id
        self.existing_earning_id = existing_earning_id
        self.user_message = (
            f"An earning for sale {source_sale_id} and beneficiary {beneficiary_id} already exists."
        )
        super().__init__(self.user_message)


class ConcurrencyConflict(LedgerError):
    """Lock or transaction contention. Retrying the whole operation is safe."""
    code = "CONCURRENCY_CONFLICT"
    user_message = "The ledger is busy, please try again."


class PersistenceFailure(LedgerError):
    """Storage failed; the transaction was rolled back and nothing was written."""
    code = "PERSISTENCE_FAILURE"
    user_message = "Something went wrong, please try again."
