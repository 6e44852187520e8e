import logging
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from ledger.core import config
from ledger.core.balance import remaining_total
from ledger.core.exceptions import BeneficiaryNotFound, InsufficientBalance, InvalidWithdrawalAmount
from ledger.core.locks import beneficiary_locks
from ledger.core.transaction import read_guard, run_with_retry, write_transaction
from ledger.crud import crud_beneficiary, crud_earning, crud_withdrawal
from ledger.models.earning import Earning, EarningStatus
from ledger.models.withdrawal import Withdrawal, WithdrawalAllocation

logger = logging.getLogger(__name__)

def plan_fifo_allocation(earnings: Sequence[Earning], requested_amount: int) -> List[Tuple[Earning, int]]:
    """
    Split requested_amount over earnings in the order given (oldest first),
    taking as much as each earning has left before moving to the next one.
    """
    plan = []
    remaining_request = requested_amount
    for earning in earnings:
        if remaining_request == 0:
            break
        take = min(earning.remaining_amount, remaining_request)
        if take <= 0:
            continue
        plan.append((earning, take))
        remaining_request -= take

    if remaining_request:
        raise ValueError(f"Earnings cover only {requested_amount - remaining_request} of {requested_amount}")
    return plan

def _allocate(db: Session, beneficiary_id: int, requested_amount: int, actor: Optional[str], note: Optional[str]) -> Withdrawal:
    with write_transaction(db, f"withdrawal for beneficiary {beneficiary_id}"):
        earnings = crud_earning.get_withdrawable_earnings_for_update(db, beneficiary_id=beneficiary_id)
        available = remaining_total(earnings)
        if requested_amount > available:
            raise InsufficientBalance(beneficiary_id, requested_amount, available)

        withdrawal = Withdrawal(
            beneficiary_id=beneficiary_id,
            requested_amount=requested_amount,
            processed_by=actor,
            note=note,
        )
        for position, (earning, amount) in enumerate(plan_fifo_allocation(earnings, requested_amount)):
            earning.amount_withdrawn += amount
            if earning.amount_withdrawn == earning.computed_amount:
                earning.status = EarningStatus.PAID.value
            withdrawal.allocations.append(
                WithdrawalAllocation(earning_id=earning.id, position=position, amount_allocated=amount)
            )
        crud_withdrawal.add_withdrawal(db, db_obj=withdrawal)
    db.refresh(withdrawal)
    return withdrawal

def withdraw(
    db: Session,
    *,
    beneficiary_id: int,
    requested_amount: int,
    actor: Optional[str] = None,
    note: Optional[str] = None,
) -> Withdrawal:
    """
    Pay out requested_amount from the beneficiary's approved earnings.

    The balance check, the FIFO walk and every earning update run under the
    beneficiary's exclusive lock and commit as one transaction, so two
    withdrawals can never both spend the same balance. On any failure
    nothing is written. Lock contention is retried with backoff.
    """
    if isinstance(requested_amount, bool) or not isinstance(requested_amount, int) or requested_amount <= 0:
        raise InvalidWithdrawalAmount(beneficiary_id, requested_amount)
    with read_guard(db, f"withdrawal for beneficiary {beneficiary_id}"):
        beneficiary = crud_beneficiary.get_beneficiary(db, beneficiary_id)
    if beneficiary is None:
        raise BeneficiaryNotFound(beneficiary_id)

    def _attempt() -> Withdrawal:
        with beneficiary_locks.hold(beneficiary_id, timeout=config.LEDGER_LOCK_TIMEOUT_SECONDS):
            return _allocate(db, beneficiary_id, requested_amount, actor, note)

    try:
        withdrawal = run_with_retry(db, f"withdrawal for beneficiary {beneficiary_id}", _attempt)
    except InsufficientBalance as e:
        logger.info(f"Withdrawal of {requested_amount} for beneficiary ID: {beneficiary_id} refused, available: {e.available_amount}")
        raise

    logger.info(
        f"Withdrawal ID: {withdrawal.id} of {requested_amount} for beneficiary ID: {beneficiary_id} "
        f"allocated over {len(withdrawal.allocations)} earning(s)"
    )
    return withdrawal
