"""
Read-only balance figures derived from the earning and withdrawal tables.

Nothing here is stored: every figure is recomputed from the ledger rows on
each call, so there is no running balance that could drift.
"""
from typing import Dict, Iterable

from sqlalchemy import func
from sqlalchemy.orm import Session

from ledger.core.exceptions import BeneficiaryNotFound
from ledger.core.transaction import read_guard
from ledger.crud import crud_beneficiary
from ledger.models.earning import Earning, EarningStatus
from ledger.models.withdrawal import Withdrawal

def remaining_total(earnings: Iterable[Earning]) -> int:
    """Withdrawable amount left across already-loaded earnings."""
    return sum(earning.computed_amount - earning.amount_withdrawn for earning in earnings)

def available_balance(db: Session, beneficiary_id: int) -> int:
    """
    Sum of (computed_amount - amount_withdrawn) over the beneficiary's approved
    earnings. Paid earnings are fully consumed and pending or rejected ones
    never count. Allocations commit atomically, so a reader only ever sees a
    balance from before or after a whole withdrawal.
    """
    with read_guard(db, f"balance for beneficiary {beneficiary_id}"):
        total = (
            db.query(func.coalesce(func.sum(Earning.computed_amount - Earning.amount_withdrawn), 0))
            .filter(
                Earning.beneficiary_id == beneficiary_id,
                Earning.status == EarningStatus.APPROVED.value,
            )
            .scalar()
        )
    return int(total)

def _totals_by_status(db: Session, *filters) -> Dict[str, dict]:
    rows = (
        db.query(
            Earning.status,
            func.count(Earning.id),
            func.coalesce(func.sum(Earning.computed_amount), 0),
            func.coalesce(func.sum(Earning.amount_withdrawn), 0),
        )
        .filter(*filters)
        .group_by(Earning.status)
        .all()
    )
    totals = {status.value: {"count": 0, "computed": 0, "withdrawn": 0} for status in EarningStatus}
    for status, count, computed, withdrawn in rows:
        totals[status] = {"count": int(count), "computed": int(computed), "withdrawn": int(withdrawn)}
    return totals

def _paid_out(db: Session, *filters) -> int:
    return int(db.query(func.coalesce(func.sum(Withdrawal.requested_amount), 0)).filter(*filters).scalar())

def beneficiary_summary(db: Session, beneficiary_id: int) -> dict:
    with read_guard(db, f"summary for beneficiary {beneficiary_id}"):
        beneficiary = crud_beneficiary.get_beneficiary(db, beneficiary_id)
        if beneficiary is None:
            raise BeneficiaryNotFound(beneficiary_id)
        totals = _totals_by_status(db, Earning.beneficiary_id == beneficiary_id)
        paid_out = _paid_out(db, Withdrawal.beneficiary_id == beneficiary_id)

    approved = totals[EarningStatus.APPROVED.value]
    return {
        "beneficiary_id": beneficiary_id,
        "total_earnings": sum(t["count"] for t in totals.values()),
        "total_commission": sum(
            t["computed"] for status, t in totals.items() if status != EarningStatus.REJECTED.value
        ),
        "pending_commission": totals[EarningStatus.PENDING.value]["computed"],
        "available_commission": approved["computed"] - approved["withdrawn"],
        "paid_commission": paid_out,
    }

def ledger_statistics(db: Session) -> dict:
    with read_guard(db, "ledger statistics"):
        totals = _totals_by_status(db)
        paid_out = _paid_out(db)
    approved = totals[EarningStatus.APPROVED.value]
    return {
        "earnings_by_status": {status: t["count"] for status, t in totals.items()},
        "total_commission": sum(
            t["computed"] for status, t in totals.items() if status != EarningStatus.REJECTED.value
        ),
        "pending_commission": totals[EarningStatus.PENDING.value]["computed"],
        "available_commission": approved["computed"] - approved["withdrawn"],
        "paid_commission": paid_out,
    }
