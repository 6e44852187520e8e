from sqlalchemy.orm import Session, selectinload
from typing import Optional, List

from ledger.models.withdrawal import Withdrawal

def add_withdrawal(db: Session, *, db_obj: Withdrawal) -> Withdrawal:
    """
    Stage a withdrawal together with its allocations. Committing is left to
    the allocator so the earning updates and the withdrawal land together.
    """
    db.add(db_obj)
    db.flush()
    return db_obj

def get_withdrawal(db: Session, withdrawal_id: int) -> Optional[Withdrawal]:
    return (
        db.query(Withdrawal)
        .options(selectinload(Withdrawal.allocations))
        .filter(Withdrawal.id == withdrawal_id)
        .first()
    )

def get_withdrawals_by_beneficiary(
    db: Session, *, beneficiary_id: int, skip: int = 0, limit: int = 100
) -> List[Withdrawal]:
    """
    Get withdrawals for a beneficiary, newest first, with allocations loaded.
    """
    return (
        db.query(Withdrawal)
        .options(selectinload(Withdrawal.allocations))
        .filter(Withdrawal.beneficiary_id == beneficiary_id)
        .order_by(Withdrawal.created_at.desc(), Withdrawal.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )
