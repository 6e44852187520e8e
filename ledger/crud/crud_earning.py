from sqlalchemy.orm import Session
from typing import Optional, List

from ledger.models.earning import Earning, EarningStatus

def get_earning(db: Session, earning_id: int) -> Optional[Earning]:
    return db.query(Earning).filter(Earning.id == earning_id).first()

def get_earning_for_update(db: Session, earning_id: int) -> Optional[Earning]:
    """
    Get a single earning with a row-level lock held until the transaction ends.
    populate_existing makes sure a stale copy in the identity map is refreshed.
    """
    return (
        db.query(Earning)
        .filter(Earning.id == earning_id)
        .with_for_update()
        .populate_existing()
        .first()
    )

def get_earning_by_source_sale(db: Session, *, source_sale_id: str, beneficiary_id: int) -> Optional[Earning]:
    return (
        db.query(Earning)
        .filter(Earning.source_sale_id == source_sale_id, Earning.beneficiary_id == beneficiary_id)
        .first()
    )

def add_earning(db: Session, *, db_obj: Earning) -> Earning:
    """
    Stage a new earning in the current transaction. The caller commits,
    so a failed insert never leaves half a write behind.
    """
    db.add(db_obj)
    db.flush()
    return db_obj

def get_earnings_by_beneficiary(
    db: Session, *, beneficiary_id: int, status: Optional[str] = None, skip: int = 0, limit: int = 100
) -> List[Earning]:
    """
    Get earnings for a beneficiary, newest first, optionally filtered by status.
    """
    query = db.query(Earning).filter(Earning.beneficiary_id == beneficiary_id)
    if status:
        query = query.filter(Earning.status == status)
    return query.order_by(Earning.created_at.desc(), Earning.id.desc()).offset(skip).limit(limit).all()

def get_withdrawable_earnings_for_update(db: Session, *, beneficiary_id: int) -> List[Earning]:
    """
    Approved earnings that still have something left to withdraw, oldest first.
    The rows stay locked until the surrounding transaction commits or rolls back.
    Ties on created_at are broken by id so the order is deterministic.
    """
    return (
        db.query(Earning)
        .filter(
            Earning.beneficiary_id == beneficiary_id,
            Earning.status == EarningStatus.APPROVED.value,
            Earning.amount_withdrawn < Earning.computed_amount,
        )
        .order_by(Earning.created_at.asc(), Earning.id.asc())
        .with_for_update()
        .populate_existing()
        .all()
    )
