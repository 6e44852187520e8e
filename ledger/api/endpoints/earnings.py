from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ledger.core import approval, commission_recorder
from ledger.core.dependencies import Actor, ensure_can_view, get_current_actor, get_current_admin, get_sales_system
from ledger.crud import crud_earning
from ledger.db.session import get_db
from ledger.schemas.earning import Earning as EarningSchema, EarningCreate

router = APIRouter()

@router.post("/", response_model=EarningSchema, status_code=201)
def record_earning(
    earning_in: EarningCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_sales_system)
):
    """
    Record the pending commission for one completed sale and one beneficiary.
    Recording the same sale for the same beneficiary again is refused with 409.
    """
    return commission_recorder.record_earning(
        db,
        beneficiary_id=earning_in.beneficiary_id,
        source_sale_id=earning_in.source_sale_id,
        gross_amount=earning_in.gross_amount,
        rate=earning_in.rate,
        earning_type=earning_in.earning_type,
        course_id=earning_in.course_id,
    )

@router.get("/{earning_id}", response_model=EarningSchema)
def read_earning(
    earning_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    db_earning = crud_earning.get_earning(db, earning_id)
    if not db_earning:
        raise HTTPException(status_code=404, detail="Earning not found")
    ensure_can_view(actor, db_earning.beneficiary_id)
    return db_earning

@router.post("/{earning_id}/approve", response_model=EarningSchema, tags=["Admin Earnings"])
def approve_earning(
    earning_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_admin)
):
    """
    Approve a pending earning, making it withdrawable. Requires admin.
    """
    return approval.approve_earning(db, earning_id=earning_id, actor=actor.name)

@router.post("/{earning_id}/reject", response_model=EarningSchema, tags=["Admin Earnings"])
def reject_earning(
    earning_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_admin)
):
    """
    Reject a pending earning. Rejection is final. Requires admin.
    """
    return approval.reject_earning(db, earning_id=earning_id, actor=actor.name)
