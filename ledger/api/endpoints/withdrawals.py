from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ledger.core.dependencies import Actor, ensure_can_view, get_current_actor
from ledger.crud import crud_withdrawal
from ledger.db.session import get_db
from ledger.schemas.withdrawal import Withdrawal as WithdrawalSchema

router = APIRouter()

@router.get("/{withdrawal_id}", response_model=WithdrawalSchema)
def read_withdrawal(
    withdrawal_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    """
    A single withdrawal with its per-earning allocations, in FIFO order.
    """
    db_withdrawal = crud_withdrawal.get_withdrawal(db, withdrawal_id)
    if not db_withdrawal:
        raise HTTPException(status_code=404, detail="Withdrawal not found")
    ensure_can_view(actor, db_withdrawal.beneficiary_id)
    return db_withdrawal
