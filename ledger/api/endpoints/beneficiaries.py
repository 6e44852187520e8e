from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from ledger.core import balance, withdrawal_allocator
from ledger.core.dependencies import Actor, ensure_can_view, get_current_actor, get_current_admin
from ledger.crud import crud_beneficiary, crud_earning, crud_withdrawal
from ledger.db.session import get_db
from ledger.models.beneficiary import BeneficiaryProfile
from ledger.models.earning import EarningStatus
from ledger.schemas.beneficiary import Beneficiary, BeneficiaryCreate, BeneficiaryUpdate
from ledger.schemas.earning import Earning as EarningSchema
from ledger.schemas.withdrawal import Balance, BeneficiarySummary, Withdrawal as WithdrawalSchema, WithdrawalCreate

router = APIRouter()

def _get_beneficiary_or_404(db: Session, beneficiary_id: int) -> BeneficiaryProfile:
    db_beneficiary = crud_beneficiary.get_beneficiary(db, beneficiary_id)
    if not db_beneficiary:
        raise HTTPException(status_code=404, detail="Beneficiary not found")
    return db_beneficiary

@router.post("/", response_model=Beneficiary, status_code=201, tags=["Admin Beneficiaries"])
def create_beneficiary(
    beneficiary_in: BeneficiaryCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_admin)
):
    if crud_beneficiary.get_beneficiary_by_email(db, email=beneficiary_in.email):
        raise HTTPException(status_code=400, detail="A beneficiary with this email already exists.")
    if beneficiary_in.affiliate_code and crud_beneficiary.get_beneficiary_by_affiliate_code(db, beneficiary_in.affiliate_code):
        raise HTTPException(status_code=400, detail="This affiliate code is already taken.")
    return crud_beneficiary.create_beneficiary(db=db, obj_in=beneficiary_in)

@router.get("/", response_model=List[Beneficiary], tags=["Admin Beneficiaries"])
def read_beneficiaries(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_admin),
    role: Optional[str] = Query(None, pattern="^(affiliate|mentor)$"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=200)
):
    return crud_beneficiary.get_beneficiaries(db, role=role, skip=skip, limit=limit)

@router.get("/{beneficiary_id}", response_model=Beneficiary)
def read_beneficiary(
    beneficiary_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    ensure_can_view(actor, beneficiary_id)
    return _get_beneficiary_or_404(db, beneficiary_id)

@router.patch("/{beneficiary_id}", response_model=Beneficiary, tags=["Admin Beneficiaries"])
def update_beneficiary(
    beneficiary_id: int,
    beneficiary_in: BeneficiaryUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_admin)
):
    """
    Update a profile. A new commission_rate applies to sales recorded from
    now on; earnings already in the ledger keep the rate they were created with.
    """
    db_beneficiary = _get_beneficiary_or_404(db, beneficiary_id)
    if beneficiary_in.email and beneficiary_in.email != db_beneficiary.email:
        if crud_beneficiary.get_beneficiary_by_email(db, email=beneficiary_in.email):
            raise HTTPException(status_code=400, detail="A beneficiary with this email already exists.")
    if beneficiary_in.affiliate_code and beneficiary_in.affiliate_code != db_beneficiary.affiliate_code:
        if crud_beneficiary.get_beneficiary_by_affiliate_code(db, beneficiary_in.affiliate_code):
            raise HTTPException(status_code=400, detail="This affiliate code is already taken.")
    return crud_beneficiary.update_beneficiary(db=db, db_obj=db_beneficiary, obj_in=beneficiary_in)

@router.get("/{beneficiary_id}/earnings", response_model=List[EarningSchema])
def read_beneficiary_earnings(
    beneficiary_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    status: Optional[EarningStatus] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=200)
):
    """
    Earnings for a beneficiary, newest first, optionally filtered by status.
    """
    ensure_can_view(actor, beneficiary_id)
    _get_beneficiary_or_404(db, beneficiary_id)
    return crud_earning.get_earnings_by_beneficiary(
        db, beneficiary_id=beneficiary_id, status=status.value if status else None, skip=skip, limit=limit
    )

@router.get("/{beneficiary_id}/balance", response_model=Balance)
def read_beneficiary_balance(
    beneficiary_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    ensure_can_view(actor, beneficiary_id)
    _get_beneficiary_or_404(db, beneficiary_id)
    return Balance(beneficiary_id=beneficiary_id, available_balance=balance.available_balance(db, beneficiary_id))

@router.get("/{beneficiary_id}/summary", response_model=BeneficiarySummary)
def read_beneficiary_summary(
    beneficiary_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    ensure_can_view(actor, beneficiary_id)
    return balance.beneficiary_summary(db, beneficiary_id)

@router.post("/{beneficiary_id}/withdrawals", response_model=WithdrawalSchema, status_code=201, tags=["Admin Withdrawals"])
def create_withdrawal(
    beneficiary_id: int,
    withdrawal_in: WithdrawalCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_admin)
):
    """
    Pay out part of a beneficiary's available balance, settling the oldest
    approved earnings first. Requires admin.
    """
    return withdrawal_allocator.withdraw(
        db,
        beneficiary_id=beneficiary_id,
        requested_amount=withdrawal_in.amount,
        actor=actor.name,
        note=withdrawal_in.note,
    )

@router.get("/{beneficiary_id}/withdrawals", response_model=List[WithdrawalSchema])
def read_beneficiary_withdrawals(
    beneficiary_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=200)
):
    ensure_can_view(actor, beneficiary_id)
    _get_beneficiary_or_404(db, beneficiary_id)
    return crud_withdrawal.get_withdrawals_by_beneficiary(db, beneficiary_id=beneficiary_id, skip=skip, limit=limit)
