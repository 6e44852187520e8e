from sqlalchemy.orm import Session
from typing import Optional, List

from ledger.models.beneficiary import BeneficiaryProfile
from ledger.schemas.beneficiary import BeneficiaryCreate, BeneficiaryUpdate

def get_beneficiary(db: Session, beneficiary_id: int) -> Optional[BeneficiaryProfile]:
    return db.query(BeneficiaryProfile).filter(BeneficiaryProfile.id == beneficiary_id).first()

def get_beneficiary_by_email(db: Session, email: str) -> Optional[BeneficiaryProfile]:
    return db.query(BeneficiaryProfile).filter(BeneficiaryProfile.email == email).first()

def get_beneficiary_by_affiliate_code(db: Session, affiliate_code: str) -> Optional[BeneficiaryProfile]:
    return db.query(BeneficiaryProfile).filter(BeneficiaryProfile.affiliate_code == affiliate_code).first()

def create_beneficiary(db: Session, *, obj_in: BeneficiaryCreate) -> BeneficiaryProfile:
    db_obj = BeneficiaryProfile(**obj_in.model_dump())
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj

def update_beneficiary(db: Session, *, db_obj: BeneficiaryProfile, obj_in: BeneficiaryUpdate) -> BeneficiaryProfile:
    """
    Update a beneficiary profile. Changing commission_rate only affects sales
    recorded afterwards; existing earnings keep their own rate snapshot.
    """
    update_data = obj_in.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(db_obj, field, value)

    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj

def get_beneficiaries(
    db: Session, *, role: Optional[str] = None, skip: int = 0, limit: int = 100
) -> List[BeneficiaryProfile]:
    query = db.query(BeneficiaryProfile)
    if role:
        query = query.filter(BeneficiaryProfile.role == role)
    return query.order_by(BeneficiaryProfile.created_at.desc(), BeneficiaryProfile.id.desc()).offset(skip).limit(limit).all()
