import pytest
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from decimal import Decimal
from datetime import datetime, timedelta

from ledger.crud import crud_beneficiary, crud_earning, crud_withdrawal
from ledger.models.beneficiary import BeneficiaryProfile
from ledger.models.earning import Earning, EarningStatus
from ledger.models.withdrawal import Withdrawal, WithdrawalAllocation
from ledger.schemas.beneficiary import BeneficiaryUpdate
from tests.conftest import create_beneficiary

pytestmark = pytest.mark.crud

def _raw_earning(beneficiary: BeneficiaryProfile, sale_id: str, amount: int, status: str = "approved", withdrawn: int = 0) -> Earning:
    return Earning(
        beneficiary_id=beneficiary.id,
        source_sale_id=sale_id,
        gross_amount=amount,
        rate=Decimal("100"),
        computed_amount=amount,
        amount_withdrawn=withdrawn,
        status=status,
    )

def test_beneficiary_lookup_and_update(db_session: Session, affiliate: BeneficiaryProfile):
    assert crud_beneficiary.get_beneficiary(db_session, affiliate.id).email == affiliate.email
    assert crud_beneficiary.get_beneficiary_by_email(db_session, affiliate.email).id == affiliate.id
    assert crud_beneficiary.get_beneficiary_by_affiliate_code(db_session, affiliate.affiliate_code).id == affiliate.id

    updated = crud_beneficiary.update_beneficiary(db_session, db_obj=affiliate, obj_in=BeneficiaryUpdate(commission_rate=Decimal("15.5")))
    assert updated.commission_rate == Decimal("15.5")
    assert updated.email == affiliate.email

def test_get_beneficiaries_filters_by_role(db_session: Session, affiliate: BeneficiaryProfile, mentor: BeneficiaryProfile):
    mentors = crud_beneficiary.get_beneficiaries(db_session, role="mentor")
    assert [b.id for b in mentors] == [mentor.id]
    assert len(crud_beneficiary.get_beneficiaries(db_session)) == 2

def test_same_sale_cannot_be_stored_twice_for_one_beneficiary(db_session: Session, affiliate: BeneficiaryProfile):
    db_session.add(_raw_earning(affiliate, "INV-1", 100))
    db_session.commit()

    db_session.add(_raw_earning(affiliate, "INV-1", 100))
    with pytest.raises(IntegrityError):
        db_session.commit()
    db_session.rollback()

def test_same_sale_may_credit_different_beneficiaries(db_session: Session, affiliate: BeneficiaryProfile, mentor: BeneficiaryProfile):
    db_session.add(_raw_earning(affiliate, "INV-1", 100))
    db_session.add(_raw_earning(mentor, "INV-1", 300))
    db_session.commit()
    assert crud_earning.get_earning_by_source_sale(db_session, source_sale_id="INV-1", beneficiary_id=mentor.id).computed_amount == 300

def test_withdrawn_amount_cannot_exceed_computed_amount(db_session: Session, affiliate: BeneficiaryProfile):
    db_session.add(_raw_earning(affiliate, "INV-1", 100, withdrawn=101))
    with pytest.raises(IntegrityError):
        db_session.commit()
    db_session.rollback()

def test_withdrawn_amount_cannot_be_negative(db_session: Session, affiliate: BeneficiaryProfile):
    db_session.add(_raw_earning(affiliate, "INV-1", 100, withdrawn=-1))
    with pytest.raises(IntegrityError):
        db_session.commit()
    db_session.rollback()

def test_get_earnings_by_beneficiary_newest_first_with_status_filter(db_session: Session, affiliate: BeneficiaryProfile):
    first = _raw_earning(affiliate, "INV-1", 100, status="pending")
    second = _raw_earning(affiliate, "INV-2", 200, status="approved")
    db_session.add_all([first, second])
    db_session.commit()

    earnings = crud_earning.get_earnings_by_beneficiary(db_session, beneficiary_id=affiliate.id)
    assert [e.id for e in earnings] == [second.id, first.id]

    pending = crud_earning.get_earnings_by_beneficiary(db_session, beneficiary_id=affiliate.id, status="pending")
    assert [e.id for e in pending] == [first.id]

    limited = crud_earning.get_earnings_by_beneficiary(db_session, beneficiary_id=affiliate.id, limit=1)
    assert len(limited) == 1

def test_withdrawable_earnings_are_approved_unconsumed_and_oldest_first(db_session: Session, affiliate: BeneficiaryProfile):
    newer = _raw_earning(affiliate, "INV-NEW", 100)
    older = _raw_earning(affiliate, "INV-OLD", 100)
    partly_used = _raw_earning(affiliate, "INV-PART", 100, withdrawn=40)
    db_session.add_all([
        newer,
        older,
        partly_used,
        _raw_earning(affiliate, "INV-PENDING", 100, status="pending"),
        _raw_earning(affiliate, "INV-REJECTED", 100, status="rejected"),
        _raw_earning(affiliate, "INV-PAID", 100, status="paid", withdrawn=100),
    ])
    db_session.commit()

    now = datetime(2025, 6, 1, 12, 0, 0)
    newer.created_at = now
    older.created_at = now - timedelta(days=2)
    partly_used.created_at = now - timedelta(days=1)
    db_session.commit()

    withdrawable = crud_earning.get_withdrawable_earnings_for_update(db_session, beneficiary_id=affiliate.id)
    assert [e.source_sale_id for e in withdrawable] == ["INV-OLD", "INV-PART", "INV-NEW"]

def test_withdrawable_earnings_fall_back_to_id_order_on_equal_timestamps(db_session: Session, affiliate: BeneficiaryProfile):
    earnings = [_raw_earning(affiliate, f"INV-{i}", 10) for i in range(3)]
    db_session.add_all(earnings)
    db_session.commit()

    stamp = datetime(2025, 1, 1, 12, 0, 0)
    for earning in earnings:
        earning.created_at = stamp
    db_session.commit()

    withdrawable = crud_earning.get_withdrawable_earnings_for_update(db_session, beneficiary_id=affiliate.id)
    assert [e.id for e in withdrawable] == sorted(e.id for e in earnings)

def test_withdrawal_is_stored_with_ordered_allocations(db_session: Session, affiliate: BeneficiaryProfile):
    first = _raw_earning(affiliate, "INV-1", 100)
    second = _raw_earning(affiliate, "INV-2", 100)
    db_session.add_all([first, second])
    db_session.commit()

    withdrawal = Withdrawal(beneficiary_id=affiliate.id, requested_amount=150, processed_by="admin")
    withdrawal.allocations.append(WithdrawalAllocation(earning_id=second.id, position=1, amount_allocated=50))
    withdrawal.allocations.append(WithdrawalAllocation(earning_id=first.id, position=0, amount_allocated=100))
    crud_withdrawal.add_withdrawal(db_session, db_obj=withdrawal)
    db_session.commit()
    db_session.expire_all()

    fetched = crud_withdrawal.get_withdrawal(db_session, withdrawal.id)
    assert [(a.earning_id, a.amount_allocated) for a in fetched.allocations] == [(first.id, 100), (second.id, 50)]

    listed = crud_withdrawal.get_withdrawals_by_beneficiary(db_session, beneficiary_id=affiliate.id)
    assert [w.id for w in listed] == [withdrawal.id]
    other = create_beneficiary(db_session)
    assert crud_withdrawal.get_withdrawals_by_beneficiary(db_session, beneficiary_id=other.id) == []
