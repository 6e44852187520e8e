import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from ledger.core import approval
from ledger.core.balance import available_balance, beneficiary_summary, ledger_statistics
from ledger.core.commission_recorder import record_earning, record_sale_commission
from ledger.core.exceptions import BeneficiaryNotFound, PersistenceFailure
from ledger.core.withdrawal_allocator import withdraw
from ledger.crud import crud_beneficiary
from ledger.models.beneficiary import BeneficiaryProfile
from tests.conftest import create_approved_earning

pytestmark = pytest.mark.core

@pytest.fixture
def mixed_ledger(db_session: Session, affiliate: BeneficiaryProfile):
    """approved 100 + approved 50 + pending 70 + rejected 30, then 120 withdrawn."""
    create_approved_earning(db_session, affiliate, gross_amount=100)
    create_approved_earning(db_session, affiliate, gross_amount=50)
    record_earning(db_session, beneficiary_id=affiliate.id, source_sale_id="INV-PENDING", gross_amount=70, rate="100")
    rejected = record_earning(db_session, beneficiary_id=affiliate.id, source_sale_id="INV-REJECTED", gross_amount=30, rate="100")
    approval.reject_earning(db_session, earning_id=rejected.id, actor="admin")
    withdraw(db_session, beneficiary_id=affiliate.id, requested_amount=120)
    return affiliate

def test_available_balance_without_earnings(db_session: Session, affiliate: BeneficiaryProfile):
    assert available_balance(db_session, affiliate.id) == 0

def test_available_balance_counts_only_unconsumed_approved(db_session: Session, mixed_ledger: BeneficiaryProfile):
    assert available_balance(db_session, mixed_ledger.id) == 30

def test_available_balance_is_per_beneficiary(db_session: Session, mixed_ledger: BeneficiaryProfile, mentor: BeneficiaryProfile):
    create_approved_earning(db_session, mentor, gross_amount=999)
    assert available_balance(db_session, mixed_ledger.id) == 30
    assert available_balance(db_session, mentor.id) == 999

def test_beneficiary_summary(db_session: Session, mixed_ledger: BeneficiaryProfile):
    summary = beneficiary_summary(db_session, mixed_ledger.id)
    assert summary == {
        "beneficiary_id": mixed_ledger.id,
        "total_earnings": 4,
        "total_commission": 220, # rejected earnings are not commission
        "pending_commission": 70,
        "available_commission": 30,
        "paid_commission": 120,
    }

def test_beneficiary_summary_unknown_beneficiary(db_session: Session):
    with pytest.raises(BeneficiaryNotFound):
        beneficiary_summary(db_session, 9999)

def test_ledger_statistics(db_session: Session, mixed_ledger: BeneficiaryProfile, mentor: BeneficiaryProfile):
    create_approved_earning(db_session, mentor, gross_amount=500)
    stats = ledger_statistics(db_session)
    assert stats["earnings_by_status"] == {"pending": 1, "approved": 2, "rejected": 1, "paid": 1}
    assert stats["total_commission"] == 720
    assert stats["pending_commission"] == 70
    assert stats["available_commission"] == 530
    assert stats["paid_commission"] == 120

def test_ledger_statistics_on_empty_ledger(db_session: Session):
    stats = ledger_statistics(db_session)
    assert stats["earnings_by_status"] == {"pending": 0, "approved": 0, "rejected": 0, "paid": 0}
    assert stats["paid_commission"] == 0

def _unreachable_storage(*args, **kwargs):
    raise OperationalError("SELECT", {}, Exception("unable to open database file"))

def test_storage_errors_on_reads_become_persistence_failures(db_session: Session, affiliate: BeneficiaryProfile, monkeypatch):
    beneficiary_id = affiliate.id
    monkeypatch.setattr(db_session, "query", _unreachable_storage)

    with pytest.raises(PersistenceFailure):
        available_balance(db_session, beneficiary_id)
    with pytest.raises(PersistenceFailure):
        beneficiary_summary(db_session, beneficiary_id)
    with pytest.raises(PersistenceFailure):
        ledger_statistics(db_session)

def test_storage_errors_on_pre_checks_become_persistence_failures(db_session: Session, affiliate: BeneficiaryProfile, monkeypatch):
    beneficiary_id = affiliate.id
    monkeypatch.setattr(crud_beneficiary, "get_beneficiary", _unreachable_storage)

    with pytest.raises(PersistenceFailure):
        withdraw(db_session, beneficiary_id=beneficiary_id, requested_amount=10)
    with pytest.raises(PersistenceFailure):
        record_earning(db_session, beneficiary_id=beneficiary_id, source_sale_id="INV-DOWN", gross_amount=100, rate="10")
    with pytest.raises(PersistenceFailure):
        record_sale_commission(db_session, beneficiary_id=beneficiary_id, source_sale_id="INV-DOWN", gross_amount=100)
