import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from fastapi.testclient import TestClient
import os
import uuid
from decimal import Decimal

# Add project root to sys.path to allow imports from ledger
import sys
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))


from ledger.main import app
from ledger.db.base import Base
from ledger.db.session import get_db
from ledger.core.security import create_access_token
from ledger.core import approval, commission_recorder
from ledger.crud import crud_beneficiary
from ledger.models.beneficiary import BeneficiaryProfile
from ledger.models.earning import Earning
from ledger.schemas.beneficiary import BeneficiaryCreate

# Use a separate SQLite database for testing
TEST_SQLALCHEMY_DATABASE_URL = "sqlite:///./test_ledger.db"

engine = create_engine(
    TEST_SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False, "timeout": 30}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base.metadata.create_all(bind=engine)

def override_get_db():
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()

app.dependency_overrides[get_db] = override_get_db

@pytest.fixture(scope="session")
def test_engine():
    Base.metadata.create_all(bind=engine)
    yield engine

@pytest.fixture(scope="function")
def db_session(test_engine):
    """
    Provides a database session for each test function.
    Tables are dropped and recreated for every test to keep tests isolated.
    """
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()

@pytest.fixture(scope="function")
def session_factory(db_session):
    """Sessions for worker threads; each thread must use its own."""
    return TestingSessionLocal

@pytest.fixture(scope="function")
def client():
    with TestClient(app) as c:
        yield c

def auth_headers(subject: str, roles=None, beneficiary_id=None) -> dict:
    token = create_access_token(subject=subject, roles=roles, beneficiary_id=beneficiary_id)
    return {"Authorization": f"Bearer {token}"}

@pytest.fixture(scope="function")
def admin_headers() -> dict:
    return auth_headers("admin@example.com", roles=["admin"])

@pytest.fixture(scope="function")
def sales_headers() -> dict:
    return auth_headers("checkout-service", roles=["sales"])

def create_beneficiary(db: Session, *, role: str = "affiliate", rate: Decimal = Decimal("10"), is_active: bool = True) -> BeneficiaryProfile:
    suffix = uuid.uuid4().hex[:6]
    return crud_beneficiary.create_beneficiary(db, obj_in=BeneficiaryCreate(
        name=f"Beneficiary {suffix}",
        email=f"{role}_{suffix}@example.com",
        role=role,
        affiliate_code=f"CODE{suffix.upper()}",
        commission_rate=rate,
        is_active=is_active,
    ))

def create_approved_earning(db: Session, beneficiary: BeneficiaryProfile, *, gross_amount: int, rate: str = "100", sale_id: str = None) -> Earning:
    earning = commission_recorder.record_earning(
        db,
        beneficiary_id=beneficiary.id,
        source_sale_id=sale_id or f"INV-{uuid.uuid4().hex[:8]}",
        gross_amount=gross_amount,
        rate=Decimal(rate),
    )
    return approval.approve_earning(db, earning_id=earning.id, actor="admin@example.com")

@pytest.fixture(scope="function")
def affiliate(db_session: Session) -> BeneficiaryProfile:
    return create_beneficiary(db_session)

@pytest.fixture(scope="function")
def mentor(db_session: Session) -> BeneficiaryProfile:
    return create_beneficiary(db_session, role="mentor", rate=Decimal("30"))
