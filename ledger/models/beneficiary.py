from sqlalchemy import Column, Integer, String, Boolean, DateTime, Numeric, CheckConstraint, func
from ledger.db.base_class import Base

class BeneficiaryRole:
    AFFILIATE = "affiliate"
    MENTOR = "mentor"

    ALL = (AFFILIATE, MENTOR)

class BeneficiaryProfile(Base):
    __tablename__ = "beneficiary_profile"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    role = Column(String(20), nullable=False, default=BeneficiaryRole.AFFILIATE, index=True) # "affiliate" or "mentor"
    affiliate_code = Column(String(64), unique=True, nullable=True)
    # Percentage of the sale credited to this beneficiary. Read once, when a sale is recorded.
    commission_rate = Column(Numeric(5, 2), nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("commission_rate >= 0 AND commission_rate <= 100", name="ck_beneficiary_rate_range"),
    )

    def __repr__(self):
        return f"<BeneficiaryProfile(id={self.id}, email='{self.email}', role='{self.role}', rate={self.commission_rate})>"
