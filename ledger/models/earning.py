import enum

from sqlalchemy import (
    BigInteger, CheckConstraint, Column, DateTime, ForeignKey, Index, Integer,
    Numeric, String, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ledger.db.base_class import Base

class EarningStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    PAID = "paid"

class EarningType(str, enum.Enum):
    AFFILIATE = "affiliate"
    MENTOR_COURSE = "mentor_course"

class Earning(Base):
    __tablename__ = "earning"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    beneficiary_id = Column(Integer, ForeignKey("beneficiary_profile.id"), nullable=False)
    source_sale_id = Column(String(64), nullable=False, index=True)
    earning_type = Column(String(30), nullable=False, default=EarningType.AFFILIATE.value)
    course_id = Column(String(64), nullable=True) # Opaque reference for mentor course earnings

    # All amounts are integer minor currency units.
    gross_amount = Column(BigInteger, nullable=False)
    rate = Column(Numeric(5, 2), nullable=False) # Snapshot of the profile rate at creation, never updated
    computed_amount = Column(BigInteger, nullable=False)
    amount_withdrawn = Column(BigInteger, nullable=False, default=0)

    status = Column(String(20), nullable=False, default=EarningStatus.PENDING.value, index=True)
    decided_at = Column(DateTime, nullable=True)
    decided_by = Column(String(255), nullable=True)

    version_id = Column(Integer, nullable=False)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    beneficiary = relationship("BeneficiaryProfile", backref="earnings")

    __table_args__ = (
        UniqueConstraint("source_sale_id", "beneficiary_id", name="uq_earning_sale_beneficiary"),
        Index("ix_earning_beneficiary_created", "beneficiary_id", "created_at"),
        CheckConstraint("gross_amount >= 0", name="ck_earning_gross_non_negative"),
        CheckConstraint("computed_amount >= 0", name="ck_earning_computed_non_negative"),
        CheckConstraint(
            "amount_withdrawn >= 0 AND amount_withdrawn <= computed_amount",
            name="ck_earning_withdrawn_bounds",
        ),
    )

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def remaining_amount(self) -> int:
        return self.computed_amount - self.amount_withdrawn

    def __repr__(self):
        return (
            f"<Earning(id={self.id}, beneficiary_id={self.beneficiary_id}, sale='{self.source_sale_id}', "
            f"amount={self.computed_amount}, withdrawn={self.amount_withdrawn}, status='{self.status}')>"
        )
