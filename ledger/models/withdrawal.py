from sqlalchemy import BigInteger, CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ledger.db.base_class import Base

class Withdrawal(Base):
    __tablename__ = "withdrawal"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    beneficiary_id = Column(Integer, ForeignKey("beneficiary_profile.id"), nullable=False)
    requested_amount = Column(BigInteger, nullable=False)
    processed_by = Column(String(255), nullable=True) # Actor who submitted the payout
    note = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    # Allocations are written once, together with the withdrawal, and never edited.
    allocations = relationship(
        "WithdrawalAllocation",
        back_populates="withdrawal",
        order_by="WithdrawalAllocation.position",
        cascade="save-update, merge",
    )
    beneficiary = relationship("BeneficiaryProfile", backref="withdrawals")

    __table_args__ = (
        Index("ix_withdrawal_beneficiary_created", "beneficiary_id", "created_at"),
        CheckConstraint("requested_amount > 0", name="ck_withdrawal_amount_positive"),
    )

    def __repr__(self):
        return f"<Withdrawal(id={self.id}, beneficiary_id={self.beneficiary_id}, amount={self.requested_amount})>"

class WithdrawalAllocation(Base):
    __tablename__ = "withdrawal_allocation"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    withdrawal_id = Column(Integer, ForeignKey("withdrawal.id"), nullable=False, index=True)
    earning_id = Column(Integer, ForeignKey("earning.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False) # FIFO order inside the withdrawal
    amount_allocated = Column(BigInteger, nullable=False)

    withdrawal = relationship("Withdrawal", back_populates="allocations")
    earning = relationship("Earning", backref="allocations")

    __table_args__ = (
        CheckConstraint("amount_allocated > 0", name="ck_allocation_amount_positive"),
    )

    def __repr__(self):
        return f"<WithdrawalAllocation(withdrawal_id={self.withdrawal_id}, earning_id={self.earning_id}, amount={self.amount_allocated})>"
