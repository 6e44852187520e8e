from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

class WithdrawalCreate(BaseModel):
    amount: int = Field(..., gt=0) # Minor currency units
    note: Optional[str] = None

class WithdrawalAllocation(BaseModel):
    earning_id: int
    position: int
    amount_allocated: int

    class Config:
        from_attributes = True

class Withdrawal(BaseModel):
    id: int
    beneficiary_id: int
    requested_amount: int
    processed_by: Optional[str] = None
    note: Optional[str] = None
    created_at: datetime
    allocations: List[WithdrawalAllocation] = []

    class Config:
        from_attributes = True

class Balance(BaseModel):
    beneficiary_id: int
    available_balance: int

class BeneficiarySummary(BaseModel):
    beneficiary_id: int
    total_earnings: int
    total_commission: int
    pending_commission: int
    available_commission: int
    paid_commission: int

class LedgerStatistics(BaseModel):
    earnings_by_status: dict
    total_commission: int
    pending_commission: int
    available_commission: int
    paid_commission: int
