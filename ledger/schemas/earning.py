from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal

from ledger.models.earning import EarningStatus, EarningType

class EarningCreate(BaseModel):
    """Payload sent by the sales system when a commission-bearing sale completes."""
    beneficiary_id: int
    source_sale_id: str = Field(..., min_length=1, max_length=64)
    gross_amount: int = Field(..., ge=0) # Minor currency units
    rate: Decimal = Field(..., ge=0, le=100)
    earning_type: EarningType = EarningType.AFFILIATE
    course_id: Optional[str] = Field(default=None, max_length=64)

class Earning(BaseModel):
    id: int
    beneficiary_id: int
    source_sale_id: str
    earning_type: str
    course_id: Optional[str] = None
    gross_amount: int
    rate: Decimal
    computed_amount: int
    amount_withdrawn: int
    status: EarningStatus
    decided_at: Optional[datetime] = None
    decided_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
