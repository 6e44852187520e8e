from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional
from datetime import datetime
from decimal import Decimal

class BeneficiaryBase(BaseModel):
    name: str = Field(..., max_length=255)
    email: EmailStr
    role: str = Field(default="affiliate", pattern="^(affiliate|mentor)$")
    affiliate_code: Optional[str] = Field(default=None, max_length=64)
    commission_rate: Decimal = Field(default=Decimal("0"), ge=0, le=100) # Percent of the sale
    is_active: bool = True

class BeneficiaryCreate(BeneficiaryBase):
    pass

class BeneficiaryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=255)
    email: Optional[EmailStr] = None
    affiliate_code: Optional[str] = Field(default=None, max_length=64)
    commission_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)
    is_active: Optional[bool] = None

    @field_validator("name", "email", "commission_rate", "is_active")
    @classmethod
    def not_null(cls, value):
        # Omit a field to leave it unchanged; these columns cannot be cleared.
        if value is None:
            raise ValueError("must not be null")
        return value

class Beneficiary(BeneficiaryBase):
    id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
