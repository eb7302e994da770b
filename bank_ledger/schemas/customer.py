"""
Pydantic schemas for customer operations.
"""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field


class CustomerCreate(BaseModel):
    customer_id: str = Field(min_length=1, max_length=12)
    branch_code: str = Field(min_length=1, max_length=6)
    full_name: str = Field(min_length=1, max_length=50)
    overdraft_limit: Decimal | None = Field(
        default=None, ge=0, max_digits=20, decimal_places=2
    )
    email: str | None = Field(default=None, max_length=100)
    phone_number: str | None = Field(default=None, max_length=15)
    address: str | None = Field(default=None, max_length=255)
    date_of_birth: date | None = None
    nationality: str | None = Field(default=None, max_length=50)
    fathers_name: str | None = Field(default=None, max_length=50)


class CustomerResponse(BaseModel):
    customer_id: str
    branch_code: str
    full_name: str
    overdraft_limit: Decimal | None
    email: str | None
    phone_number: str | None
    address: str | None
    date_of_birth: date | None
    nationality: str | None
    fathers_name: str | None

    model_config = {"from_attributes": True}
