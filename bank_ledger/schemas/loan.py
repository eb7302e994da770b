"""
Pydantic schemas for loan records.
"""

from decimal import Decimal

from pydantic import BaseModel


class LoanResponse(BaseModel):
    loan_id: int
    customer_id: str
    loan_amount: Decimal
    loan_to_be_paid: Decimal
    interest: Decimal
    duration: int

    model_config = {"from_attributes": True}
