"""
Pydantic schemas for account operations.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from bank_ledger.models.account import REASON_MAX_LENGTH
from bank_ledger.models.enums import AccountStatus


class AccountOpen(BaseModel):
    """
    Request to open an account together with its loan.

    Mirrors the inputs of the original AddAccount procedure,
    minus the status: new accounts always start Active.
    """
    customer_id: str = Field(min_length=1, max_length=12)
    opening_balance: Decimal = Field(
        default=Decimal("0.00"), ge=0, max_digits=18, decimal_places=2
    )
    loan_amount: Decimal = Field(
        default=Decimal("0.00"), ge=0, max_digits=18, decimal_places=2
    )
    interest_rate: Decimal = Field(
        default=Decimal("0.00"), ge=0, max_digits=5, decimal_places=2
    )
    duration_months: int = Field(default=0, ge=0)


class AccountResponse(BaseModel):
    account_id: int
    customer_id: str
    account_balance: Decimal
    account_status: AccountStatus
    reason_for_closure: str | None

    model_config = {"from_attributes": True}


class AccountClose(BaseModel):
    """Request to close one account, or all of a customer's accounts."""
    reason: str = Field(min_length=1, max_length=REASON_MAX_LENGTH)


class ClosureResponse(BaseModel):
    closure_id: int
    account_id: int
    closure_date: datetime
    reason: str

    model_config = {"from_attributes": True}
