"""
Pydantic schemas for deposit and withdrawal operations.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from bank_ledger.models.enums import TransactionType


class DepositRequest(BaseModel):
    account_id: int
    amount: Decimal = Field(gt=0, max_digits=18, decimal_places=2)


class WithdrawalRequest(BaseModel):
    account_id: int
    amount: Decimal = Field(gt=0, max_digits=18, decimal_places=2)


class TransactionLogResponse(BaseModel):
    log_id: int
    account_id: int
    transaction_type: TransactionType
    amount: Decimal
    transaction_date: datetime

    model_config = {"from_attributes": True}
