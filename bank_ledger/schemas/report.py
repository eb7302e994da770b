"""
Pydantic schemas for the read-only reports.
"""

from decimal import Decimal

from pydantic import BaseModel

from bank_ledger.models.enums import AccountStatus


class AccountSummaryRow(BaseModel):
    full_name: str
    account_id: int
    account_balance: Decimal
    account_status: AccountStatus


class TotalDepositsRow(BaseModel):
    account_id: int
    total_deposits: Decimal


class AccountBalanceRow(BaseModel):
    account_id: int
    account_balance: Decimal
