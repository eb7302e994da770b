"""
Database models package.

All models must be imported here so that Alembic can discover
them through Base.metadata when generating migrations.
"""

from bank_ledger.models.base import Base
from bank_ledger.models.enums import AccountStatus, TransactionType
from bank_ledger.models.customer import Customer
from bank_ledger.models.account import Account
from bank_ledger.models.transaction_log import TransactionLog
from bank_ledger.models.account_closure import AccountClosure
from bank_ledger.models.loan import Loan

__all__ = [
    "Base",
    "AccountStatus",
    "TransactionType",
    "Customer",
    "Account",
    "TransactionLog",
    "AccountClosure",
    "Loan",
]
