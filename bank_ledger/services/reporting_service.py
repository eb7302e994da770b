"""
Reporting service: read-only views over the ledger tables.

These are the teller-facing summaries: who holds what, how much
has been deposited, which balances stand out, and what moved
through a customer's accounts. Nothing here writes.
"""

from decimal import Decimal

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from bank_ledger.exceptions import CustomerReferenceError
from bank_ledger.models.account import Account
from bank_ledger.models.customer import Customer
from bank_ledger.models.enums import TransactionType
from bank_ledger.models.transaction_log import TransactionLog
from bank_ledger.services.loan_calculator import CENT
from bank_ledger.schemas.report import (
    AccountSummaryRow,
    TotalDepositsRow,
    AccountBalanceRow,
)


class ReportingService:

    def __init__(self, db: Session):
        self.db = db

    def customer_account_summary(self) -> list[AccountSummaryRow]:
        """Every account with its holder's name, status, and balance."""
        rows = self.db.execute(
            select(
                Customer.full_name,
                Account.account_id,
                Account.account_balance,
                Account.account_status,
            )
            .join(Account, Customer.customer_id == Account.customer_id)
            .order_by(Account.account_id)
        ).all()
        return [AccountSummaryRow(**row._mapping) for row in rows]

    def total_deposits_by_account(self) -> list[TotalDepositsRow]:
        """Sum of deposit amounts per account that has any deposits."""
        total = func.sum(TransactionLog.amount).label("total_deposits")
        rows = self.db.execute(
            select(TransactionLog.account_id, total)
            .where(TransactionLog.transaction_type == TransactionType.DEPOSIT)
            .group_by(TransactionLog.account_id)
            .order_by(TransactionLog.account_id)
        ).all()
        return [
            TotalDepositsRow(
                account_id=row.account_id,
                total_deposits=Decimal(str(row.total_deposits)).quantize(CENT),
            )
            for row in rows
        ]

    def accounts_above_average_balance(self) -> list[AccountBalanceRow]:
        """Accounts whose balance is strictly above the mean balance."""
        average = select(func.avg(Account.account_balance)).scalar_subquery()
        rows = self.db.execute(
            select(Account.account_id, Account.account_balance)
            .where(Account.account_balance > average)
            .order_by(Account.account_id)
        ).all()
        return [AccountBalanceRow(**row._mapping) for row in rows]

    def customer_transaction_history(
        self, customer_id: str
    ) -> list[TransactionLog]:
        """All log entries of a customer's accounts, newest first."""
        if not self.db.get(Customer, customer_id):
            raise CustomerReferenceError(f"Customer {customer_id} not found")

        account_ids = select(Account.account_id).where(
            Account.customer_id == customer_id
        )
        entries = self.db.execute(
            select(TransactionLog)
            .where(TransactionLog.account_id.in_(account_ids))
            .order_by(
                TransactionLog.transaction_date.desc(),
                TransactionLog.log_id.desc(),
            )
        ).scalars().all()
        return list(entries)
