"""Business logic services."""

from bank_ledger.services.closure_watcher import ClosureWatcher
from bank_ledger.services.customer_service import CustomerService
from bank_ledger.services.loan_calculator import total_payable
from bank_ledger.services.reporting_service import ReportingService
from bank_ledger.services.transaction_engine import (
    TransactionEngine,
    retry_on_conflict,
)

__all__ = [
    "ClosureWatcher",
    "CustomerService",
    "ReportingService",
    "TransactionEngine",
    "retry_on_conflict",
    "total_payable",
]
