"""
Reporting API endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bank_ledger.models.base import get_db
from bank_ledger.services.reporting_service import ReportingService
from bank_ledger.schemas.report import (
    AccountSummaryRow,
    TotalDepositsRow,
    AccountBalanceRow,
)

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("/account-summary", response_model=list[AccountSummaryRow])
def account_summary(db: Session = Depends(get_db)):
    """Customer name, account, balance, and status for every account."""
    return ReportingService(db).customer_account_summary()


@router.get("/total-deposits", response_model=list[TotalDepositsRow])
def total_deposits(db: Session = Depends(get_db)):
    return ReportingService(db).total_deposits_by_account()


@router.get("/above-average-balance", response_model=list[AccountBalanceRow])
def above_average_balance(db: Session = Depends(get_db)):
    return ReportingService(db).accounts_above_average_balance()
