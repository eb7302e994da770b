"""
Deposit and withdrawal API endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bank_ledger.models.base import get_db
from bank_ledger.services.transaction_engine import (
    TransactionEngine,
    retry_on_conflict,
)
from bank_ledger.schemas.transaction import (
    DepositRequest,
    WithdrawalRequest,
    TransactionLogResponse,
)

router = APIRouter(prefix="/transactions", tags=["Transactions"])


@router.post("/deposit", response_model=TransactionLogResponse, status_code=201)
def deposit(
    request: DepositRequest,
    db: Session = Depends(get_db),
):
    """Deposit money into an account."""
    engine = TransactionEngine(db)
    return retry_on_conflict(
        lambda: engine.deposit(request.account_id, request.amount)
    )


@router.post("/withdraw", response_model=TransactionLogResponse, status_code=201)
def withdraw(
    request: WithdrawalRequest,
    db: Session = Depends(get_db),
):
    """Withdraw money from an account, within the overdraft limit."""
    engine = TransactionEngine(db)
    return retry_on_conflict(
        lambda: engine.withdraw(request.account_id, request.amount)
    )
