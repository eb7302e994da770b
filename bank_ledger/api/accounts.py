"""
Account API endpoints.

The engine commits each operation itself, so these handlers do
no session management beyond obtaining one. Domain errors are
translated to HTTP responses by the handler registered in main.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from bank_ledger.models.base import get_db
from bank_ledger.services.transaction_engine import (
    TransactionEngine,
    retry_on_conflict,
)
from bank_ledger.schemas.account import (
    AccountOpen,
    AccountResponse,
    AccountClose,
    ClosureResponse,
)
from bank_ledger.schemas.transaction import TransactionLogResponse

router = APIRouter(prefix="/accounts", tags=["Accounts"])


@router.post("", response_model=AccountResponse, status_code=201)
def open_account(
    request: AccountOpen,
    db: Session = Depends(get_db),
):
    """
    Open a new account for an existing customer.

    The loan described by the request is recorded in the same
    transaction.
    """
    engine = TransactionEngine(db)
    return retry_on_conflict(lambda: engine.open_account(
        customer_id=request.customer_id,
        opening_balance=request.opening_balance,
        loan_amount=request.loan_amount,
        interest_rate=request.interest_rate,
        duration_months=request.duration_months,
    ))


@router.get("/{account_id}", response_model=AccountResponse)
def get_account(
    account_id: int,
    db: Session = Depends(get_db),
):
    return TransactionEngine(db).get_account(account_id)


@router.get(
    "/{account_id}/transactions",
    response_model=list[TransactionLogResponse],
)
def get_account_transactions(
    account_id: int,
    db: Session = Depends(get_db),
):
    """Transaction log of one account, oldest first."""
    return TransactionEngine(db).get_account_log(account_id)


@router.post(
    "/{account_id}/close",
    response_model=ClosureResponse,
    status_code=201,
)
def close_account(
    account_id: int,
    request: AccountClose,
    db: Session = Depends(get_db),
):
    """Close an account. Closing twice is rejected."""
    engine = TransactionEngine(db)
    return retry_on_conflict(
        lambda: engine.close_account(account_id, request.reason)
    )


@router.get("/{account_id}/closure", response_model=ClosureResponse)
def get_account_closure(
    account_id: int,
    db: Session = Depends(get_db),
):
    closure = TransactionEngine(db).get_closure(account_id)
    if closure is None:
        raise HTTPException(
            status_code=404, detail=f"Account {account_id} is not closed"
        )
    return closure
