"""
Customer API endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from bank_ledger.exceptions import DuplicateCustomer, LedgerError
from bank_ledger.models.base import get_db
from bank_ledger.services.customer_service import CustomerService
from bank_ledger.services.reporting_service import ReportingService
from bank_ledger.services.transaction_engine import (
    TransactionEngine,
    retry_on_conflict,
)
from bank_ledger.schemas.account import AccountClose, AccountResponse, ClosureResponse
from bank_ledger.schemas.customer import CustomerCreate, CustomerResponse
from bank_ledger.schemas.loan import LoanResponse
from bank_ledger.schemas.transaction import TransactionLogResponse

router = APIRouter(prefix="/customers", tags=["Customers"])


@router.post("", response_model=CustomerResponse, status_code=201)
def create_customer(
    request: CustomerCreate,
    db: Session = Depends(get_db),
):
    """Register a new customer."""
    service = CustomerService(db)
    try:
        customer = service.create_customer(request)
        db.commit()
        return customer
    except LedgerError:
        db.rollback()
        raise
    except IntegrityError as e:
        # Lost a race with a concurrent insert of the same id
        db.rollback()
        raise DuplicateCustomer(
            f"Customer {request.customer_id} already exists"
        ) from e


@router.get("/{customer_id}", response_model=CustomerResponse)
def get_customer(
    customer_id: str,
    db: Session = Depends(get_db),
):
    return CustomerService(db).get_customer(customer_id)


@router.get("/{customer_id}/accounts", response_model=list[AccountResponse])
def get_customer_accounts(
    customer_id: str,
    db: Session = Depends(get_db),
):
    return CustomerService(db).get_customer_accounts(customer_id)


@router.get("/{customer_id}/loans", response_model=list[LoanResponse])
def get_customer_loans(
    customer_id: str,
    db: Session = Depends(get_db),
):
    return CustomerService(db).get_customer_loans(customer_id)


@router.get(
    "/{customer_id}/transactions",
    response_model=list[TransactionLogResponse],
)
def get_customer_transactions(
    customer_id: str,
    db: Session = Depends(get_db),
):
    """Transaction history across all of the customer's accounts, newest first."""
    return ReportingService(db).customer_transaction_history(customer_id)


@router.post(
    "/{customer_id}/close-accounts",
    response_model=list[ClosureResponse],
)
def close_customer_accounts(
    customer_id: str,
    request: AccountClose,
    db: Session = Depends(get_db),
):
    """
    Close every Active account of a customer.

    One closure record is returned per account closed.
    """
    engine = TransactionEngine(db)
    return retry_on_conflict(
        lambda: engine.close_customer_accounts(customer_id, request.reason)
    )
