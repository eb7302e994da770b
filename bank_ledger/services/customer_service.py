"""
Customer service, the customer directory.

The transaction engine only needs two things from it: whether a
customer exists, and how far that customer may overdraw. Any
object offering customer_exists() and overdraft_limit() can take
its place.
"""

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from bank_ledger.exceptions import CustomerReferenceError, DuplicateCustomer
from bank_ledger.logging_config import get_logger, log_action
from bank_ledger.models.account import Account
from bank_ledger.models.customer import Customer
from bank_ledger.models.loan import Loan
from bank_ledger.schemas.customer import CustomerCreate

logger = get_logger(__name__)


class CustomerService:

    def __init__(self, db: Session):
        self.db = db

    def create_customer(self, request: CustomerCreate) -> Customer:
        """Register a new customer. The caller commits."""
        if self.db.get(Customer, request.customer_id):
            raise DuplicateCustomer(
                f"Customer '{request.customer_id}' already exists"
            )

        customer = Customer(**request.model_dump())
        self.db.add(customer)
        self.db.flush()
        log_action(
            logger, "info", "Customer created",
            action="create_customer", resource=customer.customer_id,
        )
        return customer

    def get_customer(self, customer_id: str) -> Customer:
        customer = self.db.get(Customer, customer_id)
        if not customer:
            raise CustomerReferenceError(f"Customer {customer_id} not found")
        return customer

    def customer_exists(self, customer_id: str) -> bool:
        found = self.db.execute(
            select(Customer.customer_id).where(
                Customer.customer_id == customer_id
            )
        ).scalar_one_or_none()
        return found is not None

    def overdraft_limit(self, customer_id: str) -> Decimal:
        """
        How far below zero the customer's accounts may go.

        A customer without a limit on record gets none.
        """
        limit = self.db.execute(
            select(Customer.overdraft_limit).where(
                Customer.customer_id == customer_id
            )
        ).scalar_one_or_none()
        return limit if limit is not None else Decimal("0.00")

    def get_customer_accounts(self, customer_id: str) -> list[Account]:
        self.get_customer(customer_id)
        accounts = self.db.execute(
            select(Account)
            .where(Account.customer_id == customer_id)
            .order_by(Account.account_id)
        ).scalars().all()
        return list(accounts)

    def get_customer_loans(self, customer_id: str) -> list[Loan]:
        self.get_customer(customer_id)
        loans = self.db.execute(
            select(Loan)
            .where(Loan.customer_id == customer_id)
            .order_by(Loan.loan_id)
        ).scalars().all()
        return list(loans)
