"""
Transaction engine for account opening, deposits, withdrawals, and closures.

Every public operation is one unit of work:
1. Validates its inputs (nothing is touched if they are bad)
2. Locks the account row
3. Applies a guarded UPDATE whose WHERE clause re-checks the
   business rule (not closed, enough funds) inside the database
4. Appends the log or closure row
5. Commits, or rolls back on any failure

Because the rule is part of the UPDATE itself, two concurrent
withdrawals on the same account cannot both pass the funds
check, even on databases that ignore SELECT ... FOR UPDATE.
Operations on different accounts touch different rows and do
not wait on each other.

The engine keeps no state between calls; build one per session.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from bank_ledger.config import get_settings
from bank_ledger.exceptions import (
    AccountClosed,
    AccountNotFound,
    AlreadyClosed,
    ConcurrencyConflict,
    CustomerReferenceError,
    InsufficientFunds,
    InvalidAmount,
    InvalidReason,
)
from bank_ledger.logging_config import get_logger, log_action
from bank_ledger.models.account import Account, REASON_MAX_LENGTH
from bank_ledger.models.account_closure import AccountClosure
from bank_ledger.models.base import atomic
from bank_ledger.models.enums import AccountStatus, TransactionType
from bank_ledger.models.loan import Loan
from bank_ledger.models.transaction_log import TransactionLog
from bank_ledger.services.closure_watcher import ClosureWatcher
from bank_ledger.services.customer_service import CustomerService
from bank_ledger.services.loan_calculator import CENT, total_payable

logger = get_logger(__name__)

# DECIMAL(5, 2) for the stored interest rate
MAX_INTEREST_RATE = Decimal("999.99")
# DECIMAL(18, 2) for balances and amounts
MAX_MONEY = Decimal("9999999999999999.99")


def _to_money(value, field: str, allow_zero: bool = False) -> Decimal:
    """Coerce a monetary input to Decimal with at most two places."""
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidAmount(f"{field} is not a number: {value!r}") from None

    if not amount.is_finite():
        raise InvalidAmount(f"{field} must be finite")
    if abs(amount) > MAX_MONEY:
        raise InvalidAmount(f"{field} must not exceed {MAX_MONEY}")
    try:
        rounded = amount.quantize(CENT)
    except InvalidOperation:
        raise InvalidAmount(f"{field} is out of range: {value!r}") from None
    if amount != rounded:
        raise InvalidAmount(f"{field} has more than two decimal places")
    if amount < 0 or (amount == 0 and not allow_zero):
        raise InvalidAmount(
            f"{field} must be {'non-negative' if allow_zero else 'positive'}, "
            f"got {amount}"
        )
    return amount


def _validate_reason(reason) -> str:
    if not isinstance(reason, str) or not reason.strip():
        raise InvalidReason("Closure reason is required")
    if len(reason) > REASON_MAX_LENGTH:
        raise InvalidReason(
            f"Closure reason is limited to {REASON_MAX_LENGTH} characters"
        )
    return reason


class TransactionEngine:

    def __init__(
        self,
        db: Session,
        directory=None,
        overdraft_enabled: bool | None = None,
    ):
        self.db = db
        self.directory = directory or CustomerService(db)
        self.closure_watcher = ClosureWatcher(db)
        if overdraft_enabled is None:
            overdraft_enabled = get_settings().OVERDRAFT_ENABLED
        self.overdraft_enabled = overdraft_enabled

    # --- Helpers ---

    def _lock_account(self, account_id: int) -> Account:
        """Load an account fresh from the database, locking its row."""
        account = self.db.execute(
            select(Account)
            .where(Account.account_id == account_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if not account:
            raise AccountNotFound(f"Account {account_id} not found")
        return account

    def _overdraft_limit(self, customer_id: str) -> Decimal:
        if not self.overdraft_enabled:
            return Decimal("0.00")
        return Decimal(self.directory.overdraft_limit(customer_id))

    def _append_log(
        self, account_id: int, transaction_type: TransactionType, amount: Decimal
    ) -> TransactionLog:
        # Taken after the balance update, so the row lock orders
        # timestamps within an account.
        entry = TransactionLog(
            account_id=account_id,
            transaction_type=transaction_type,
            amount=amount,
            transaction_date=datetime.utcnow(),
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    def _close(self, account: Account, reason: str) -> AccountClosure | None:
        """
        Move a locked account into Closed and notify the watcher.

        Returns None if another transaction closed it first.
        """
        old_status = account.account_status
        result = self.db.execute(
            update(Account)
            .where(
                Account.account_id == account.account_id,
                Account.account_status != AccountStatus.CLOSED,
            )
            .values(
                account_status=AccountStatus.CLOSED,
                reason_for_closure=reason,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return None

        return self.closure_watcher.on_status_change(
            account.account_id, old_status, AccountStatus.CLOSED, reason
        )

    def _rejected(self, error, action: str, account_id):
        """Log a refused operation and hand the error back for raising."""
        log_action(
            logger, "warning", str(error),
            action=action, resource=f"account:{account_id}",
            details={"error": type(error).__name__},
        )
        return error

    # --- Operations ---

    def open_account(
        self,
        customer_id: str,
        opening_balance=Decimal("0.00"),
        loan_amount=Decimal("0.00"),
        interest_rate=Decimal("0.00"),
        duration_months: int = 0,
    ) -> Account:
        """
        Open an Active account and record its loan.

        The account row and the loan row are committed together;
        if either insert fails neither is kept.
        """
        opening_balance = _to_money(
            opening_balance, "opening_balance", allow_zero=True
        )
        loan_amount = _to_money(loan_amount, "loan_amount", allow_zero=True)
        interest_rate = _to_money(
            interest_rate, "interest_rate", allow_zero=True
        )
        if interest_rate > MAX_INTEREST_RATE:
            raise InvalidAmount(
                f"interest_rate must not exceed {MAX_INTEREST_RATE}"
            )
        valid_duration = (
            isinstance(duration_months, int)
            and not isinstance(duration_months, bool)
            and duration_months >= 0
        )
        if not valid_duration:
            raise InvalidAmount("duration_months must be a non-negative integer")
        loan_to_be_paid = total_payable(loan_amount, interest_rate)
        if loan_to_be_paid > MAX_MONEY:
            raise InvalidAmount(f"Loan repayment must not exceed {MAX_MONEY}")

        with atomic(self.db):
            if not self.directory.customer_exists(customer_id):
                raise CustomerReferenceError(
                    f"Customer {customer_id} not found"
                )

            account = Account(
                customer_id=customer_id,
                account_balance=opening_balance,
                account_status=AccountStatus.ACTIVE,
            )
            loan = Loan(
                customer_id=customer_id,
                loan_amount=loan_amount,
                loan_to_be_paid=loan_to_be_paid,
                interest=interest_rate,
                duration=duration_months,
            )
            self.db.add_all([account, loan])
            self.db.flush()

        log_action(
            logger, "info", "Account opened",
            action="open_account", resource=f"account:{account.account_id}",
            details={
                "customer_id": customer_id,
                "opening_balance": opening_balance,
                "loan_id": loan.loan_id,
            },
        )
        return account

    def deposit(self, account_id: int, amount) -> TransactionLog:
        """Credit an account and log the deposit."""
        amount = _to_money(amount, "amount")

        with atomic(self.db):
            account = self._lock_account(account_id)
            if account.is_closed:
                raise self._rejected(
                    AccountClosed(f"Account {account_id} is closed"),
                    "deposit", account_id,
                )

            result = self.db.execute(
                update(Account)
                .where(
                    Account.account_id == account_id,
                    Account.account_status != AccountStatus.CLOSED,
                    Account.account_balance + amount <= MAX_MONEY,
                )
                .values(account_balance=Account.account_balance + amount)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                current = self._lock_account(account_id)
                if current.is_closed:
                    error = AccountClosed(f"Account {account_id} is closed")
                else:
                    error = InvalidAmount(
                        f"Deposit would take the balance past {MAX_MONEY}"
                    )
                raise self._rejected(error, "deposit", account_id)

            entry = self._append_log(
                account_id, TransactionType.DEPOSIT, amount
            )

        log_action(
            logger, "info", "Deposit posted",
            action="deposit", resource=f"account:{account_id}",
            details={"amount": amount, "log_id": entry.log_id},
        )
        return entry

    def withdraw(self, account_id: int, amount) -> TransactionLog:
        """
        Debit an account and log the withdrawal.

        The balance may go negative by at most the customer's
        overdraft limit (zero when overdrafts are disabled).
        """
        amount = _to_money(amount, "amount")

        with atomic(self.db):
            account = self._lock_account(account_id)
            if account.is_closed:
                raise self._rejected(
                    AccountClosed(f"Account {account_id} is closed"),
                    "withdraw", account_id,
                )
            limit = self._overdraft_limit(account.customer_id)

            result = self.db.execute(
                update(Account)
                .where(
                    Account.account_id == account_id,
                    Account.account_status != AccountStatus.CLOSED,
                    Account.account_balance + limit >= amount,
                    Account.account_balance - amount >= -MAX_MONEY,
                )
                .values(account_balance=Account.account_balance - amount)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                # The guard failed; re-read to say why.
                current = self._lock_account(account_id)
                if current.is_closed:
                    error = AccountClosed(f"Account {account_id} is closed")
                elif current.account_balance - amount < -MAX_MONEY:
                    error = InvalidAmount(
                        f"Withdrawal would take the balance past -{MAX_MONEY}"
                    )
                else:
                    error = InsufficientFunds(
                        account_id, current.account_balance + limit, amount
                    )
                raise self._rejected(error, "withdraw", account_id)

            entry = self._append_log(
                account_id, TransactionType.WITHDRAWAL, amount
            )

        log_action(
            logger, "info", "Withdrawal posted",
            action="withdraw", resource=f"account:{account_id}",
            details={"amount": amount, "log_id": entry.log_id},
        )
        return entry

    def close_account(self, account_id: int, reason: str) -> AccountClosure:
        """
        Close an Active or Dormant account.

        Closing is one-way. A second attempt raises AlreadyClosed
        and writes nothing.
        """
        reason = _validate_reason(reason)

        with atomic(self.db):
            account = self._lock_account(account_id)
            if account.is_closed:
                raise self._rejected(
                    AlreadyClosed(f"Account {account_id} is already closed"),
                    "close_account", account_id,
                )

            closure = self._close(account, reason)
            if closure is None:
                raise self._rejected(
                    AlreadyClosed(f"Account {account_id} is already closed"),
                    "close_account", account_id,
                )

        log_action(
            logger, "info", "Account closed",
            action="close_account", resource=f"account:{account_id}",
            details={"reason": reason, "closure_id": closure.closure_id},
        )
        return closure

    def close_customer_accounts(
        self, customer_id: str, reason: str
    ) -> list[AccountClosure]:
        """
        Close every Active account a customer holds.

        Dormant and already closed accounts are left alone. All
        closures commit together.
        """
        reason = _validate_reason(reason)

        with atomic(self.db):
            if not self.directory.customer_exists(customer_id):
                raise CustomerReferenceError(
                    f"Customer {customer_id} not found"
                )

            accounts = self.db.execute(
                select(Account)
                .where(
                    Account.customer_id == customer_id,
                    Account.account_status == AccountStatus.ACTIVE,
                )
                .order_by(Account.account_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).scalars().all()

            closures = []
            for account in accounts:
                closure = self._close(account, reason)
                if closure is not None:
                    closures.append(closure)

        log_action(
            logger, "info", "Customer accounts closed",
            action="close_customer_accounts",
            resource=f"customer:{customer_id}",
            details={
                "reason": reason,
                "account_ids": [c.account_id for c in closures],
            },
        )
        return closures

    # --- Queries ---

    def get_account(self, account_id: int) -> Account:
        account = self.db.get(Account, account_id, populate_existing=True)
        if not account:
            raise AccountNotFound(f"Account {account_id} not found")
        return account

    def get_account_log(self, account_id: int) -> list[TransactionLog]:
        """All log entries of an account, oldest first."""
        self.get_account(account_id)
        entries = self.db.execute(
            select(TransactionLog)
            .where(TransactionLog.account_id == account_id)
            .order_by(TransactionLog.log_id)
        ).scalars().all()
        return list(entries)

    def get_closure(self, account_id: int) -> AccountClosure | None:
        self.get_account(account_id)
        return self.db.execute(
            select(AccountClosure).where(
                AccountClosure.account_id == account_id
            )
        ).scalar_one_or_none()


def retry_on_conflict(operation, attempts: int | None = None):
    """
    Call operation() until it stops raising ConcurrencyConflict.

    Gives up after `attempts` tries (CONFLICT_RETRIES by default)
    and re-raises the last conflict. Every other error propagates
    immediately.
    """
    if attempts is None:
        attempts = get_settings().CONFLICT_RETRIES
    attempts = max(1, attempts)

    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except ConcurrencyConflict as e:
            if attempt == attempts:
                raise
            log_action(
                logger, "warning", "Retrying after concurrency conflict",
                action="retry", details={"attempt": attempt, "error": str(e)},
            )
