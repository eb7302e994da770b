"""
Comprehensive tests for the TransactionEngine.
"""

import threading
from decimal import Decimal

import pytest
from sqlalchemy import select, func
from sqlalchemy.exc import OperationalError

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
from bank_ledger.models.account import Account
from bank_ledger.models.account_closure import AccountClosure
from bank_ledger.models.enums import AccountStatus, TransactionType
from bank_ledger.models.loan import Loan
from bank_ledger.models.transaction_log import TransactionLog
from bank_ledger.services.closure_watcher import ClosureWatcher
from bank_ledger.services.transaction_engine import (
    TransactionEngine,
    retry_on_conflict,
)


def count(db_session, model):
    return db_session.execute(select(func.count()).select_from(model)).scalar()


def balance_of(db_session, account_id):
    return TransactionEngine(db_session).get_account(account_id).account_balance


# --- Opening Accounts ---

class TestOpenAccount:

    def test_open_account_succeeds(self, db_session, make_customer):
        make_customer("C0001")
        engine = TransactionEngine(db_session)

        account = engine.open_account(
            customer_id="C0001",
            opening_balance=Decimal("250.00"),
            loan_amount=Decimal("1000.00"),
            interest_rate=Decimal("5.00"),
            duration_months=12,
        )

        assert account.account_id is not None
        assert account.account_status == AccountStatus.ACTIVE
        assert account.account_balance == Decimal("250.00")
        assert account.reason_for_closure is None

    def test_open_account_records_loan(self, db_session, make_customer):
        make_customer("C0001")
        engine = TransactionEngine(db_session)

        engine.open_account(
            customer_id="C0001",
            opening_balance=Decimal("0.00"),
            loan_amount=Decimal("2500.00"),
            interest_rate=Decimal("12.50"),
            duration_months=24,
        )

        loan = db_session.execute(select(Loan)).scalar_one()
        assert loan.customer_id == "C0001"
        assert loan.loan_amount == Decimal("2500.00")
        assert loan.loan_to_be_paid == Decimal("2812.50")
        assert loan.interest == Decimal("12.50")
        assert loan.duration == 24

    def test_unknown_customer_creates_nothing(self, db_session):
        engine = TransactionEngine(db_session)

        with pytest.raises(CustomerReferenceError, match="not found"):
            engine.open_account(
                customer_id="NOPE",
                opening_balance=Decimal("100.00"),
                loan_amount=Decimal("1000.00"),
                interest_rate=Decimal("5.00"),
                duration_months=12,
            )

        assert count(db_session, Account) == 0
        assert count(db_session, Loan) == 0

    def test_failure_after_account_insert_keeps_neither_row(
        self, db_session, make_customer, monkeypatch
    ):
        make_customer("C0001")
        engine = TransactionEngine(db_session)
        real_flush = db_session.flush

        def flush_then_fail(*args, **kwargs):
            real_flush(*args, **kwargs)
            raise RuntimeError("disk full")

        monkeypatch.setattr(db_session, "flush", flush_then_fail)

        with pytest.raises(RuntimeError):
            engine.open_account(customer_id="C0001", loan_amount="10.00")

        monkeypatch.undo()
        assert count(db_session, Account) == 0
        assert count(db_session, Loan) == 0

    def test_negative_opening_balance_rejected(self, db_session, make_customer):
        make_customer("C0001")
        engine = TransactionEngine(db_session)

        with pytest.raises(InvalidAmount):
            engine.open_account("C0001", opening_balance=Decimal("-1.00"))

    def test_negative_duration_rejected(self, db_session, make_customer):
        make_customer("C0001")
        engine = TransactionEngine(db_session)

        with pytest.raises(InvalidAmount, match="duration"):
            engine.open_account("C0001", duration_months=-3)

    def test_rate_beyond_column_precision_rejected(
        self, db_session, make_customer
    ):
        make_customer("C0001")
        engine = TransactionEngine(db_session)

        with pytest.raises(InvalidAmount, match="interest_rate"):
            engine.open_account("C0001", interest_rate=Decimal("1000.00"))

    def test_loan_repayment_beyond_column_rejected(
        self, db_session, make_customer
    ):
        make_customer("C0001")
        engine = TransactionEngine(db_session)

        with pytest.raises(InvalidAmount, match="Loan repayment"):
            engine.open_account(
                "C0001",
                loan_amount=Decimal("9000000000000000.00"),
                interest_rate=Decimal("50.00"),
            )

        assert count(db_session, Account) == 0
        assert count(db_session, Loan) == 0

    def test_multiple_accounts_per_customer(self, db_session, make_account):
        first = make_account("C0001")
        second = make_account("C0001")

        assert first.account_id != second.account_id
        assert count(db_session, Loan) == 2


# --- Deposits ---

class TestDeposit:

    def test_deposit_updates_balance(self, db_session, make_account):
        account = make_account(opening_balance="100.00")
        engine = TransactionEngine(db_session)

        engine.deposit(account.account_id, Decimal("50.25"))

        assert balance_of(db_session, account.account_id) == Decimal("150.25")

    def test_deposit_appends_log_entry(self, db_session, make_account):
        account = make_account()
        engine = TransactionEngine(db_session)

        entry = engine.deposit(account.account_id, Decimal("75.00"))

        assert entry.log_id is not None
        assert entry.account_id == account.account_id
        assert entry.transaction_type == TransactionType.DEPOSIT
        assert entry.amount == Decimal("75.00")
        assert entry.transaction_date is not None
        assert count(db_session, TransactionLog) == 1

    @pytest.mark.parametrize(
        "amount",
        ["0", "-10.00", "0.001", "abc", "1E+30", "10000000000000000.00"],
    )
    def test_invalid_amount_rejected(self, db_session, make_account, amount):
        account = make_account(opening_balance="10.00")
        engine = TransactionEngine(db_session)

        with pytest.raises(InvalidAmount):
            engine.deposit(account.account_id, amount)

        assert balance_of(db_session, account.account_id) == Decimal("10.00")
        assert count(db_session, TransactionLog) == 0

    def test_unknown_account_rejected(self, db_session):
        engine = TransactionEngine(db_session)
        with pytest.raises(AccountNotFound):
            engine.deposit(999, Decimal("10.00"))

    def test_closed_account_rejected(self, db_session, make_account):
        account = make_account(opening_balance="10.00")
        engine = TransactionEngine(db_session)
        engine.close_account(account.account_id, "Customer Request")

        with pytest.raises(AccountClosed):
            engine.deposit(account.account_id, Decimal("10.00"))

        assert balance_of(db_session, account.account_id) == Decimal("10.00")
        assert count(db_session, TransactionLog) == 0

    def test_deposit_past_balance_column_rejected(
        self, db_session, make_account
    ):
        account = make_account(opening_balance="9000000000000000.00")
        engine = TransactionEngine(db_session)

        with pytest.raises(InvalidAmount, match="past"):
            engine.deposit(account.account_id, Decimal("2000000000000000.00"))

        assert count(db_session, TransactionLog) == 0

    def test_dormant_account_accepts_deposit(self, db_session, make_account):
        account = make_account()
        account.account_status = AccountStatus.DORMANT
        db_session.commit()

        TransactionEngine(db_session).deposit(account.account_id, "5.00")

        assert balance_of(db_session, account.account_id) == Decimal("5.00")


# --- Withdrawals ---

class TestWithdraw:

    def test_withdrawal_updates_balance(self, db_session, make_account):
        account = make_account(opening_balance="1000.00")
        engine = TransactionEngine(db_session)

        entry = engine.withdraw(account.account_id, Decimal("300.00"))

        assert entry.transaction_type == TransactionType.WITHDRAWAL
        assert entry.amount == Decimal("300.00")
        assert balance_of(db_session, account.account_id) == Decimal("700.00")

    def test_exact_balance_can_be_withdrawn(self, db_session, make_account):
        account = make_account(opening_balance="80.00")
        engine = TransactionEngine(db_session)

        engine.withdraw(account.account_id, Decimal("80.00"))

        assert balance_of(db_session, account.account_id) == Decimal("0.00")

    def test_insufficient_funds_leaves_state_unchanged(
        self, db_session, make_account
    ):
        account = make_account(opening_balance="100.00")
        engine = TransactionEngine(db_session)

        with pytest.raises(InsufficientFunds) as exc_info:
            engine.withdraw(account.account_id, Decimal("100.01"))

        assert exc_info.value.requested == Decimal("100.01")
        assert balance_of(db_session, account.account_id) == Decimal("100.00")
        assert count(db_session, TransactionLog) == 0

    def test_overdraft_limit_allows_negative_balance(
        self, db_session, make_account
    ):
        account = make_account(opening_balance="50.00", overdraft_limit="100.00")
        engine = TransactionEngine(db_session, overdraft_enabled=True)

        engine.withdraw(account.account_id, Decimal("150.00"))

        assert balance_of(db_session, account.account_id) == Decimal("-100.00")

    def test_overdraft_limit_is_a_hard_floor(self, db_session, make_account):
        account = make_account(opening_balance="50.00", overdraft_limit="100.00")
        engine = TransactionEngine(db_session, overdraft_enabled=True)

        with pytest.raises(InsufficientFunds):
            engine.withdraw(account.account_id, Decimal("150.01"))

        assert balance_of(db_session, account.account_id) == Decimal("50.00")

    def test_overdraft_disabled_requires_full_balance(
        self, db_session, make_account
    ):
        account = make_account(opening_balance="50.00", overdraft_limit="100.00")
        engine = TransactionEngine(db_session, overdraft_enabled=False)

        with pytest.raises(InsufficientFunds):
            engine.withdraw(account.account_id, Decimal("50.01"))

    def test_missing_overdraft_limit_means_none(self, db_session, make_account):
        account = make_account(opening_balance="10.00", overdraft_limit=None)
        engine = TransactionEngine(db_session, overdraft_enabled=True)

        with pytest.raises(InsufficientFunds):
            engine.withdraw(account.account_id, Decimal("10.01"))

    def test_closed_account_rejected(self, db_session, make_account):
        account = make_account(opening_balance="500.00")
        engine = TransactionEngine(db_session)
        engine.close_account(account.account_id, "Customer Request")

        with pytest.raises(AccountClosed):
            engine.withdraw(account.account_id, Decimal("10.00"))

    def test_unknown_account_rejected(self, db_session):
        with pytest.raises(AccountNotFound):
            TransactionEngine(db_session).withdraw(42, Decimal("1.00"))

    def test_zero_amount_rejected(self, db_session, make_account):
        account = make_account(opening_balance="500.00")
        with pytest.raises(InvalidAmount):
            TransactionEngine(db_session).withdraw(account.account_id, 0)

    def test_failure_after_balance_update_rolls_back(
        self, db_session, make_account, monkeypatch
    ):
        account = make_account(opening_balance="500.00")
        engine = TransactionEngine(db_session)

        def broken_log(*args, **kwargs):
            raise RuntimeError("log table unavailable")

        monkeypatch.setattr(engine, "_append_log", broken_log)

        with pytest.raises(RuntimeError):
            engine.withdraw(account.account_id, Decimal("100.00"))

        assert balance_of(db_session, account.account_id) == Decimal("500.00")

    def test_lock_failure_surfaces_as_concurrency_conflict(
        self, db_session, make_account, monkeypatch
    ):
        account = make_account(opening_balance="500.00")
        engine = TransactionEngine(db_session)

        def locked_commit():
            raise OperationalError(
                "COMMIT", {}, Exception("database is locked")
            )

        monkeypatch.setattr(db_session, "commit", locked_commit)

        with pytest.raises(ConcurrencyConflict, match="locked"):
            engine.withdraw(account.account_id, Decimal("100.00"))

        monkeypatch.undo()
        assert balance_of(db_session, account.account_id) == Decimal("500.00")
        assert count(db_session, TransactionLog) == 0

    def test_other_database_errors_are_not_conflicts(
        self, db_session, make_account, monkeypatch
    ):
        account = make_account(opening_balance="500.00")
        engine = TransactionEngine(db_session)
        calls = []

        def broken_commit():
            calls.append(1)
            raise OperationalError(
                "COMMIT", {}, Exception("no such table: transaction_logs")
            )

        monkeypatch.setattr(db_session, "commit", broken_commit)

        with pytest.raises(OperationalError, match="no such table"):
            retry_on_conflict(
                lambda: engine.deposit(account.account_id, Decimal("1.00")),
                attempts=3,
            )

        assert len(calls) == 1
        monkeypatch.undo()
        assert balance_of(db_session, account.account_id) == Decimal("500.00")


# --- Balance Invariant ---

class TestBalanceInvariant:

    def test_balance_equals_opening_plus_deposits_minus_withdrawals(
        self, db_session, make_account
    ):
        account = make_account(opening_balance="0.10")
        engine = TransactionEngine(db_session)
        deposits = ["0.10", "0.20", "19.99", "1000.01"]
        withdrawals = ["0.30", "5.55"]

        for amount in deposits:
            engine.deposit(account.account_id, Decimal(amount))
        for amount in withdrawals:
            engine.withdraw(account.account_id, Decimal(amount))

        expected = (
            Decimal("0.10")
            + sum(Decimal(a) for a in deposits)
            - sum(Decimal(a) for a in withdrawals)
        )
        assert balance_of(db_session, account.account_id) == expected

    def test_every_posting_logged_once(self, db_session, make_account):
        account = make_account(opening_balance="100.00")
        engine = TransactionEngine(db_session)

        engine.deposit(account.account_id, Decimal("10.00"))
        engine.withdraw(account.account_id, Decimal("20.00"))
        with pytest.raises(InsufficientFunds):
            engine.withdraw(account.account_id, Decimal("1000.00"))
        engine.deposit(account.account_id, Decimal("30.00"))

        log = engine.get_account_log(account.account_id)
        assert [(e.transaction_type, e.amount) for e in log] == [
            (TransactionType.DEPOSIT, Decimal("10.00")),
            (TransactionType.WITHDRAWAL, Decimal("20.00")),
            (TransactionType.DEPOSIT, Decimal("30.00")),
        ]

    def test_log_timestamps_never_decrease(self, db_session, make_account):
        account = make_account(opening_balance="100.00")
        engine = TransactionEngine(db_session)
        for _ in range(5):
            engine.deposit(account.account_id, Decimal("1.00"))

        dates = [e.transaction_date for e in engine.get_account_log(account.account_id)]
        assert dates == sorted(dates)


# --- Closing Accounts ---

class TestCloseAccount:

    def test_close_active_account(self, db_session, make_account):
        account = make_account(opening_balance="10.00")
        engine = TransactionEngine(db_session)

        closure = engine.close_account(account.account_id, "Customer Request")

        assert closure.account_id == account.account_id
        assert closure.reason == "Customer Request"
        assert closure.closure_date is not None

        refreshed = engine.get_account(account.account_id)
        assert refreshed.account_status == AccountStatus.CLOSED
        assert refreshed.reason_for_closure == "Customer Request"

    def test_close_dormant_account(self, db_session, make_account):
        account = make_account()
        account.account_status = AccountStatus.DORMANT
        db_session.commit()

        closure = TransactionEngine(db_session).close_account(
            account.account_id, "Inactivity"
        )

        assert closure.reason == "Inactivity"

    def test_second_close_rejected_without_new_record(
        self, db_session, make_account
    ):
        account = make_account()
        engine = TransactionEngine(db_session)
        engine.close_account(account.account_id, "Customer Request")

        with pytest.raises(AlreadyClosed):
            engine.close_account(account.account_id, "Another reason")

        assert count(db_session, AccountClosure) == 1
        refreshed = engine.get_account(account.account_id)
        assert refreshed.reason_for_closure == "Customer Request"

    def test_unknown_account_rejected(self, db_session):
        with pytest.raises(AccountNotFound):
            TransactionEngine(db_session).close_account(7, "Customer Request")

    @pytest.mark.parametrize("reason", ["", "   ", "x" * 51])
    def test_invalid_reason_rejected(self, db_session, make_account, reason):
        account = make_account()
        engine = TransactionEngine(db_session)

        with pytest.raises(InvalidReason):
            engine.close_account(account.account_id, reason)

        assert engine.get_account(account.account_id).account_status == (
            AccountStatus.ACTIVE
        )

    def test_watcher_failure_rolls_back_status_change(
        self, db_session, make_account, monkeypatch
    ):
        account = make_account()
        engine = TransactionEngine(db_session)

        def broken_watcher(*args, **kwargs):
            raise RuntimeError("audit insert failed")

        monkeypatch.setattr(
            ClosureWatcher, "on_status_change", broken_watcher
        )

        with pytest.raises(RuntimeError):
            engine.close_account(account.account_id, "Customer Request")

        refreshed = engine.get_account(account.account_id)
        assert refreshed.account_status == AccountStatus.ACTIVE
        assert refreshed.reason_for_closure is None
        assert count(db_session, AccountClosure) == 0

    def test_get_closure(self, db_session, make_account):
        account = make_account()
        engine = TransactionEngine(db_session)
        assert engine.get_closure(account.account_id) is None

        engine.close_account(account.account_id, "Fraud")

        assert engine.get_closure(account.account_id).reason == "Fraud"


class TestCloseCustomerAccounts:

    def test_closes_only_active_accounts(self, db_session, make_account):
        first = make_account("C0001")
        second = make_account("C0001")
        dormant = make_account("C0001")
        dormant.account_status = AccountStatus.DORMANT
        db_session.commit()
        other = make_account("C0002")
        engine = TransactionEngine(db_session)

        closures = engine.close_customer_accounts("C0001", "Customer Request")

        assert sorted(c.account_id for c in closures) == sorted(
            [first.account_id, second.account_id]
        )
        statuses = {
            a.account_id: engine.get_account(a.account_id).account_status
            for a in (first, second, dormant, other)
        }
        assert statuses[first.account_id] == AccountStatus.CLOSED
        assert statuses[second.account_id] == AccountStatus.CLOSED
        assert statuses[dormant.account_id] == AccountStatus.DORMANT
        assert statuses[other.account_id] == AccountStatus.ACTIVE

    def test_repeat_closes_nothing(self, db_session, make_account):
        make_account("C0001")
        engine = TransactionEngine(db_session)
        engine.close_customer_accounts("C0001", "Customer Request")

        assert engine.close_customer_accounts("C0001", "Again") == []
        assert count(db_session, AccountClosure) == 1

    def test_unknown_customer_rejected(self, db_session):
        with pytest.raises(CustomerReferenceError):
            TransactionEngine(db_session).close_customer_accounts(
                "NOPE", "Customer Request"
            )


# --- Concurrency ---

class TestConcurrency:

    def _run_concurrently(self, session_factory, operations):
        """Run each operation on its own thread and session at once."""
        barrier = threading.Barrier(len(operations), timeout=30)
        outcomes = []
        lock = threading.Lock()

        def worker(operation):
            session = session_factory()
            try:
                engine = TransactionEngine(session)
                barrier.wait()
                try:
                    retry_on_conflict(lambda: operation(engine), attempts=5)
                    result = "ok"
                except (InsufficientFunds, AlreadyClosed) as e:
                    result = type(e).__name__
                with lock:
                    outcomes.append(result)
            finally:
                session.close()

        threads = [
            threading.Thread(target=worker, args=(op,)) for op in operations
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=60)
        return sorted(outcomes)

    def test_concurrent_withdrawals_cannot_double_spend(
        self, db_session, session_factory, make_account
    ):
        account = make_account(opening_balance="150.00", overdraft_limit="0.00")
        account_id = account.account_id

        outcomes = self._run_concurrently(session_factory, [
            lambda engine: engine.withdraw(account_id, Decimal("100.00")),
            lambda engine: engine.withdraw(account_id, Decimal("100.00")),
        ])

        assert outcomes == ["InsufficientFunds", "ok"]
        db_session.expire_all()
        assert balance_of(db_session, account_id) == Decimal("50.00")
        assert count(db_session, TransactionLog) == 1

    def test_concurrent_deposits_are_not_lost(
        self, db_session, session_factory, make_account
    ):
        account = make_account(opening_balance="0.00")
        account_id = account.account_id

        outcomes = self._run_concurrently(session_factory, [
            lambda engine: engine.deposit(account_id, Decimal("10.00"))
            for _ in range(4)
        ])

        assert outcomes == ["ok"] * 4
        db_session.expire_all()
        assert balance_of(db_session, account_id) == Decimal("40.00")

    def test_concurrent_closes_write_one_record(
        self, db_session, session_factory, make_account
    ):
        account = make_account()
        account_id = account.account_id

        outcomes = self._run_concurrently(session_factory, [
            lambda engine: engine.close_account(account_id, "Teller A"),
            lambda engine: engine.close_account(account_id, "Teller B"),
        ])

        assert outcomes == ["AlreadyClosed", "ok"]
        assert count(db_session, AccountClosure) == 1


class TestRetryOnConflict:

    def test_retries_until_success(self):
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise ConcurrencyConflict("deadlock detected")
            return "done"

        assert retry_on_conflict(flaky, attempts=3) == "done"
        assert len(calls) == 3

    def test_gives_up_after_attempts(self):
        def always_conflicts():
            raise ConcurrencyConflict("serialization failure")

        with pytest.raises(ConcurrencyConflict):
            retry_on_conflict(always_conflicts, attempts=2)

    def test_other_errors_are_not_retried(self):
        calls = []

        def rejected():
            calls.append(1)
            raise InsufficientFunds(1, Decimal("0"), Decimal("5"))

        with pytest.raises(InsufficientFunds):
            retry_on_conflict(rejected, attempts=5)
        assert len(calls) == 1
