"""
Domain exceptions for ledger operations.

Services raise these instead of generic exceptions so that
callers (the API layer, tests, batch jobs) can tell a business
rule violation from a programming error and react to each kind
separately.
"""


class LedgerError(Exception):
    """Base class for every error raised by the ledger services."""


class InvalidAmount(LedgerError):
    """Amount is zero, negative, or otherwise not acceptable."""


class InvalidReason(LedgerError):
    """Closure reason is empty or longer than the column allows."""


class AccountNotFound(LedgerError):
    pass


class AccountClosed(LedgerError):
    """The account is closed and accepts no further postings."""


class AlreadyClosed(LedgerError):
    """A close was requested for an account that is already closed."""


class InsufficientFunds(LedgerError):
    """
    Raised when a withdrawal would take the balance below the
    negative of the customer's overdraft limit.
    """

    def __init__(self, account_id, available, requested):
        self.account_id = account_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient funds in account {account_id}: "
            f"available={available}, requested={requested}"
        )


class CustomerReferenceError(LedgerError):
    """An operation referenced a customer that does not exist."""


class DuplicateCustomer(LedgerError):
    pass


class ConcurrencyConflict(LedgerError):
    """
    The datastore refused the transaction because of a lock
    timeout, deadlock, or serialization failure.

    Nothing was written. The caller should retry the whole
    operation.
    """
