"""
Shared enumerations for database models.

Using Python enums mapped to database enums ensures that
only valid values can be stored. The stored values match the
strings used by the existing bank schema ('Active', 'Deposit',
and so on), so the tables stay compatible with it.
"""

import enum


class AccountStatus(str, enum.Enum):
    """Lifecycle state of a customer account."""
    ACTIVE = "Active"
    DORMANT = "Dormant"
    CLOSED = "Closed"  # Terminal


class TransactionType(str, enum.Enum):
    """Kind of posting recorded in the transaction log."""
    DEPOSIT = "Deposit"
    WITHDRAWAL = "Withdrawal"


def enum_values(enum_cls) -> list[str]:
    """Persist enum values rather than member names."""
    return [member.value for member in enum_cls]
