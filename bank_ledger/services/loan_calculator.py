"""
Loan calculator.

Flat interest only: the amount to be paid back is the principal
plus rate percent of it, regardless of duration.
"""

from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")


def total_payable(principal: Decimal, rate: Decimal) -> Decimal:
    """
    Return principal * (1 + rate / 100), rounded half-up to cents.

    The rate is a percentage: Decimal("5") means 5%. All
    intermediate arithmetic is exact; rounding happens once,
    on the final result.
    """
    principal = Decimal(principal)
    rate = Decimal(rate)
    return (principal * (1 + rate / 100)).quantize(CENT, rounding=ROUND_HALF_UP)
