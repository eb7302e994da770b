"""
Loan model.

Created alongside an account when it is opened. The amount to be
paid back is computed once, by the loan calculator, and stored;
nothing in the ledger updates a loan afterwards.
"""

from decimal import Decimal

from sqlalchemy import Integer, Numeric, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bank_ledger.models.base import Base


class Loan(Base):
    __tablename__ = "loan"

    loan_id: Mapped[int] = mapped_column(primary_key=True)
    customer_id: Mapped[str] = mapped_column(
        ForeignKey("customers.customer_id"), nullable=False, index=True
    )
    loan_amount: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), nullable=False
    )
    loan_to_be_paid: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), nullable=False
    )
    interest: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)

    customer: Mapped["Customer"] = relationship(back_populates="loans")

    def __repr__(self) -> str:
        return (
            f"<Loan {self.loan_id} {self.loan_amount} "
            f"@ {self.interest}% -> {self.loan_to_be_paid}>"
        )
