"""
Customer model.

Represents an account holder. A customer can hold several
accounts and several loans. The overdraft limit set here is
what the transaction engine allows an account balance to go
below zero by.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import String, Date, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bank_ledger.models.base import Base


class Customer(Base):
    __tablename__ = "customers"
    __table_args__ = (
        UniqueConstraint("branch_code", "customer_id"),
    )

    customer_id: Mapped[str] = mapped_column(String(12), primary_key=True)
    branch_code: Mapped[str] = mapped_column(String(6), nullable=False)
    full_name: Mapped[str] = mapped_column(String(50), nullable=False)
    overdraft_limit: Mapped[Decimal | None] = mapped_column(
        Numeric(20, 2), nullable=True
    )
    email: Mapped[str | None] = mapped_column(String(100), nullable=True)
    phone_number: Mapped[str | None] = mapped_column(
        String(15), nullable=True
    )
    address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    nationality: Mapped[str | None] = mapped_column(String(50), nullable=True)
    fathers_name: Mapped[str | None] = mapped_column(
        String(50), nullable=True
    )

    accounts: Mapped[list["Account"]] = relationship(
        back_populates="customer"
    )
    loans: Mapped[list["Loan"]] = relationship(back_populates="customer")

    def __repr__(self) -> str:
        return f"<Customer {self.customer_id} {self.full_name}>"
