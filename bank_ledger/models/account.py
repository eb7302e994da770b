"""
Customer account model.

Holds the running balance and the lifecycle status. The balance
is only ever changed by the TransactionEngine, through guarded
UPDATE statements, and every change is paired with a row in
transaction_logs.

Closed is terminal: the close is a guarded UPDATE that only
matches rows not already Closed.
"""

from decimal import Decimal

from sqlalchemy import String, Numeric, ForeignKey, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bank_ledger.models.base import Base
from bank_ledger.models.enums import AccountStatus, enum_values


REASON_MAX_LENGTH = 50


class Account(Base):
    __tablename__ = "accounts"

    account_id: Mapped[int] = mapped_column(primary_key=True)
    customer_id: Mapped[str] = mapped_column(
        ForeignKey("customers.customer_id"), nullable=False, index=True
    )
    account_balance: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), nullable=False, default=Decimal("0.00")
    )
    account_status: Mapped[AccountStatus] = mapped_column(
        SAEnum(
            AccountStatus,
            name="account_status_enum",
            create_constraint=True,
            values_callable=enum_values,
        ),
        nullable=False,
        default=AccountStatus.ACTIVE,
    )
    reason_for_closure: Mapped[str | None] = mapped_column(
        String(REASON_MAX_LENGTH), nullable=True
    )

    # Relationships
    customer: Mapped["Customer"] = relationship(back_populates="accounts")
    transaction_logs: Mapped[list["TransactionLog"]] = relationship(
        back_populates="account", order_by="TransactionLog.log_id"
    )
    closure: Mapped["AccountClosure | None"] = relationship(
        back_populates="account"
    )

    @property
    def is_closed(self) -> bool:
        return self.account_status == AccountStatus.CLOSED

    def __repr__(self) -> str:
        return (
            f"<Account {self.account_id} "
            f"{self.account_balance} ({self.account_status.value})>"
        )
