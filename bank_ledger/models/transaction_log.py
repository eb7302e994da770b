"""
Transaction log model.

One row per committed deposit or withdrawal. Rows are written
in the same database transaction as the balance change they
describe, and are never updated or deleted afterwards.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Numeric, ForeignKey, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bank_ledger.models.base import Base
from bank_ledger.models.enums import TransactionType, enum_values


class TransactionLog(Base):
    """
    Immutable record of a balance movement.

    Within one account, transaction_date never decreases when
    rows are ordered by log_id: the timestamp is taken after the
    account row has been locked by the balance update.
    """

    __tablename__ = "transaction_logs"

    log_id: Mapped[int] = mapped_column(primary_key=True)
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.account_id"), nullable=False, index=True
    )
    transaction_type: Mapped[TransactionType] = mapped_column(
        SAEnum(
            TransactionType,
            name="transaction_type_enum",
            create_constraint=True,
            values_callable=enum_values,
        ),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    transaction_date: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    account: Mapped["Account"] = relationship(
        back_populates="transaction_logs"
    )

    def __repr__(self) -> str:
        return (
            f"<TransactionLog {self.transaction_type.value} "
            f"{self.amount} account={self.account_id}>"
        )
