"""
Account closure model.

Audit record written by the closure watcher when an account
moves into the Closed status. At most one exists per account.
"""

from datetime import datetime

from sqlalchemy import String, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bank_ledger.models.base import Base


class AccountClosure(Base):
    __tablename__ = "account_closures"

    closure_id: Mapped[int] = mapped_column(primary_key=True)
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.account_id"), unique=True, nullable=False
    )
    closure_date: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    reason: Mapped[str] = mapped_column(String(50), nullable=False)

    account: Mapped["Account"] = relationship(back_populates="closure")

    def __repr__(self) -> str:
        return f"<AccountClosure account={self.account_id} ({self.reason})>"
