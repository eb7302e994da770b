"""
Closure watcher.

Writes the account_closures audit row when an account moves
into Closed. It is called explicitly from inside the closing
transaction, so the status change and its audit row commit or
roll back together.
"""

from sqlalchemy.orm import Session

from bank_ledger.models.account_closure import AccountClosure
from bank_ledger.models.enums import AccountStatus


class ClosureWatcher:

    def __init__(self, db: Session):
        self.db = db

    def on_status_change(
        self,
        account_id: int,
        old_status: AccountStatus,
        new_status: AccountStatus,
        reason: str | None,
    ) -> AccountClosure | None:
        """
        React to a committed-in-progress status write.

        Returns the closure record when one was written, None when
        the change was not a transition into Closed (including
        writes that leave an account Closed and only touch the
        reason).
        """
        if new_status != AccountStatus.CLOSED:
            return None
        if old_status == AccountStatus.CLOSED:
            return None

        closure = AccountClosure(account_id=account_id, reason=reason)
        self.db.add(closure)
        self.db.flush()
        return closure
