"""
Cached account balances.

A side-table holding the last computed balance per account.
It is a cache, not a source of truth: it can be dropped and
rebuilt from entries at any time. Rows are only written by
AccountRegistry.recompute_balance, inside the same unit of
work as the ledger write that made them stale.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Integer, Numeric, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from ledger_engine.models.base import Base, utcnow


class AccountBalance(Base):
    __tablename__ = "account_balances"

    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), primary_key=True
    )
    balance: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    # Optimistic lock: an UPDATE that finds a different version
    # raises StaleDataError instead of silently overwriting.
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    computed_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<AccountBalance account={self.account_id} {self.balance}>"
