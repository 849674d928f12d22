"""
Transaction entry model.

Each entry is one debit or credit line of a transaction,
posted against a single account. Entries are never edited on
their own; updating a transaction replaces its whole entry set.
"""

from decimal import Decimal

from sqlalchemy import String, Numeric, ForeignKey, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_engine.models.base import Base


class TransactionEntry(Base):
    """
    A single debit/credit line.

    Normally only one of debit_amount and credit_amount is
    non-zero. The balance rule (sum of debits equals sum of
    credits) is enforced by the LedgerStore over the persisted
    rows, not by the model.
    """

    __tablename__ = "transaction_entries"

    id: Mapped[int] = mapped_column(primary_key=True)
    transaction_id: Mapped[int] = mapped_column(
        ForeignKey("transactions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id"), nullable=False, index=True
    )
    debit_amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    credit_amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    description: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    description_localized: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    # "metadata" is reserved on declarative classes
    entry_metadata: Mapped[dict | None] = mapped_column(
        "metadata", JSON, nullable=True
    )

    transaction: Mapped["Transaction"] = relationship(
        back_populates="entries"
    )
    account: Mapped["Account"] = relationship(back_populates="entries")

    def __repr__(self) -> str:
        return (
            f"<TransactionEntry account={self.account_id} "
            f"Dr {self.debit_amount} Cr {self.credit_amount}>"
        )
