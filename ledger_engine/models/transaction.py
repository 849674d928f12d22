"""
Transaction model.

A transaction is the unit of double-entry bookkeeping: a dated,
referenced group of entries whose debits equal its credits.
The transaction exclusively owns its entries: they are created,
replaced and deleted only together with it.

Locking a transaction freezes it for audit: the ledger store
refuses to update or delete it until it is unlocked.
Approval is a one-time sign-off stamped with the approver and
time.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import NamedTuple

from sqlalchemy import (
    String, Boolean, Date, DateTime, Integer, Numeric, Text, JSON,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_engine.models.base import Base, utcnow
from ledger_engine.models.enums import TransactionType, SourceType


class SourceLink(NamedTuple):
    """Reference to the business event a transaction was posted for."""
    source_type: SourceType
    source_id: int


class Transaction(Base):
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(primary_key=True)
    reference_number: Mapped[str] = mapped_column(
        String(50), unique=True, nullable=False, index=True
    )
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    description_localized: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    transaction_date: Mapped[date] = mapped_column(
        Date, nullable=False, index=True
    )
    transaction_type: Mapped[TransactionType] = mapped_column(
        SAEnum(
            TransactionType,
            name="transaction_type_enum",
            create_constraint=True,
        ),
        nullable=False,
    )
    source_type: Mapped[SourceType | None] = mapped_column(
        SAEnum(SourceType, name="source_type_enum", create_constraint=True),
        nullable=True,
    )
    source_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    currency: Mapped[str] = mapped_column(
        String(3), nullable=False, default="USD"
    )
    exchange_rate: Mapped[Decimal] = mapped_column(
        Numeric(18, 6), nullable=False, default=Decimal("1")
    )
    cost_center_id: Mapped[int | None] = mapped_column(
        Integer, nullable=True
    )
    tags: Mapped[list | None] = mapped_column(JSON, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_locked: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    created_by: Mapped[str] = mapped_column(String(100), nullable=False)
    approved_by: Mapped[str | None] = mapped_column(
        String(100), nullable=True
    )
    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    # Entries live and die with their transaction
    entries: Mapped[list["TransactionEntry"]] = relationship(
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="TransactionEntry.id",
    )

    @property
    def source(self) -> SourceLink | None:
        if self.source_type is None or self.source_id is None:
            return None
        return SourceLink(self.source_type, self.source_id)

    @source.setter
    def source(self, link: SourceLink | None) -> None:
        if link is None:
            self.source_type = None
            self.source_id = None
        else:
            self.source_type = link.source_type
            self.source_id = link.source_id

    @property
    def is_approved(self) -> bool:
        return self.approved_by is not None

    @property
    def total_debits(self) -> Decimal:
        return sum((e.debit_amount for e in self.entries), Decimal("0"))

    @property
    def total_credits(self) -> Decimal:
        return sum((e.credit_amount for e in self.entries), Decimal("0"))

    def is_balanced(self) -> bool:
        return bool(self.entries) and self.total_debits == self.total_credits

    def __repr__(self) -> str:
        state = "locked" if self.is_locked else "open"
        return (
            f"<Transaction {self.reference_number} "
            f"{self.total_amount} {self.currency} ({state})>"
        )
