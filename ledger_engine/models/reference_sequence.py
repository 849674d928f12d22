"""
Counters for human-readable reference numbers.

One row per sequence name (e.g. "TXN-20260119"). The ledger
store reads the row with SELECT ... FOR UPDATE before taking
the next value, so two writers never get the same number.
"""

from sqlalchemy import String, BigInteger
from sqlalchemy.orm import Mapped, mapped_column

from ledger_engine.models.base import Base


class ReferenceSequence(Base):
    __tablename__ = "reference_sequences"

    name: Mapped[str] = mapped_column(String(50), primary_key=True)
    next_value: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=1
    )

    def __repr__(self) -> str:
        return f"<ReferenceSequence {self.name}={self.next_value}>"
