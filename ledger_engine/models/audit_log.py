"""
Audit log model.

Records ledger activity for compliance and debugging: who
created, changed, locked, unlocked or deleted a transaction,
with before/after snapshots.
"""

from datetime import datetime

from sqlalchemy import String, DateTime, Integer, JSON
from sqlalchemy.orm import Mapped, mapped_column

from ledger_engine.models.base import Base, utcnow


class AuditLog(Base):
    """
    Immutable record of a ledger event.

    Audit logs are append-only. You never update or delete an
    audit record. entity_id is deliberately not a foreign key:
    the record must survive deletion of the transaction it
    describes.
    """

    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(primary_key=True)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    action: Mapped[str] = mapped_column(String(20), nullable=False)
    actor: Mapped[str] = mapped_column(String(100), nullable=False)
    old_values: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    new_values: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<AuditLog {self.entity_type}:{self.entity_id} {self.action}>"
