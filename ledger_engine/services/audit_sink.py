"""
Audit sink, where ledger activity is reported.

The ledger store calls log_activity after every successful
create, update, lock, unlock and delete. The store does not
depend on the sink succeeding: a failing sink is logged and the
ledger change stands.

DatabaseAuditSink writes AuditLog rows into the same session as
the ledger change, so the audit record is committed together
with it (or not at all).
"""

import logging
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_engine.models.audit_log import AuditLog
from ledger_engine.models.enums import AuditAction

logger = logging.getLogger(__name__)


class AuditSink(Protocol):

    def log_activity(
        self,
        entity,
        action: AuditAction,
        before: dict | None = None,
        after: dict | None = None,
    ) -> None:
        ...


class DatabaseAuditSink:

    def __init__(self, db: Session, actor: str):
        self.db = db
        self.actor = actor

    def log_activity(
        self,
        entity,
        action: AuditAction,
        before: dict | None = None,
        after: dict | None = None,
    ) -> None:
        # Own savepoint: a failed insert must not take the
        # surrounding ledger write down with it.
        with self.db.begin_nested():
            self.db.add(AuditLog(
                entity_type=type(entity).__name__,
                entity_id=entity.id,
                action=action.value,
                actor=self.actor,
                old_values=before,
                new_values=after,
            ))
        logger.debug(
            "Audit %s %s:%s by %s",
            action.value, type(entity).__name__, entity.id, self.actor,
        )

    def history(self, entity_type: str, entity_id: int) -> list[AuditLog]:
        """All audit records for one entity, oldest first."""
        return list(self.db.execute(
            select(AuditLog)
            .where(
                AuditLog.entity_type == entity_type,
                AuditLog.entity_id == entity_id,
            )
            .order_by(AuditLog.id)
        ).scalars().all())
