"""
Ledger store, the core of the ledger engine.

This service enforces the fundamental rules:
1. Every transaction has at least one entry
2. Every entry references an existing account
3. Every transaction balances (debits = credits), checked over
   the rows actually written, not over the request
4. A locked transaction cannot be updated or deleted

Each write runs inside a SAVEPOINT on the caller's session. If a
rule fails, the savepoint is rolled back and nothing of the
operation remains; the caller still decides when to commit.

No other service writes transactions or entries. All ledger
changes go through this service.
"""

import logging
import math

from sqlalchemy import select, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from ledger_engine.clock import Clock, SystemClock
from ledger_engine.config import get_settings
from ledger_engine.exceptions import (
    AccountNotFoundError,
    EmptyEntrySetError,
    LedgerError,
    LockedTransactionError,
    TransactionAlreadyApprovedError,
    TransactionNotFoundError,
    UnbalancedTransactionError,
)
from ledger_engine.models.enums import AuditAction
from ledger_engine.models.reference_sequence import ReferenceSequence
from ledger_engine.models.transaction import Transaction, SourceLink
from ledger_engine.models.transaction_entry import TransactionEntry
from ledger_engine.schemas.transaction import (
    EntryCreate,
    SourceLinkSchema,
    TransactionCreate,
    TransactionFilters,
    TransactionResponse,
    TransactionUpdate,
)
from ledger_engine.services.account_registry import AccountRegistry
from ledger_engine.services.audit_sink import AuditSink, DatabaseAuditSink
from ledger_engine.services.balance_calculator import to_amount

logger = logging.getLogger(__name__)


def contains_pattern(text: str) -> str:
    """LIKE pattern matching text literally anywhere in a column."""
    escaped = (
        text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    )
    return f"%{escaped}%"


def transaction_snapshot(txn: Transaction) -> dict:
    """JSON-safe picture of a transaction and its entries."""
    return TransactionResponse.model_validate(txn).model_dump(mode="json")


class LedgerStore:
    """
    All transaction writes pass through this service.

    The store takes a database session and the identity of the
    caller. The caller controls the outer transaction boundary:
    they decide when to commit or rollback.
    """

    def __init__(
        self,
        db: Session,
        actor: str,
        *,
        registry: AccountRegistry | None = None,
        audit_sink: AuditSink | None = None,
        clock: Clock | None = None,
    ):
        if not actor:
            raise ValueError("A caller identity is required")
        self.db = db
        self.actor = actor
        self.registry = registry or AccountRegistry(db)
        self.audit_sink = audit_sink or DatabaseAuditSink(db, actor)
        self.clock = clock or SystemClock()
        self.settings = get_settings()

    # --- Reads ---

    def get_transaction(self, transaction_id: int) -> Transaction:
        txn = self.db.get(Transaction, transaction_id)
        if not txn:
            raise TransactionNotFoundError(transaction_id)
        return txn

    def list_transactions(
        self, filters: TransactionFilters
    ) -> tuple[list[Transaction], int]:
        """Filtered page of transactions, newest first, plus the total count."""
        conditions = []
        if filters.start_date is not None:
            conditions.append(Transaction.transaction_date >= filters.start_date)
        if filters.end_date is not None:
            conditions.append(Transaction.transaction_date <= filters.end_date)
        if filters.transaction_type is not None:
            conditions.append(
                Transaction.transaction_type == filters.transaction_type
            )
        if filters.is_locked is not None:
            conditions.append(Transaction.is_locked.is_(filters.is_locked))
        if filters.search:
            pattern = contains_pattern(filters.search)
            conditions.append(or_(
                Transaction.reference_number.ilike(pattern, escape="\\"),
                Transaction.description.ilike(pattern, escape="\\"),
                Transaction.description_localized.ilike(pattern, escape="\\"),
            ))

        total = self.db.execute(
            select(func.count(Transaction.id)).where(*conditions)
        ).scalar_one()

        items = self.db.execute(
            select(Transaction)
            .where(*conditions)
            .options(selectinload(Transaction.entries))
            .order_by(Transaction.transaction_date.desc(), Transaction.id.desc())
            .offset((filters.page - 1) * filters.per_page)
            .limit(filters.per_page)
        ).scalars().all()

        return list(items), total

    @staticmethod
    def last_page(total: int, per_page: int) -> int:
        return max(1, math.ceil(total / per_page))

    # --- Writes ---

    def create_transaction(self, request: TransactionCreate) -> Transaction:
        """
        Create a transaction and its entries as one unit.

        Account ids are checked before anything is written. The
        balance check runs after the entries are flushed, over the
        stored amounts. On success the cached balance of every
        account touched is recomputed and the audit sink notified.
        """
        self._validate_entries(request.entries)

        if request.reference_number and self._reference_exists(
            request.reference_number
        ):
            raise LedgerError(
                f"Reference number '{request.reference_number}' already exists"
            )

        with self.db.begin_nested():
            now = self.clock.now()
            txn = Transaction(
                reference_number=(
                    request.reference_number or self._next_reference_number()
                ),
                description=request.description,
                description_localized=request.description_localized,
                transaction_date=request.transaction_date,
                transaction_type=request.transaction_type,
                total_amount=request.total_amount,
                currency=request.currency,
                exchange_rate=request.exchange_rate,
                cost_center_id=request.cost_center_id,
                tags=request.tags,
                notes=request.notes,
                created_by=self.actor,
                created_at=now,
                updated_at=now,
            )
            if request.source is not None:
                txn.source = SourceLink(
                    request.source.source_type, request.source.source_id
                )
            txn.entries = self._build_entries(request.entries)
            self.db.add(txn)
            try:
                self.db.flush()
            except IntegrityError as e:
                # A concurrent writer took the same reference number
                raise LedgerError(
                    f"Reference number '{txn.reference_number}' already exists"
                ) from e

            self._assert_balanced(txn.id)
            self.registry.recompute_balances(e.account_id for e in txn.entries)

        logger.info(
            "Created transaction %s (%s) with %d entries",
            txn.reference_number, txn.id, len(txn.entries),
        )
        self._notify(txn, AuditAction.CREATED, after=transaction_snapshot(txn))
        return txn

    def update_transaction(
        self, transaction_id: int, request: TransactionUpdate
    ) -> Transaction:
        """
        Replace a transaction's fields and its whole entry set.

        The old entries are deleted and the new ones inserted; there
        is no per-entry patching. Balances are recomputed for every
        account in the old or the new entry set, since an account
        dropped from the transaction changes too.
        """
        txn = self._get_for_update(transaction_id)
        if txn.is_locked:
            raise LockedTransactionError(transaction_id, "update")

        self._validate_entries(request.entries, transaction_id)

        before = transaction_snapshot(txn)
        old_account_ids = {e.account_id for e in txn.entries}

        with self.db.begin_nested():
            txn.description = request.description
            txn.description_localized = request.description_localized
            txn.transaction_date = request.transaction_date
            txn.total_amount = request.total_amount
            txn.currency = request.currency
            txn.exchange_rate = request.exchange_rate
            txn.cost_center_id = request.cost_center_id
            txn.tags = request.tags
            txn.notes = request.notes
            txn.updated_at = self.clock.now()

            # Retire the old entry set before installing the new one
            txn.entries.clear()
            self.db.flush()
            txn.entries.extend(self._build_entries(request.entries))
            self.db.flush()

            self._assert_balanced(txn.id)
            new_account_ids = {e.account_id for e in txn.entries}
            self.registry.recompute_balances(old_account_ids | new_account_ids)

        logger.info("Updated transaction %s (%s)", txn.reference_number, txn.id)
        self._notify(
            txn, AuditAction.UPDATED,
            before=before, after=transaction_snapshot(txn),
        )
        return txn

    def lock_transaction(self, transaction_id: int) -> bool:
        """Lock a transaction. Returns False if it was already locked."""
        txn = self._get_for_update(transaction_id)
        if txn.is_locked:
            return False

        txn.is_locked = True
        txn.updated_at = self.clock.now()
        self.db.flush()

        logger.info("Locked transaction %s (%s)", txn.reference_number, txn.id)
        self._notify(txn, AuditAction.LOCKED)
        return True

    def unlock_transaction(self, transaction_id: int) -> bool:
        """Unlock a transaction. Returns False if it was not locked."""
        txn = self._get_for_update(transaction_id)
        if not txn.is_locked:
            return False

        txn.is_locked = False
        txn.updated_at = self.clock.now()
        self.db.flush()

        logger.info("Unlocked transaction %s (%s)", txn.reference_number, txn.id)
        self._notify(txn, AuditAction.UNLOCKED)
        return True

    def approve_transaction(self, transaction_id: int) -> Transaction:
        """
        Sign off a transaction as the current actor.

        Approval is recorded once; a second approval is refused
        and the first approver kept. A locked transaction cannot
        be approved.
        """
        txn = self._get_for_update(transaction_id)
        if txn.is_locked:
            raise LockedTransactionError(transaction_id, "approve")
        if txn.is_approved:
            raise TransactionAlreadyApprovedError(transaction_id, txn.approved_by)

        before = transaction_snapshot(txn)
        txn.approved_by = self.actor
        txn.approved_at = self.clock.now()
        txn.updated_at = txn.approved_at
        self.db.flush()

        logger.info(
            "Approved transaction %s (%s) by %s",
            txn.reference_number, txn.id, self.actor,
        )
        self._notify(
            txn, AuditAction.APPROVED,
            before=before, after=transaction_snapshot(txn),
        )
        return txn

    def delete_transaction(self, transaction_id: int) -> bool:
        """
        Delete an unlocked transaction and its entries.

        Balances are derived on read, so nothing is recomputed here;
        the cached balances of the affected accounts are dropped and
        rebuilt on the next write or recompute.
        """
        txn = self._get_for_update(transaction_id)
        if txn.is_locked:
            raise LockedTransactionError(transaction_id, "delete")

        before = transaction_snapshot(txn)
        account_ids = {e.account_id for e in txn.entries}

        with self.db.begin_nested():
            # Cascade removes the entries before the transaction row
            self.db.delete(txn)
            self.db.flush()
            self.registry.invalidate_balances(account_ids)

        logger.info("Deleted transaction %s (%s)", txn.reference_number, txn.id)
        self._notify(txn, AuditAction.DELETED, before=before)
        return True

    def duplicate_transaction(self, transaction_id: int) -> Transaction:
        """
        Copy a transaction as a new, unlocked one dated today.

        The copy gets a fresh reference number and no source link;
        it is a manual re-entry, not another posting of the same event.
        """
        original = self.get_transaction(transaction_id)
        return self.create_transaction(TransactionCreate(
            description=f"{original.description} (Copy)",
            description_localized=(
                f"{original.description_localized} (Copy)"
                if original.description_localized else None
            ),
            transaction_date=self.clock.today(),
            transaction_type=original.transaction_type,
            total_amount=original.total_amount,
            currency=original.currency,
            exchange_rate=original.exchange_rate,
            cost_center_id=original.cost_center_id,
            tags=original.tags,
            notes=original.notes,
            entries=[
                EntryCreate(
                    account_id=e.account_id,
                    debit_amount=e.debit_amount,
                    credit_amount=e.credit_amount,
                    description=e.description,
                    description_localized=e.description_localized,
                    metadata=e.entry_metadata,
                )
                for e in original.entries
            ],
        ))

    # --- Internals ---

    def _get_for_update(self, transaction_id: int) -> Transaction:
        """Load a transaction with its row locked for this unit of work."""
        txn = self.db.execute(
            select(Transaction)
            .where(Transaction.id == transaction_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if not txn:
            raise TransactionNotFoundError(transaction_id)
        return txn

    def _validate_entries(
        self, entries: list[EntryCreate], transaction_id: int | None = None
    ) -> None:
        if not entries:
            raise EmptyEntrySetError(transaction_id)

        missing = self.registry.missing_account_ids(e.account_id for e in entries)
        if missing:
            raise AccountNotFoundError(missing, transaction_id)

    @staticmethod
    def _build_entries(entries: list[EntryCreate]) -> list[TransactionEntry]:
        return [
            TransactionEntry(
                account_id=e.account_id,
                debit_amount=e.debit_amount,
                credit_amount=e.credit_amount,
                description=e.description,
                description_localized=e.description_localized,
                entry_metadata=e.metadata,
            )
            for e in entries
        ]

    def _assert_balanced(self, transaction_id: int) -> None:
        """Re-sum the persisted entries and reject any imbalance."""
        count, debits, credits = self.db.execute(
            select(
                func.count(TransactionEntry.id),
                func.coalesce(func.sum(TransactionEntry.debit_amount), 0),
                func.coalesce(func.sum(TransactionEntry.credit_amount), 0),
            ).where(TransactionEntry.transaction_id == transaction_id)
        ).one()

        if count == 0:
            raise EmptyEntrySetError(transaction_id)

        total_debits, total_credits = to_amount(debits), to_amount(credits)
        if total_debits != total_credits:
            logger.warning(
                "Rejected unbalanced transaction %s: debits=%s credits=%s",
                transaction_id, total_debits, total_credits,
            )
            raise UnbalancedTransactionError(
                total_debits, total_credits, transaction_id
            )

    def _reference_exists(self, reference_number: str) -> bool:
        return self.db.execute(
            select(Transaction.id).where(
                Transaction.reference_number == reference_number
            )
        ).first() is not None

    def _next_reference_number(self) -> str:
        """
        Allocate the next TXN-YYYYMMDD-NNNN reference.

        The per-day counter row is locked while it is read and
        incremented, so concurrent writers get distinct numbers.
        """
        name = f"{self.settings.REFERENCE_PREFIX}-{self.clock.today():%Y%m%d}"
        seq = self._lock_sequence(name)
        if seq is None:
            try:
                with self.db.begin_nested():
                    self.db.add(ReferenceSequence(name=name, next_value=1))
            except IntegrityError:
                # Another writer created today's counter first
                pass
            seq = self._lock_sequence(name)

        value = seq.next_value
        seq.next_value = value + 1
        self.db.flush()
        return f"{name}-{value:04d}"

    def _lock_sequence(self, name: str) -> ReferenceSequence | None:
        return self.db.execute(
            select(ReferenceSequence)
            .where(ReferenceSequence.name == name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _notify(
        self,
        txn: Transaction,
        action: AuditAction,
        before: dict | None = None,
        after: dict | None = None,
    ) -> None:
        """Report to the audit sink. A sink failure never undoes the write."""
        try:
            self.audit_sink.log_activity(txn, action, before, after)
        except Exception:
            logger.exception(
                "Audit sink failed for transaction %s (%s)",
                txn.id, action.value,
            )
