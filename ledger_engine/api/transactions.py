"""
Transaction API endpoints.

Thin layer over LedgerStore: each handler builds the store for
the calling actor, delegates, and commits or rolls back the
request session. The audit record is committed together with
the change it describes.
"""

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ledger_engine.api.dependencies import get_actor, get_clock
from ledger_engine.api.errors import http_error
from ledger_engine.clock import Clock
from ledger_engine.exceptions import LedgerError
from ledger_engine.models.base import get_db
from ledger_engine.models.enums import TransactionType
from ledger_engine.schemas.transaction import (
    ApprovalResponse,
    LockResponse,
    TransactionCreate,
    TransactionFilters,
    TransactionPage,
    TransactionResponse,
    TransactionUpdate,
)
from ledger_engine.services.ledger_store import LedgerStore

router = APIRouter(prefix="/transactions", tags=["Transactions"])


def get_store(
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
    clock: Clock = Depends(get_clock),
) -> LedgerStore:
    return LedgerStore(db, actor, clock=clock)


@router.post("", response_model=TransactionResponse, status_code=201)
def create_transaction(
    request: TransactionCreate,
    db: Session = Depends(get_db),
    store: LedgerStore = Depends(get_store),
):
    """
    Record a balanced transaction.

    Total debits must equal total credits and every entry must
    reference an existing account. Nothing is stored otherwise.
    """
    try:
        txn = store.create_transaction(request)
        db.commit()
        return txn
    except LedgerError as e:
        db.rollback()
        raise http_error(e)


@router.get("", response_model=TransactionPage)
def list_transactions(
    start_date: date | None = None,
    end_date: date | None = None,
    transaction_type: TransactionType | None = None,
    is_locked: bool | None = None,
    search: str | None = None,
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=15, ge=1, le=100),
    store: LedgerStore = Depends(get_store),
):
    """Transactions newest first, optionally filtered."""
    filters = TransactionFilters(
        start_date=start_date,
        end_date=end_date,
        transaction_type=transaction_type,
        is_locked=is_locked,
        search=search,
        page=page,
        per_page=per_page,
    )
    items, total = store.list_transactions(filters)
    return TransactionPage(
        items=[TransactionResponse.model_validate(t) for t in items],
        total=total,
        page=page,
        per_page=per_page,
        last_page=LedgerStore.last_page(total, per_page),
    )


@router.get("/{transaction_id}", response_model=TransactionResponse)
def get_transaction(
    transaction_id: int,
    store: LedgerStore = Depends(get_store),
):
    try:
        return store.get_transaction(transaction_id)
    except LedgerError as e:
        raise http_error(e)


@router.put("/{transaction_id}", response_model=TransactionResponse)
def update_transaction(
    transaction_id: int,
    request: TransactionUpdate,
    db: Session = Depends(get_db),
    store: LedgerStore = Depends(get_store),
):
    """
    Replace a transaction's details and all of its entries.

    Locked transactions are rejected with 409.
    """
    try:
        txn = store.update_transaction(transaction_id, request)
        db.commit()
        return txn
    except LedgerError as e:
        db.rollback()
        raise http_error(e)


@router.delete("/{transaction_id}", status_code=204)
def delete_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    store: LedgerStore = Depends(get_store),
):
    try:
        store.delete_transaction(transaction_id)
        db.commit()
    except LedgerError as e:
        db.rollback()
        raise http_error(e)


@router.post("/{transaction_id}/lock", response_model=LockResponse)
def lock_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    store: LedgerStore = Depends(get_store),
):
    """Lock a transaction. Locking twice is not an error."""
    try:
        changed = store.lock_transaction(transaction_id)
        db.commit()
    except LedgerError as e:
        db.rollback()
        raise http_error(e)
    return LockResponse(
        transaction_id=transaction_id, changed=changed, is_locked=True
    )


@router.post("/{transaction_id}/unlock", response_model=LockResponse)
def unlock_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    store: LedgerStore = Depends(get_store),
):
    try:
        changed = store.unlock_transaction(transaction_id)
        db.commit()
    except LedgerError as e:
        db.rollback()
        raise http_error(e)
    return LockResponse(
        transaction_id=transaction_id, changed=changed, is_locked=False
    )


@router.post("/{transaction_id}/approve", response_model=ApprovalResponse)
def approve_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    store: LedgerStore = Depends(get_store),
):
    """Approve a transaction as the calling actor. A second approval is refused."""
    try:
        txn = store.approve_transaction(transaction_id)
        db.commit()
    except LedgerError as e:
        db.rollback()
        raise http_error(e)
    return ApprovalResponse(
        transaction_id=txn.id,
        approved_by=txn.approved_by,
        approved_at=txn.approved_at,
    )


@router.post(
    "/{transaction_id}/duplicate",
    response_model=TransactionResponse,
    status_code=201,
)
def duplicate_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    store: LedgerStore = Depends(get_store),
):
    """Copy a transaction as a new unlocked one dated today."""
    try:
        txn = store.duplicate_transaction(transaction_id)
        db.commit()
        return txn
    except LedgerError as e:
        db.rollback()
        raise http_error(e)
