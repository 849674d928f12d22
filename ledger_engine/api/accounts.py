"""
Account API endpoints.

The chart of accounts, balances, and the per-account general
ledger. Balances are always derived from entries; the cache is
used only for the current balance.
"""

from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ledger_engine.api.dependencies import get_clock
from ledger_engine.api.errors import http_error
from ledger_engine.clock import Clock
from ledger_engine.exceptions import LedgerError
from ledger_engine.models.base import get_db
from ledger_engine.models.enums import AccountType
from ledger_engine.schemas.account import (
    AccountCreate,
    AccountUpdate,
    AccountResponse,
    AccountBalanceResponse,
)
from ledger_engine.schemas.report import GeneralLedger
from ledger_engine.services.account_registry import AccountRegistry
from ledger_engine.services.reporting import LedgerReporting

router = APIRouter(prefix="/accounts", tags=["Accounts"])


@router.post("", response_model=AccountResponse, status_code=201)
def create_account(
    request: AccountCreate,
    db: Session = Depends(get_db),
):
    """
    Create a new account.

    Every account must exist before entries can be posted to it.
    """
    registry = AccountRegistry(db)
    try:
        account = registry.create_account(request)
        db.commit()
        return account
    except LedgerError as e:
        db.rollback()
        raise http_error(e)


@router.get("", response_model=list[AccountResponse])
def list_accounts(
    account_type: AccountType | None = None,
    active_only: bool = False,
    db: Session = Depends(get_db),
):
    """List accounts ordered by code."""
    registry = AccountRegistry(db)
    return registry.list_accounts(account_type, active_only)


@router.get("/{account_id}", response_model=AccountResponse)
def get_account(
    account_id: int,
    db: Session = Depends(get_db),
):
    registry = AccountRegistry(db)
    try:
        return registry.get_account(account_id)
    except LedgerError as e:
        raise http_error(e)


@router.patch("/{account_id}", response_model=AccountResponse)
def update_account(
    account_id: int,
    request: AccountUpdate,
    db: Session = Depends(get_db),
):
    """Update an account's name, description or active flag."""
    registry = AccountRegistry(db)
    try:
        account = registry.update_account(account_id, request)
        db.commit()
        return account
    except LedgerError as e:
        db.rollback()
        raise http_error(e)


@router.get("/{account_id}/balance", response_model=AccountBalanceResponse)
def get_account_balance(
    account_id: int,
    as_of: date | None = None,
    db: Session = Depends(get_db),
):
    """
    Balance of an account, now or as of the end of a given day.
    """
    registry = AccountRegistry(db)
    try:
        account = registry.get_account(account_id)
    except LedgerError as e:
        raise http_error(e)

    if as_of is None:
        balance = registry.current_balance(account_id)
    else:
        balance = registry.calculator.account_balance(account, as_of)

    return AccountBalanceResponse(
        account_id=account.id,
        account_code=account.code,
        account_type=account.account_type,
        balance=balance,
        currency=account.currency,
        as_of=as_of,
    )


@router.get("/{account_id}/ledger", response_model=GeneralLedger)
def get_general_ledger(
    account_id: int,
    start: date | None = None,
    end: date | None = None,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """
    General ledger for one account with a running balance.

    Defaults to the current year up to today.
    """
    reporting = LedgerReporting(db, clock=clock)
    try:
        return reporting.general_ledger(account_id, start, end)
    except LedgerError as e:
        raise http_error(e)
