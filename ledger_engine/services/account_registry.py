"""
Account registry: the chart of accounts and its balance cache.

Holds account metadata and answers the lookups the rest of the
ledger needs (find an account, list active accounts). It also
owns the account_balances cache: recompute_balance is the only
writer. It locks the account row and then its cache row before
summing, so two writers touching the same account are serialized.
"""

import logging
from decimal import Decimal

from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ledger_engine.config import get_settings
from ledger_engine.exceptions import (
    AccountNotFoundError,
    ConcurrentBalanceConflictError,
    DuplicateAccountError,
)
from ledger_engine.models.account import Account
from ledger_engine.models.account_balance import AccountBalance
from ledger_engine.models.enums import AccountType
from ledger_engine.schemas.account import AccountCreate, AccountUpdate
from ledger_engine.services.balance_calculator import BalanceCalculator

logger = logging.getLogger(__name__)


class AccountRegistry:

    def __init__(
        self,
        db: Session,
        calculator: BalanceCalculator | None = None,
        cache_enabled: bool | None = None,
    ):
        self.db = db
        self.calculator = calculator or BalanceCalculator(db)
        if cache_enabled is None:
            cache_enabled = get_settings().BALANCE_CACHE_ENABLED
        self.cache_enabled = cache_enabled

    # --- Accounts ---

    def create_account(self, request: AccountCreate) -> Account:
        """
        Create a new account.

        Raises DuplicateAccountError if the code is already taken.
        """
        if self.find_by_code(request.code):
            raise DuplicateAccountError(request.code)

        account = Account(
            code=request.code,
            name=request.name,
            name_localized=request.name_localized,
            account_type=request.account_type,
            opening_balance=request.opening_balance,
            currency=request.currency,
            description=request.description,
        )
        self.db.add(account)
        self.db.flush()
        logger.info(
            "Created account %s (%s)", account.code, account.account_type.value
        )
        return account

    def update_account(self, account_id: int, request: AccountUpdate) -> Account:
        account = self.get_account(account_id)
        for field, value in request.model_dump(exclude_unset=True).items():
            if value is None and field in ("name", "is_active"):
                continue
            setattr(account, field, value)
        self.db.flush()
        return account

    def find_account(self, account_id: int) -> Account | None:
        return self.db.get(Account, account_id)

    def get_account(self, account_id: int) -> Account:
        account = self.find_account(account_id)
        if not account:
            raise AccountNotFoundError([account_id])
        return account

    def find_by_code(self, code: str) -> Account | None:
        return self.db.execute(
            select(Account).where(Account.code == code)
        ).scalar_one_or_none()

    def list_accounts(
        self,
        account_type: AccountType | None = None,
        active_only: bool = False,
    ) -> list[Account]:
        stmt = select(Account).order_by(Account.code)
        if account_type is not None:
            stmt = stmt.where(Account.account_type == account_type)
        if active_only:
            stmt = stmt.where(Account.is_active.is_(True))
        return list(self.db.execute(stmt).scalars().all())

    def list_active_accounts(self) -> list[Account]:
        return self.list_accounts(active_only=True)

    def missing_account_ids(self, account_ids) -> set[int]:
        """Return the ids that do not resolve to an account."""
        wanted = set(account_ids)
        if not wanted:
            return set()
        found = self.db.execute(
            select(Account.id).where(Account.id.in_(wanted))
        ).scalars().all()
        return wanted - set(found)

    # --- Balance cache ---

    def cached_balance(self, account_id: int) -> Decimal | None:
        row = self.db.get(AccountBalance, account_id)
        return row.balance if row else None

    def current_balance(self, account_id: int) -> Decimal:
        """Cached balance when available, otherwise computed from entries."""
        account = self.get_account(account_id)
        if self.cache_enabled:
            cached = self.cached_balance(account_id)
            if cached is not None:
                return cached
        return self.calculator.account_balance(account)

    def _lock_account(self, account_id: int) -> Account:
        account = self.db.execute(
            select(Account)
            .where(Account.id == account_id)
            .with_for_update()
        ).scalar_one_or_none()
        if not account:
            raise AccountNotFoundError([account_id])
        return account

    def recompute_balance(self, account_id: int) -> Decimal:
        """
        Recompute an account's balance and store it in the cache.

        The caller must have flushed the entries it just wrote.
        The account row and its cache row are taken with
        SELECT ... FOR UPDATE, so a second writer for the same
        account waits until the first commits. On databases
        without row locks the version column catches the race and
        ConcurrentBalanceConflictError is raised instead.
        """
        if not self.cache_enabled:
            return self.calculator.account_balance(self.get_account(account_id))

        try:
            with self.db.begin_nested():
                account = self._lock_account(account_id)
                row = self.db.execute(
                    select(AccountBalance)
                    .where(AccountBalance.account_id == account_id)
                    .with_for_update()
                    .execution_options(populate_existing=True)
                ).scalar_one_or_none()

                # Sum only once the locks are held, so entries committed
                # by the previous lock holder are included.
                balance = self.calculator.account_balance(account)

                if row is None:
                    self.db.add(AccountBalance(account_id=account_id, balance=balance))
                else:
                    row.balance = balance
        except (StaleDataError, IntegrityError) as e:
            logger.warning("Balance cache conflict on account %s", account_id)
            raise ConcurrentBalanceConflictError(account_id) from e

        return balance

    def recompute_balances(self, account_ids) -> dict[int, Decimal]:
        # Ascending id order keeps lock acquisition consistent
        # across writers and avoids deadlocks.
        return {
            account_id: self.recompute_balance(account_id)
            for account_id in sorted(set(account_ids))
        }

    def invalidate_balances(self, account_ids) -> None:
        ids = set(account_ids)
        if not ids or not self.cache_enabled:
            return
        self.db.execute(
            delete(AccountBalance).where(AccountBalance.account_id.in_(ids))
        )
