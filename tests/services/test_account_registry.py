"""
Tests for the AccountRegistry.

Tests cover:
- Account creation, uniqueness and updates
- Account type immutability
- Active account lookups
- The balance cache (recompute, invalidate, disabled mode)
- Conflicting cache writers
"""

from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy import func, select, text

from ledger_engine.exceptions import (
    AccountNotFoundError,
    AccountTypeImmutableError,
    ConcurrentBalanceConflictError,
    DuplicateAccountError,
)
from ledger_engine.models.enums import AccountType
from ledger_engine.models.transaction import Transaction
from ledger_engine.models.transaction_entry import TransactionEntry
from ledger_engine.schemas.account import AccountCreate, AccountUpdate
from ledger_engine.schemas.transaction import EntryCreate, TransactionCreate
from ledger_engine.services.account_registry import AccountRegistry


def make_account(registry, code, account_type=AccountType.ASSET, **kwargs):
    return registry.create_account(AccountCreate(
        code=code,
        name=kwargs.pop("name", f"Account {code}"),
        account_type=account_type,
        **kwargs,
    ))


class TestCreateAccount:

    def test_create_account_succeeds(self, db_session, registry):
        account = make_account(registry, "1000", name="Cash")
        db_session.commit()

        assert account.id is not None
        assert account.code == "1000"
        assert account.account_type == AccountType.ASSET
        assert account.is_active is True
        assert account.currency == "USD"
        assert account.opening_balance == Decimal("0")

    def test_duplicate_code_rejected(self, db_session, registry):
        make_account(registry, "1000")
        db_session.commit()

        with pytest.raises(DuplicateAccountError, match="already exists"):
            make_account(registry, "1000", name="Cash Again")

    def test_nature_follows_type(self, registry):
        cash = make_account(registry, "1000", AccountType.ASSET)
        loan = make_account(registry, "2000", AccountType.LIABILITY)

        assert cash.is_debit_account
        assert loan.is_credit_account
        assert not loan.is_debit_account

    def test_localized_display_name(self, registry):
        account = make_account(
            registry, "1000", name="Cash", name_localized="Caisse"
        )

        assert account.display_name() == "Cash"
        assert account.display_name(localized=True) == "Caisse"


class TestUpdateAccount:

    def test_update_changes_name_and_active_flag(self, db_session, registry):
        account = make_account(registry, "1000", name="Cash")
        db_session.commit()

        registry.update_account(
            account.id, AccountUpdate(name="Petty Cash", is_active=False)
        )
        db_session.commit()

        assert account.name == "Petty Cash"
        assert account.is_active is False

    def test_account_type_cannot_change(self, db_session, registry):
        account = make_account(registry, "1000", AccountType.ASSET)
        db_session.commit()

        with pytest.raises(AccountTypeImmutableError):
            account.account_type = AccountType.EXPENSE

    def test_update_missing_account(self, registry):
        with pytest.raises(AccountNotFoundError):
            registry.update_account(999, AccountUpdate(name="Nope"))


class TestLookups:

    def test_find_account_returns_none_when_missing(self, registry):
        assert registry.find_account(42) is None

    def test_list_active_accounts_skips_inactive(self, db_session, registry):
        make_account(registry, "2000")
        inactive = make_account(registry, "1500")
        make_account(registry, "1000")
        registry.update_account(inactive.id, AccountUpdate(is_active=False))
        db_session.commit()

        codes = [a.code for a in registry.list_active_accounts()]
        assert codes == ["1000", "2000"]

    def test_list_accounts_by_type(self, registry):
        make_account(registry, "1000", AccountType.ASSET)
        make_account(registry, "4000", AccountType.REVENUE)

        revenue = registry.list_accounts(AccountType.REVENUE)
        assert [a.code for a in revenue] == ["4000"]

    def test_missing_account_ids(self, registry):
        account = make_account(registry, "1000")

        assert registry.missing_account_ids([account.id, 77, 78]) == {77, 78}
        assert registry.missing_account_ids([]) == set()


def post_sale(store, cash, sales, amount):
    return store.create_transaction(TransactionCreate(
        description="Cash sale",
        transaction_date=date(2024, 3, 1),
        transaction_type="JOURNAL",
        total_amount=Decimal(amount),
        entries=[
            EntryCreate(account_id=cash.id, debit_amount=Decimal(amount)),
            EntryCreate(account_id=sales.id, credit_amount=Decimal(amount)),
        ],
    ))


class TestBalanceCache:

    def test_writes_fill_the_cache(self, db_session, registry, store):
        cash = make_account(registry, "1000", AccountType.ASSET)
        sales = make_account(registry, "4000", AccountType.REVENUE)
        post_sale(store, cash, sales, "100")
        db_session.commit()

        assert registry.cached_balance(cash.id) == Decimal("100")
        assert registry.cached_balance(sales.id) == Decimal("100")

    def test_recompute_bumps_version(self, db_session, registry, store):
        from ledger_engine.models.account_balance import AccountBalance

        cash = make_account(registry, "1000", AccountType.ASSET)
        sales = make_account(registry, "4000", AccountType.REVENUE)
        post_sale(store, cash, sales, "100")
        db_session.commit()
        first = db_session.get(AccountBalance, cash.id).version

        post_sale(store, cash, sales, "20")
        db_session.commit()

        row = db_session.get(AccountBalance, cash.id)
        assert row.balance == Decimal("120")
        assert row.version > first

    def test_invalidate_then_current_balance_recomputes(
        self, db_session, registry, store
    ):
        cash = make_account(registry, "1000", AccountType.ASSET)
        sales = make_account(registry, "4000", AccountType.REVENUE)
        post_sale(store, cash, sales, "100")
        db_session.commit()

        registry.invalidate_balances([cash.id])
        db_session.commit()

        assert registry.cached_balance(cash.id) is None
        assert registry.current_balance(cash.id) == Decimal("100")

    def test_disabled_cache_is_never_written(self, db_session):
        registry = AccountRegistry(db_session, cache_enabled=False)
        cash = make_account(registry, "1000", AccountType.ASSET, opening_balance=Decimal("7"))
        db_session.commit()

        assert registry.recompute_balance(cash.id) == Decimal("7")
        assert registry.cached_balance(cash.id) is None
        assert registry.current_balance(cash.id) == Decimal("7")

    def test_balance_is_summed_after_the_locks_are_taken(
        self, db_session, registry, store, monkeypatch
    ):
        cash = make_account(registry, "1000", AccountType.ASSET)
        sales = make_account(registry, "4000", AccountType.REVENUE)
        calls = []
        lock_account = registry._lock_account
        account_balance = registry.calculator.account_balance

        def locking(account_id):
            calls.append(("lock", account_id))
            return lock_account(account_id)

        def summing(account, as_of=None):
            calls.append(("sum", account.id))
            return account_balance(account, as_of)

        monkeypatch.setattr(registry, "_lock_account", locking)
        monkeypatch.setattr(registry.calculator, "account_balance", summing)
        post_sale(store, cash, sales, "100")
        db_session.commit()

        assert calls == [
            ("lock", cash.id), ("sum", cash.id),
            ("lock", sales.id), ("sum", sales.id),
        ]
        assert registry.cached_balance(cash.id) == Decimal("100")

    def test_recompute_missing_account(self, registry):
        with pytest.raises(AccountNotFoundError):
            registry.recompute_balance(404)


class TestBalanceConflicts:
    """
    Another writer changing the cache row between our read and our
    write must fail the whole transaction, not overwrite its result.
    """

    def _count(self, db_session, model):
        return db_session.execute(
            select(func.count()).select_from(model)
        ).scalar_one()

    def test_stale_cache_version_rolls_back_the_write(
        self, db_session, registry, store, monkeypatch
    ):
        cash = make_account(registry, "1000", AccountType.ASSET)
        sales = make_account(registry, "4000", AccountType.REVENUE)
        post_sale(store, cash, sales, "100")
        db_session.commit()

        account_balance = registry.calculator.account_balance

        def racing(account, as_of=None):
            db_session.execute(
                text(
                    "UPDATE account_balances SET version = version + 1 "
                    "WHERE account_id = :id"
                ),
                {"id": account.id},
            )
            return account_balance(account, as_of)

        monkeypatch.setattr(registry.calculator, "account_balance", racing)
        with pytest.raises(ConcurrentBalanceConflictError) as exc_info:
            post_sale(store, cash, sales, "20")
        db_session.rollback()

        assert exc_info.value.account_id == cash.id
        assert self._count(db_session, Transaction) == 1
        assert self._count(db_session, TransactionEntry) == 2
        assert registry.cached_balance(cash.id) == Decimal("100")

    def test_concurrent_first_insert_rolls_back_the_write(
        self, db_session, registry, store, monkeypatch
    ):
        cash = make_account(registry, "1000", AccountType.ASSET)
        sales = make_account(registry, "4000", AccountType.REVENUE)
        db_session.commit()
        account_balance = registry.calculator.account_balance

        def racing(account, as_of=None):
            db_session.execute(
                text(
                    "INSERT INTO account_balances "
                    "(account_id, balance, version, computed_at) "
                    "VALUES (:id, 0, 1, :now)"
                ),
                {"id": account.id, "now": datetime(2024, 3, 15)},
            )
            return account_balance(account, as_of)

        monkeypatch.setattr(registry.calculator, "account_balance", racing)
        with pytest.raises(ConcurrentBalanceConflictError, match="account"):
            post_sale(store, cash, sales, "100")
        db_session.rollback()

        assert self._count(db_session, Transaction) == 0
        assert self._count(db_session, TransactionEntry) == 0
        assert registry.cached_balance(cash.id) is None
