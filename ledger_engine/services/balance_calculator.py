"""
Balance calculator.

An account's balance is never stored as a source of truth. It
is always derived from the opening balance plus the entries
posted to it. The sign convention depends on the account type:

    ASSET, EXPENSE:              opening + debits - credits
    LIABILITY, EQUITY, REVENUE:  opening + credits - debits

An account type outside that mapping contributes no entries and
reports its opening balance. That fallback is logged as a
warning every time it is hit so bad data does not go unnoticed.

The module-level functions are pure. BalanceCalculator only adds
the queries that gather entry totals; it never looks at the
clock, so a balance "as of" a date is reproducible.
"""

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from ledger_engine.models.account import Account
from ledger_engine.models.enums import AccountType, BalanceNature, BALANCE_NATURE
from ledger_engine.models.transaction import Transaction
from ledger_engine.models.transaction_entry import TransactionEntry

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
AMOUNT_PLACES = Decimal("0.0001")


def to_amount(value) -> Decimal:
    """Coerce a database or Python number to a 4-place Decimal."""
    if value is None:
        return ZERO.quantize(AMOUNT_PLACES)
    return Decimal(str(value)).quantize(AMOUNT_PLACES)


def balance_nature(account_type) -> BalanceNature | None:
    """Debit- or credit-natural, or None for an unrecognized type."""
    try:
        return BALANCE_NATURE[AccountType(account_type)]
    except (ValueError, KeyError):
        return None


def compute_balance(
    account_type,
    opening_balance: Decimal,
    total_debits: Decimal,
    total_credits: Decimal,
) -> Decimal:
    nature = balance_nature(account_type)
    opening = to_amount(opening_balance)
    if nature == BalanceNature.DEBIT:
        return opening + to_amount(total_debits) - to_amount(total_credits)
    if nature == BalanceNature.CREDIT:
        return opening + to_amount(total_credits) - to_amount(total_debits)

    logger.warning(
        "Unrecognized account type %r; ignoring entries and "
        "returning the opening balance",
        account_type,
    )
    return opening


def signed_movement(account_type, debit: Decimal, credit: Decimal) -> Decimal:
    """How much one entry moves the balance of an account of this type."""
    nature = balance_nature(account_type)
    if nature == BalanceNature.DEBIT:
        return to_amount(debit) - to_amount(credit)
    if nature == BalanceNature.CREDIT:
        return to_amount(credit) - to_amount(debit)
    return to_amount(ZERO)


class BalanceCalculator:
    """Computes balances from the entry history."""

    def __init__(self, db: Session):
        self.db = db

    def _entry_totals(
        self, account_ids: list[int], as_of: date | None
    ) -> dict[int, tuple[Decimal, Decimal]]:
        """Sum debits and credits per account in one grouped query."""
        if not account_ids:
            return {}

        stmt = (
            select(
                TransactionEntry.account_id,
                func.coalesce(func.sum(TransactionEntry.debit_amount), 0),
                func.coalesce(func.sum(TransactionEntry.credit_amount), 0),
            )
            .join(Transaction, TransactionEntry.transaction_id == Transaction.id)
            .where(TransactionEntry.account_id.in_(account_ids))
            .group_by(TransactionEntry.account_id)
        )
        if as_of is not None:
            stmt = stmt.where(Transaction.transaction_date <= as_of)

        return {
            account_id: (to_amount(debits), to_amount(credits))
            for account_id, debits, credits in self.db.execute(stmt)
        }

    def account_balance(
        self, account: Account, as_of: date | None = None
    ) -> Decimal:
        """
        Balance of one account including every transaction dated
        on or before as_of. as_of=None means no upper bound.
        """
        debits, credits = self._entry_totals([account.id], as_of).get(
            account.id, (ZERO, ZERO)
        )
        return compute_balance(
            account.account_type, account.opening_balance, debits, credits
        )

    def balances_as_of(
        self, accounts: list[Account], as_of: date | None = None
    ) -> dict[int, Decimal]:
        """Balances for many accounts without one query per account."""
        totals = self._entry_totals([a.id for a in accounts], as_of)
        balances = {}
        for account in accounts:
            debits, credits = totals.get(account.id, (ZERO, ZERO))
            balances[account.id] = compute_balance(
                account.account_type, account.opening_balance, debits, credits
            )
        return balances
