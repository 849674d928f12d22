"""
Ledger reporting.

Read-only views over the ledger: the trial balance (every
non-zero account balance split into debit and credit columns)
and the general ledger (one account's entries with a running
balance). Nothing here writes to the database.
"""

import logging
from collections.abc import Iterator
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_engine.clock import Clock, SystemClock
from ledger_engine.config import get_settings
from ledger_engine.exceptions import LedgerError
from ledger_engine.models.enums import BalanceNature
from ledger_engine.models.transaction import Transaction
from ledger_engine.models.transaction_entry import TransactionEntry
from ledger_engine.schemas.report import (
    GeneralLedger,
    GeneralLedgerRow,
    TrialBalance,
    TrialBalanceRow,
    TrialBalanceTotals,
)
from ledger_engine.services.account_registry import AccountRegistry
from ledger_engine.services.balance_calculator import (
    ZERO,
    BalanceCalculator,
    balance_nature,
    compute_balance,
    signed_movement,
    to_amount,
)

logger = logging.getLogger(__name__)


class LedgerReporting:

    def __init__(
        self,
        db: Session,
        registry: AccountRegistry | None = None,
        calculator: BalanceCalculator | None = None,
        clock: Clock | None = None,
        page_size: int | None = None,
    ):
        self.db = db
        self.calculator = calculator or BalanceCalculator(db)
        self.registry = registry or AccountRegistry(db, self.calculator)
        self.clock = clock or SystemClock()
        self.page_size = page_size or get_settings().LEDGER_PAGE_SIZE

    def trial_balance(self, as_of: date | None = None) -> TrialBalance:
        """
        Trial balance as of a date (today when omitted).

        One row per active account with a non-zero balance, ordered
        by account code. A positive balance goes in the column of the
        account's natural side; anything else shows 0 in both columns.
        """
        as_of = as_of or self.clock.today()
        accounts = self.registry.list_active_accounts()
        balances = self.calculator.balances_as_of(accounts, as_of)

        rows = []
        total_debit = total_credit = to_amount(ZERO)
        for account in accounts:
            balance = balances[account.id]
            if balance == 0:
                continue

            nature = balance_nature(account.account_type)
            debit = credit = to_amount(ZERO)
            if balance > 0 and nature == BalanceNature.DEBIT:
                debit = balance
            elif balance > 0 and nature == BalanceNature.CREDIT:
                credit = balance

            rows.append(TrialBalanceRow(
                account_code=account.code,
                account_name=account.display_name(),
                account_type=account.account_type,
                debit_balance=debit,
                credit_balance=credit,
                balance=balance,
            ))
            total_debit += debit
            total_credit += credit

        if total_debit != total_credit:
            logger.warning(
                "Trial balance as of %s is out of balance: debit=%s credit=%s",
                as_of, total_debit, total_credit,
            )

        return TrialBalance(
            as_of=as_of,
            rows=rows,
            totals=TrialBalanceTotals(
                total_debit=total_debit,
                total_credit=total_credit,
                is_balanced=total_debit == total_credit,
            ),
        )

    def _window(self, start: date | None, end: date | None) -> tuple[date, date]:
        today = self.clock.today()
        start = start or date(today.year, 1, 1)
        end = end or today
        if start > end:
            raise LedgerError(
                f"Start date {start} is after end date {end}"
            )
        return start, end

    def _balance_before(self, account, start: date) -> Decimal:
        """Balance at the end of the day before start."""
        if start == date.min:
            # No day precedes it, so no entry can be dated earlier
            return compute_balance(
                account.account_type, account.opening_balance, ZERO, ZERO
            )
        return self.calculator.account_balance(account, start - timedelta(days=1))

    def iter_general_ledger(
        self,
        account_id: int,
        start: date | None = None,
        end: date | None = None,
    ) -> Iterator[GeneralLedgerRow]:
        """
        Stream general ledger rows for one account.

        Rows are fetched in batches of page_size, so a long history
        is never loaded at once. The running balance starts from the
        balance at the end of the day before start and moves by one
        entry at a time.
        """
        account = self.registry.get_account(account_id)
        start, end = self._window(start, end)

        running = self._balance_before(account, start)

        stmt = (
            select(
                Transaction.transaction_date,
                Transaction.reference_number,
                Transaction.description,
                TransactionEntry.description,
                TransactionEntry.debit_amount,
                TransactionEntry.credit_amount,
            )
            .join(Transaction, TransactionEntry.transaction_id == Transaction.id)
            .where(
                TransactionEntry.account_id == account.id,
                Transaction.transaction_date >= start,
                Transaction.transaction_date <= end,
            )
            .order_by(
                Transaction.transaction_date,
                Transaction.id,
                TransactionEntry.id,
            )
            .execution_options(yield_per=self.page_size)
        )

        for txn_date, reference, txn_desc, entry_desc, debit, credit in (
            self.db.execute(stmt)
        ):
            running += signed_movement(account.account_type, debit, credit)
            yield GeneralLedgerRow(
                date=txn_date,
                reference=reference,
                description=entry_desc or txn_desc,
                debit=to_amount(debit),
                credit=to_amount(credit),
                running_balance=running,
            )

    def general_ledger(
        self,
        account_id: int,
        start: date | None = None,
        end: date | None = None,
    ) -> GeneralLedger:
        account = self.registry.get_account(account_id)
        start, end = self._window(start, end)

        opening = self._balance_before(account, start)
        rows = list(self.iter_general_ledger(account_id, start, end))
        closing = rows[-1].running_balance if rows else opening

        return GeneralLedger(
            account_id=account.id,
            account_code=account.code,
            account_name=account.display_name(),
            account_type=account.account_type,
            start_date=start,
            end_date=end,
            opening_balance=opening,
            closing_balance=closing,
            rows=rows,
        )
