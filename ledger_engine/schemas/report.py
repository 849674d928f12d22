"""
Pydantic schemas for ledger reports.
"""

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel

from ledger_engine.models.enums import AccountType


class TrialBalanceRow(BaseModel):
    account_code: str
    account_name: str
    account_type: AccountType
    debit_balance: Decimal
    credit_balance: Decimal
    balance: Decimal


class TrialBalanceTotals(BaseModel):
    total_debit: Decimal
    total_credit: Decimal
    is_balanced: bool


class TrialBalance(BaseModel):
    as_of: dt.date
    rows: list[TrialBalanceRow]
    totals: TrialBalanceTotals


class GeneralLedgerRow(BaseModel):
    date: dt.date
    reference: str
    description: str
    debit: Decimal
    credit: Decimal
    running_balance: Decimal


class GeneralLedger(BaseModel):
    account_id: int
    account_code: str
    account_name: str
    account_type: AccountType
    start_date: dt.date
    end_date: dt.date
    opening_balance: Decimal
    closing_balance: Decimal
    rows: list[GeneralLedgerRow]
