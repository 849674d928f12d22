"""
Database models package.

All models must be imported here so that Alembic can discover
them through Base.metadata when generating migrations.
"""

from ledger_engine.models.base import Base
from ledger_engine.models.enums import (
    AccountType,
    AuditAction,
    BalanceNature,
    SourceType,
    TransactionType,
)
from ledger_engine.models.audit_log import AuditLog
from ledger_engine.models.account import Account
from ledger_engine.models.account_balance import AccountBalance
from ledger_engine.models.transaction import Transaction, SourceLink
from ledger_engine.models.transaction_entry import TransactionEntry
from ledger_engine.models.reference_sequence import ReferenceSequence

__all__ = [
    "Base",
    "AccountType",
    "AuditAction",
    "BalanceNature",
    "SourceType",
    "TransactionType",
    "AuditLog",
    "Account",
    "AccountBalance",
    "Transaction",
    "SourceLink",
    "TransactionEntry",
    "ReferenceSequence",
]
