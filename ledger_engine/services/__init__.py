"""Ledger services."""

from ledger_engine.services.account_registry import AccountRegistry
from ledger_engine.services.audit_sink import AuditSink, DatabaseAuditSink
from ledger_engine.services.balance_calculator import BalanceCalculator
from ledger_engine.services.ledger_store import LedgerStore
from ledger_engine.services.reporting import LedgerReporting

__all__ = [
    "AccountRegistry",
    "AuditSink",
    "DatabaseAuditSink",
    "BalanceCalculator",
    "LedgerStore",
    "LedgerReporting",
]
