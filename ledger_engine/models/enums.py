"""
Shared enumerations for database models.

Using Python enums mapped to database enums ensures that
only valid values can be stored. An invalid account_type
or transaction_type is caught at the database level, not
just in Python validation.
"""

import enum


class AccountType(str, enum.Enum):
    """The five fundamental accounting categories."""
    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    REVENUE = "REVENUE"
    EXPENSE = "EXPENSE"


class BalanceNature(str, enum.Enum):
    """Which side of the ledger a positive balance sits on."""
    DEBIT = "DEBIT"
    CREDIT = "CREDIT"


# Every AccountType must appear here; tests check the mapping is exhaustive.
BALANCE_NATURE: dict[AccountType, BalanceNature] = {
    AccountType.ASSET: BalanceNature.DEBIT,
    AccountType.EXPENSE: BalanceNature.DEBIT,
    AccountType.LIABILITY: BalanceNature.CREDIT,
    AccountType.EQUITY: BalanceNature.CREDIT,
    AccountType.REVENUE: BalanceNature.CREDIT,
}


class TransactionType(str, enum.Enum):
    JOURNAL = "JOURNAL"
    INVOICE = "INVOICE"
    PAYMENT = "PAYMENT"
    ADJUSTMENT = "ADJUSTMENT"
    RECURRING = "RECURRING"


class SourceType(str, enum.Enum):
    """Kinds of business event a transaction can originate from."""
    INVOICE = "INVOICE"
    PAYMENT = "PAYMENT"
    INVENTORY_MOVEMENT = "INVENTORY_MOVEMENT"
    EXPENSE = "EXPENSE"
    MANUAL = "MANUAL"


class AuditAction(str, enum.Enum):
    CREATED = "created"
    UPDATED = "updated"
    LOCKED = "locked"
    UNLOCKED = "unlocked"
    DELETED = "deleted"
    APPROVED = "approved"
