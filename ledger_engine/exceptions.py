"""
Ledger errors.

Every error derives from LedgerError, which is a ValueError so
that callers written against plain validation failures keep
working. Each error carries the transaction id when one is known.
"""

from decimal import Decimal


class LedgerError(ValueError):
    """Base exception for all ledger failures."""

    def __init__(self, message: str, transaction_id: int | None = None):
        super().__init__(message)
        self.transaction_id = transaction_id


class UnbalancedTransactionError(LedgerError):
    """Persisted debits and credits do not match."""

    def __init__(
        self,
        total_debits: Decimal,
        total_credits: Decimal,
        transaction_id: int | None = None,
    ):
        super().__init__(
            f"Transaction does not balance: "
            f"debits={total_debits}, credits={total_credits}",
            transaction_id,
        )
        self.total_debits = total_debits
        self.total_credits = total_credits


class LockedTransactionError(LedgerError):
    """A change was attempted on a locked transaction."""

    def __init__(self, transaction_id: int, action: str):
        super().__init__(
            f"Cannot {action} locked transaction {transaction_id}",
            transaction_id,
        )
        self.action = action


class AccountNotFoundError(LedgerError):

    def __init__(self, account_ids, transaction_id: int | None = None):
        ids = sorted(account_ids)
        super().__init__(f"Accounts not found: {ids}", transaction_id)
        self.account_ids = ids


class EmptyEntrySetError(LedgerError):

    def __init__(self, transaction_id: int | None = None):
        super().__init__(
            "Transaction must contain at least one entry", transaction_id
        )


class ConcurrentBalanceConflictError(LedgerError):
    """Another writer recomputed the same cached balance first. Retry."""

    def __init__(self, account_id: int):
        super().__init__(
            f"Concurrent balance update detected for account {account_id}"
        )
        self.account_id = account_id


class TransactionNotFoundError(LedgerError):

    def __init__(self, transaction_id: int):
        super().__init__(
            f"Transaction {transaction_id} not found", transaction_id
        )


class DuplicateAccountError(LedgerError):

    def __init__(self, code: str):
        super().__init__(f"Account with code '{code}' already exists")
        self.code = code


class AccountTypeImmutableError(LedgerError):
    """Changing an account's type would rewrite its balance history."""

    def __init__(self, code: str):
        super().__init__(f"Account type of '{code}' cannot be changed")
        self.code = code


class TransactionAlreadyApprovedError(LedgerError):

    def __init__(self, transaction_id: int, approved_by: str):
        super().__init__(
            f"Transaction {transaction_id} is already approved by {approved_by}",
            transaction_id,
        )
        self.approved_by = approved_by
