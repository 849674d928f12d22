"""
Translation of ledger errors into HTTP responses.
"""

from fastapi import HTTPException

from ledger_engine.exceptions import (
    AccountNotFoundError,
    ConcurrentBalanceConflictError,
    LedgerError,
    LockedTransactionError,
    TransactionAlreadyApprovedError,
    TransactionNotFoundError,
)


def http_error(error: LedgerError) -> HTTPException:
    """
    404 for a missing transaction or account, 409 for a locked or
    already approved transaction or a lost balance race,
    400 for every other rule violation.
    """
    if isinstance(error, (TransactionNotFoundError, AccountNotFoundError)):
        status_code = 404
    elif isinstance(error, (
        LockedTransactionError,
        TransactionAlreadyApprovedError,
        ConcurrentBalanceConflictError,
    )):
        status_code = 409
    else:
        status_code = 400
    return HTTPException(status_code=status_code, detail=str(error))
