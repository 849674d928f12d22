"""
Report API endpoints.
"""

from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ledger_engine.api.dependencies import get_clock
from ledger_engine.clock import Clock
from ledger_engine.models.base import get_db
from ledger_engine.schemas.report import TrialBalance
from ledger_engine.services.reporting import LedgerReporting

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("/trial-balance", response_model=TrialBalance)
def get_trial_balance(
    as_of: date | None = None,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """
    Trial balance of all active accounts with a non-zero balance.

    Defaults to today. Total debit and total credit are equal
    whenever every account sits on its natural side.
    """
    reporting = LedgerReporting(db, clock=clock)
    return reporting.trial_balance(as_of)
