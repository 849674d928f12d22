"""
Time source for the ledger.

Anything that needs "today" (default report windows, reference
number dates, duplicated transaction dates) takes a Clock so
tests can pin the date.
"""

from datetime import date, datetime, timezone
from typing import Protocol


class Clock(Protocol):

    def now(self) -> datetime:
        ...

    def today(self) -> date:
        ...


class SystemClock:
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc).replace(tzinfo=None)

    def today(self) -> date:
        return self.now().date()


class FixedClock:
    """A clock that always returns the same instant."""

    def __init__(self, moment: datetime):
        self.moment = moment

    def now(self) -> datetime:
        return self.moment

    def today(self) -> date:
        return self.moment.date()
