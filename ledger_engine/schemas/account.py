"""
Pydantic schemas for account operations.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from ledger_engine.config import get_settings
from ledger_engine.models.enums import AccountType


def _default_currency() -> str:
    return get_settings().DEFAULT_CURRENCY


class AccountCreate(BaseModel):
    """Request to create a new account."""
    code: str = Field(min_length=1, max_length=20)
    name: str = Field(min_length=1, max_length=100)
    name_localized: str | None = Field(default=None, max_length=100)
    account_type: AccountType
    opening_balance: Decimal = Field(default=Decimal("0"), decimal_places=4)
    currency: str = Field(
        default_factory=_default_currency, min_length=3, max_length=3
    )
    description: str | None = None


class AccountUpdate(BaseModel):
    """
    Editable account fields.

    account_type is intentionally absent: an account's type can
    never change after creation.
    """
    name: str | None = Field(default=None, min_length=1, max_length=100)
    name_localized: str | None = Field(default=None, max_length=100)
    is_active: bool | None = None
    description: str | None = None


class AccountResponse(BaseModel):
    id: int
    code: str
    name: str
    name_localized: str | None
    account_type: AccountType
    opening_balance: Decimal
    currency: str
    is_active: bool
    description: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class AccountBalanceResponse(BaseModel):
    """Response for an account balance query."""
    account_id: int
    account_code: str
    account_type: AccountType
    balance: Decimal
    currency: str
    as_of: date | None
