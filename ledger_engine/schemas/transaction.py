"""
Pydantic schemas for transaction operations.

These define the contract for creating, replacing and reading
transactions. The entry list is allowed to be empty here so
that the ledger store can reject it with EmptyEntrySetError,
the same way every other ledger rule is reported.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, model_validator

from ledger_engine.models.enums import SourceType, TransactionType


# --- Request Schemas ---

class SourceLinkSchema(BaseModel):
    """The business event a transaction was posted for."""
    source_type: SourceType
    source_id: int

    model_config = {"from_attributes": True}


class EntryCreate(BaseModel):
    """A single debit or credit line."""
    account_id: int
    debit_amount: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=4)
    credit_amount: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=4)
    description: str | None = Field(default=None, max_length=255)
    description_localized: str | None = Field(default=None, max_length=255)
    metadata: dict | None = None

    @model_validator(mode="after")
    def one_side_only(self):
        if self.debit_amount > 0 and self.credit_amount > 0:
            raise ValueError(
                "entry cannot have both a debit and a credit amount"
            )
        return self


class TransactionUpdate(BaseModel):
    """
    Full replacement of a transaction's mutable fields and entries.

    This is not a patch: the submitted entries replace every
    existing entry.
    """
    description: str = Field(min_length=1, max_length=255)
    description_localized: str | None = Field(default=None, max_length=255)
    transaction_date: date
    total_amount: Decimal = Field(ge=0, decimal_places=4)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    exchange_rate: Decimal = Field(default=Decimal("1"), gt=0, decimal_places=6)
    cost_center_id: int | None = None
    tags: list[str] | None = None
    notes: str | None = None
    entries: list[EntryCreate]


class TransactionCreate(TransactionUpdate):
    transaction_type: TransactionType
    source: SourceLinkSchema | None = None
    reference_number: str | None = Field(default=None, max_length=50)


class TransactionFilters(BaseModel):
    start_date: date | None = None
    end_date: date | None = None
    transaction_type: TransactionType | None = None
    is_locked: bool | None = None
    search: str | None = None
    page: int = Field(default=1, ge=1)
    per_page: int = Field(default=15, ge=1, le=100)


# --- Response Schemas ---

class EntryResponse(BaseModel):
    id: int
    account_id: int
    debit_amount: Decimal
    credit_amount: Decimal
    description: str | None
    description_localized: str | None
    metadata: dict | None = Field(default=None, validation_alias="entry_metadata")

    model_config = {"from_attributes": True}


class TransactionResponse(BaseModel):
    id: int
    reference_number: str
    description: str
    description_localized: str | None
    transaction_date: date
    transaction_type: TransactionType
    source: SourceLinkSchema | None
    total_amount: Decimal
    currency: str
    exchange_rate: Decimal
    cost_center_id: int | None
    tags: list[str] | None
    notes: str | None
    is_locked: bool
    created_by: str
    approved_by: str | None = None
    approved_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    entries: list[EntryResponse]

    model_config = {"from_attributes": True}


class TransactionPage(BaseModel):
    items: list[TransactionResponse]
    total: int
    page: int
    per_page: int
    last_page: int


class LockResponse(BaseModel):
    transaction_id: int
    changed: bool
    is_locked: bool


class ApprovalResponse(BaseModel):
    transaction_id: int
    approved_by: str
    approved_at: datetime
