"""
Account model (chart of accounts).

Every account in the ledger (cash, receivables, sales revenue,
etc.) is an Account. Entries are posted against these accounts.
The account never stores its balance; it is derived from the
opening balance plus entries, with an optional cached copy in
the account_balances table.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    String, Boolean, DateTime, Numeric, Text, Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from ledger_engine.exceptions import AccountTypeImmutableError
from ledger_engine.models.base import Base, utcnow
from ledger_engine.models.enums import AccountType, BalanceNature, BALANCE_NATURE


class Account(Base):
    """
    A single account in the chart of accounts.

    Once created with entries, an account is never deleted;
    only deactivated via is_active=False. Its type is fixed at
    creation because it decides the sign of every historical
    balance.
    """

    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(primary_key=True)
    code: Mapped[str] = mapped_column(
        String(20), unique=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    name_localized: Mapped[str | None] = mapped_column(
        String(100), nullable=True
    )
    account_type: Mapped[AccountType] = mapped_column(
        SAEnum(AccountType, name="account_type_enum", create_constraint=True),
        nullable=False,
    )
    opening_balance: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    currency: Mapped[str] = mapped_column(
        String(3), nullable=False, default="USD"
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    entries: Mapped[list["TransactionEntry"]] = relationship(
        back_populates="account"
    )

    @validates("account_type")
    def _type_is_immutable(self, key, value):
        current = self.account_type
        if current is not None and current != value:
            raise AccountTypeImmutableError(self.code)
        return value

    @property
    def nature(self) -> BalanceNature | None:
        return BALANCE_NATURE.get(self.account_type)

    @property
    def is_debit_account(self) -> bool:
        return self.nature == BalanceNature.DEBIT

    @property
    def is_credit_account(self) -> bool:
        return self.nature == BalanceNature.CREDIT

    def display_name(self, localized: bool = False) -> str:
        if localized and self.name_localized:
            return self.name_localized
        return self.name

    def __repr__(self) -> str:
        return f"<Account {self.code} ({self.account_type.value})>"
