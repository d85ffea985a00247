"""
Pydantic schemas for Wallet endpoints.

All monetary amounts are in integer cents (e.g., 10.50 = 1050).
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator


def _upper_currency(value: str | None) -> str | None:
    return value.upper() if value is not None else None


class WalletCreateRequest(BaseModel):
    """Request body for POST /wallets."""
    name: str = Field(min_length=1, max_length=100)
    balance_cents: int = Field(0, ge=0, description="Opening balance in cents")
    currency: str | None = Field(
        None, min_length=3, max_length=3, description="ISO 4217 code (display only)"
    )

    _currency_upper = field_validator("currency")(_upper_currency)


class WalletUpdateRequest(BaseModel):
    """Request body for PATCH /wallets/{id}. The balance is not editable."""
    name: str | None = Field(None, min_length=1, max_length=100)
    currency: str | None = Field(None, min_length=3, max_length=3)

    _currency_upper = field_validator("currency")(_upper_currency)


class WalletResponse(BaseModel):
    """Public representation of a wallet."""
    id: uuid.UUID
    name: str
    balance_cents: int
    opening_balance_cents: int
    currency: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class WalletSummary(BaseModel):
    """Wallet fields embedded in transaction and transfer listings."""
    id: uuid.UUID
    name: str
    currency: str

    model_config = {"from_attributes": True}


class BalanceResponse(BaseModel):
    """
    Balance check response — stored and recomputed values.

    `match` is False when the stored balance disagrees with the ledger,
    i.e. a mutation failed and could not be fully compensated.
    """
    wallet_id: uuid.UUID
    balance_cents: int
    computed_balance_cents: int
    match: bool
    currency: str
