"""
Pydantic schemas for Transfer endpoints.

All monetary amounts are in integer cents (e.g., 10.50 = 1050).
"""

import uuid
from datetime import date as calendar_date, datetime

from pydantic import BaseModel, Field, model_validator

from trackhub.schemas.wallet import WalletSummary


class TransferRequest(BaseModel):
    """Request body for POST /transfers and PUT /transfers/{id}."""
    from_wallet_id: uuid.UUID
    to_wallet_id: uuid.UUID
    amount_cents: int = Field(gt=0, description="Amount in cents (must be positive)")
    date: calendar_date = Field(default_factory=calendar_date.today)
    description: str | None = Field(None, max_length=255)

    @model_validator(mode="after")
    def wallets_must_differ(self):
        """Cannot transfer money to the same wallet."""
        if self.from_wallet_id == self.to_wallet_id:
            raise ValueError("Source and destination wallets cannot be the same")
        return self


class TransferResponse(BaseModel):
    """Public representation of a transfer."""
    id: uuid.UUID
    amount_cents: int
    date: calendar_date
    description: str | None
    from_wallet_id: uuid.UUID
    to_wallet_id: uuid.UUID
    status: str
    created_at: datetime
    updated_at: datetime
    from_wallet: WalletSummary | None = None
    to_wallet: WalletSummary | None = None

    model_config = {"from_attributes": True}
