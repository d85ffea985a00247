"""
Pydantic schemas for Transaction endpoints.

All monetary amounts are in integer cents (e.g., 10.50 = 1050).
"""

import uuid
from datetime import date as calendar_date, datetime
from typing import Literal

from pydantic import BaseModel, Field, computed_field

from trackhub.schemas.category import CategorySummary
from trackhub.schemas.wallet import WalletSummary


class TransactionRequest(BaseModel):
    """Request body for POST /transactions and PUT /transactions/{id}."""
    type: Literal["income", "expense"]
    amount_cents: int = Field(gt=0, description="Amount in cents (must be positive)")
    reason: str = Field(min_length=1, max_length=255)
    date: calendar_date = Field(default_factory=calendar_date.today)
    wallet_id: uuid.UUID
    category_id: uuid.UUID | None = None


class TransactionResponse(BaseModel):
    """Public representation of a transaction."""
    id: uuid.UUID
    type: str
    reason: str
    income_cents: int | None
    expense_cents: int | None
    date: calendar_date
    wallet_id: uuid.UUID
    category_id: uuid.UUID | None
    created_at: datetime
    updated_at: datetime
    # Present on reads; None when not expanded or no category
    wallet: WalletSummary | None = None
    category: CategorySummary | None = None

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def amount_cents(self) -> int:
        """The amount regardless of which column stores it."""
        return self.income_cents if self.type == "income" else self.expense_cents
