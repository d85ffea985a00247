"""
Transaction model — a single income or expense event against one wallet.

Key fields:
  - type: "income" or "expense"
  - income_cents / expense_cents: the amount, stored in the column matching
    the type. Exactly one of them is set; the other is NULL.
  - wallet_id: the wallet whose balance the ledger engine adjusted
  - category_id: optional classification, no balance effect
  - date: the day the event happened (user supplied, not the insert time)

Why two amount columns?
  It is the layout the reporting queries were written against: summing
  income_cents and expense_cents separately needs no CASE on type. The CHECK
  constraint keeps the pair consistent with `type`.
"""

import uuid
from datetime import date as calendar_date, datetime, timezone

from sqlalchemy import String, Integer, Date, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from trackhub.database import Base


class Transaction(Base):
    __tablename__ = "transactions"

    __table_args__ = (
        CheckConstraint(
            "type IN ('income', 'expense')",
            name="ck_transactions_type",
        ),
        # Exactly one positive amount, in the column matching the type
        CheckConstraint(
            "(type = 'income' AND income_cents > 0 AND expense_cents IS NULL)"
            " OR (type = 'expense' AND expense_cents > 0 AND income_cents IS NULL)",
            name="ck_transactions_amount_matches_type",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        nullable=False,
        index=True,
    )

    type: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
    )

    # Free-text label ("Groceries", "Salary", ...)
    reason: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    income_cents: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
    )

    expense_cents: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
    )

    # Indexed for date-ordered listings
    date: Mapped[calendar_date] = mapped_column(
        Date,
        nullable=False,
        index=True,
    )

    wallet_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("wallets.id"),
        nullable=False,
        index=True,
    )

    category_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("categories.id"),
        nullable=True,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
