"""
Transfer model — a balance movement between two wallets of the same user.

A completed transfer means the ledger engine debited `from_wallet_id` and
credited `to_wallet_id` by `amount_cents`. Unlike a bank transfer there is
no pair of ledger entries: the single row is both legs, and the integrity
check counts it as outgoing for one wallet and incoming for the other.

Status:
  Transfers are applied synchronously, so every stored row is "completed".
  The column is kept for the UI, which renders it as a badge.
"""

import uuid
from datetime import date as calendar_date, datetime, timezone

from sqlalchemy import String, Integer, Date, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from trackhub.database import Base


class Transfer(Base):
    __tablename__ = "transfers"

    __table_args__ = (
        CheckConstraint("amount_cents > 0", name="ck_transfers_positive_amount"),
        CheckConstraint(
            "from_wallet_id <> to_wallet_id",
            name="ck_transfers_distinct_wallets",
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

    # Amount in cents, always positive. Direction is from -> to
    amount_cents: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    date: Mapped[calendar_date] = mapped_column(
        Date,
        nullable=False,
        index=True,
    )

    description: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    from_wallet_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("wallets.id"),
        nullable=False,
        index=True,
    )

    to_wallet_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("wallets.id"),
        nullable=False,
        index=True,
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="completed",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
