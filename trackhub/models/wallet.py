"""
Wallet model — a named balance-holding account owned by a user.

Balance management:
  `balance_cents` is the authoritative running total. It is never edited
  directly: every transaction and transfer mutation adds a delta to it
  through the ledger engine. `opening_balance_cents` keeps the balance the
  wallet was created with, so the integrity check can recompute the balance
  from the ledger.

Optimistic concurrency:
  `version` is incremented by every balance write, and each write is
  conditional on the version it read (UPDATE ... WHERE version = :expected).
  Two browser tabs editing the same wallet therefore cannot lose each
  other's update: the slower writer sees zero matched rows, re-reads and
  retries.

Why no non-negative CHECK?
  Expenses and outgoing transfers are validated against the balance, but
  reversing an income or an incoming transfer (edit or delete) is allowed
  to take a wallet below zero.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from trackhub.database import Base


class Wallet(Base):
    __tablename__ = "wallets"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    # Owner: the `sub` of the access token; users live in the auth backend
    user_id: Mapped[uuid.UUID] = mapped_column(
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    # Balance in cents: the running total maintained by the ledger engine
    balance_cents: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    opening_balance_cents: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    # Display-only ISO 4217 code
    currency: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
    )

    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    # Audit timestamps
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
