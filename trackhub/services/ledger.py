"""
Ledger primitives shared by the transaction and transfer services.

  - signed_amount / amount_columns: map between a transaction row's two
    amount columns and its signed balance contribution
  - fetch_wallet / fetch_wallets: user-scoped wallet reads
  - apply_balance_delta: the one way a wallet balance is ever written
  - update_record / delete_record: single-row writes that treat a zero
    match as "not found"

apply_balance_delta:
  A read-modify-write guarded by the wallet's version column:

      read (balance, version)
      UPDATE wallets SET balance = balance + delta, version = version + 1
       WHERE id = :id AND version = :version

  Zero matched rows means another writer got in between; the wallet is
  re-read and the write retried, up to BALANCE_WRITE_MAX_ATTEMPTS, after a
  short jittered pause that grows with each attempt. The funds check for debits is repeated on every attempt, so a concurrent
  expense cannot push the wallet below zero after validation passed.
"""

import asyncio
import random
import uuid
from collections.abc import Iterable, Mapping
from typing import Any

from trackhub.config import settings
from trackhub.exceptions import (
    ConcurrentModificationError,
    InsufficientBalanceError,
    InvalidAmountError,
    NotFoundError,
    ValidationError,
    WalletNotFoundError,
)
from trackhub.logging_setup import get_logger
from trackhub.store import RecordStore

logger = get_logger("trackhub.services.ledger")

TRANSACTION_TYPES = ("income", "expense")

# +/- fraction applied to each version-conflict backoff
_JITTER_PCT = 0.20


def check_amount(amount_cents: int) -> None:
    """Reject zero and negative amounts."""
    if amount_cents <= 0:
        raise InvalidAmountError(amount_cents)


def check_transaction_type(txn_type: str) -> None:
    if txn_type not in TRANSACTION_TYPES:
        raise ValidationError(f"Transaction type must be income or expense, got {txn_type!r}")


def signed_amount(transaction: Mapping[str, Any]) -> int:
    """Balance contribution of a transaction row: +income, -expense."""
    if transaction["type"] == "income":
        return transaction["income_cents"]
    return -transaction["expense_cents"]


def amount_columns(txn_type: str, amount_cents: int) -> dict:
    """Column values storing `amount_cents` under the column matching the type."""
    return {
        "income_cents": amount_cents if txn_type == "income" else None,
        "expense_cents": amount_cents if txn_type == "expense" else None,
    }


async def fetch_wallet(
    store: RecordStore,
    wallet_id: uuid.UUID,
    user_id: uuid.UUID,
) -> dict:
    """
    Read one wallet owned by `user_id`.

    Raises:
        WalletNotFoundError: If the wallet doesn't exist or belongs to
                             another user.
    """
    rows = await store.select("wallets", {"id": wallet_id, "user_id": user_id})
    if not rows:
        raise WalletNotFoundError(wallet_id)
    return rows[0]


async def fetch_wallets(
    store: RecordStore,
    wallet_ids: Iterable[uuid.UUID],
    user_id: uuid.UUID,
) -> dict[uuid.UUID, dict]:
    """
    Read several wallets in one query, keyed by id (duplicates collapse).

    Raises:
        WalletNotFoundError: For the first requested id that doesn't resolve.
    """
    wanted = list(dict.fromkeys(wallet_ids))
    rows = await store.select("wallets", {"id": wanted, "user_id": user_id})
    wallets = {row["id"]: row for row in rows}
    for wallet_id in wanted:
        if wallet_id not in wallets:
            raise WalletNotFoundError(wallet_id)
    return wallets


async def apply_balance_delta(
    store: RecordStore,
    wallet_id: uuid.UUID,
    delta_cents: int,
    *,
    require_funds: bool = False,
    max_attempts: int | None = None,
) -> int:
    """
    Add `delta_cents` to a wallet's balance under an optimistic version check.

    Args:
        store: The record store.
        wallet_id: Wallet to adjust (ownership already verified by the caller).
        delta_cents: Signed change; negative debits the wallet.
        require_funds: Refuse a result below zero (expenses, transfer debits).
        max_attempts: Override for BALANCE_WRITE_MAX_ATTEMPTS.

    Returns:
        The new balance in cents.

    Raises:
        WalletNotFoundError: If the wallet disappeared.
        InsufficientBalanceError: If require_funds and the result would be negative.
        ConcurrentModificationError: If every attempt lost the version race.
        StoreReadFailedError / StoreWriteFailedError: On store failures.
    """
    attempts = max_attempts or settings.BALANCE_WRITE_MAX_ATTEMPTS

    for attempt in range(1, attempts + 1):
        rows = await store.select("wallets", {"id": wallet_id})
        if not rows:
            raise WalletNotFoundError(wallet_id)
        wallet = rows[0]

        new_balance = wallet["balance_cents"] + delta_cents
        if require_funds and new_balance < 0:
            raise InsufficientBalanceError(
                wallet_id=wallet_id,
                requested_cents=-delta_cents,
                available_cents=wallet["balance_cents"],
            )

        matched = await store.update(
            "wallets",
            {"balance_cents": new_balance, "version": wallet["version"] + 1},
            {"id": wallet_id, "version": wallet["version"]},
        )
        if matched:
            return new_balance

        logger.warning(
            "Version conflict on wallet %s (attempt %d/%d), retrying",
            wallet_id, attempt, attempts,
        )
        if attempt < attempts:
            await _sleep_backoff(attempt)

    raise ConcurrentModificationError(wallet_id, attempts)


async def _sleep_backoff(attempt: int) -> None:
    base = settings.BALANCE_WRITE_RETRY_DELAY_SECONDS * attempt
    jitter = base * _JITTER_PCT
    await asyncio.sleep(max(0.0, base + random.uniform(-jitter, jitter)))


async def update_record(
    store: RecordStore,
    table: str,
    record_id: uuid.UUID,
    patch: Mapping[str, Any],
    not_found: type[NotFoundError],
) -> None:
    """Patch one row by id; raise `not_found` if it no longer exists."""
    if not await store.update(table, patch, {"id": record_id}):
        raise not_found(record_id)


async def delete_record(
    store: RecordStore,
    table: str,
    record_id: uuid.UUID,
    not_found: type[NotFoundError],
) -> None:
    """Delete one row by id; raise `not_found` if it no longer exists."""
    if not await store.delete(table, {"id": record_id}):
        raise not_found(record_id)
