"""
Wallet service — wallet CRUD and the balance integrity check.

Ownership enforcement:
  Every function takes the authenticated user's id and scopes its queries
  by it. A wallet owned by someone else is reported exactly like a missing
  one (WalletNotFoundError), so ids cannot be probed.

Balances:
  A wallet's balance is set once, at creation (the opening balance). From
  then on only the ledger engine changes it; update_wallet() edits name and
  currency only.

Integrity check:
  get_balance() recomputes the balance from the ledger,

      opening + Σ income − Σ expense − Σ transfers out + Σ transfers in

  and reports whether it matches the stored balance. A mismatch means a
  mutation failed and could not be compensated (or something wrote to the
  store behind the engine's back). Nothing is repaired automatically.
"""

import uuid

from trackhub.config import settings
from trackhub.exceptions import WalletInUseError, WalletNotFoundError
from trackhub.logging_setup import get_logger
from trackhub.services.ledger import fetch_wallet, update_record
from trackhub.store import RecordStore

logger = get_logger("trackhub.services.wallets")


async def create_wallet(
    store: RecordStore,
    user_id: uuid.UUID,
    name: str,
    balance_cents: int = 0,
    currency: str | None = None,
) -> dict:
    """
    Create a wallet with an opening balance.

    Args:
        store: The record store.
        user_id: The owner.
        name: Display name.
        balance_cents: Opening balance in cents.
        currency: ISO code for display; DEFAULT_CURRENCY when omitted.

    Returns:
        The stored wallet row.
    """
    wallet = await store.insert(
        "wallets",
        {
            "user_id": user_id,
            "name": name,
            "balance_cents": balance_cents,
            "opening_balance_cents": balance_cents,
            "currency": currency or settings.DEFAULT_CURRENCY,
            "version": 0,
        },
    )
    logger.info("Created wallet %s with opening balance %d", wallet["id"], balance_cents)
    return wallet


async def get_wallets(store: RecordStore, user_id: uuid.UUID) -> list[dict]:
    """List all wallets belonging to the user, oldest first."""
    return await store.select("wallets", {"user_id": user_id}, order_by="created_at")


async def get_wallet(
    store: RecordStore,
    wallet_id: uuid.UUID,
    user_id: uuid.UUID,
) -> dict:
    """
    Get a single wallet, verifying ownership.

    Raises:
        WalletNotFoundError: If the wallet doesn't exist or isn't the user's.
    """
    return await fetch_wallet(store, wallet_id, user_id)


async def update_wallet(
    store: RecordStore,
    wallet_id: uuid.UUID,
    user_id: uuid.UUID,
    name: str | None = None,
    currency: str | None = None,
) -> dict:
    """Rename a wallet and/or change its display currency."""
    await fetch_wallet(store, wallet_id, user_id)

    patch = {}
    if name is not None:
        patch["name"] = name
    if currency is not None:
        patch["currency"] = currency
    if patch:
        await update_record(store, "wallets", wallet_id, patch, WalletNotFoundError)

    return await fetch_wallet(store, wallet_id, user_id)


async def delete_wallet(
    store: RecordStore,
    wallet_id: uuid.UUID,
    user_id: uuid.UUID,
) -> None:
    """
    Delete a wallet that no transaction or transfer references.

    Deleting a referenced wallet would strand ledger rows whose balance
    effect can no longer be reversed, so it is refused.

    Raises:
        WalletNotFoundError: If the wallet doesn't exist or isn't the user's.
        WalletInUseError: If ledger rows still reference it.
    """
    await fetch_wallet(store, wallet_id, user_id)

    references = (
        len(await store.select("transactions", {"wallet_id": wallet_id}))
        + len(await store.select("transfers", {"from_wallet_id": wallet_id}))
        + len(await store.select("transfers", {"to_wallet_id": wallet_id}))
    )
    if references:
        raise WalletInUseError(wallet_id, references)

    await store.delete("wallets", {"id": wallet_id, "user_id": user_id})
    logger.info("Deleted wallet %s", wallet_id)


async def get_balance(
    store: RecordStore,
    wallet_id: uuid.UUID,
    user_id: uuid.UUID,
) -> dict:
    """
    Get the stored balance alongside the balance recomputed from the ledger.

    Returns:
        Dict with wallet_id, balance_cents, computed_balance_cents, match, currency.
    """
    wallet = await fetch_wallet(store, wallet_id, user_id)
    computed_balance_cents = await _compute_balance_from_ledger(store, wallet)

    match = wallet["balance_cents"] == computed_balance_cents
    if not match:
        logger.warning(
            "Wallet %s drifted: stored %d, computed %d",
            wallet_id, wallet["balance_cents"], computed_balance_cents,
        )

    return {
        "wallet_id": wallet["id"],
        "balance_cents": wallet["balance_cents"],
        "computed_balance_cents": computed_balance_cents,
        "match": match,
        "currency": wallet["currency"],
    }


async def _compute_balance_from_ledger(store: RecordStore, wallet: dict) -> int:
    """Opening balance plus every transaction and transfer touching the wallet."""
    transactions = await store.select("transactions", {"wallet_id": wallet["id"]})
    outgoing = await store.select("transfers", {"from_wallet_id": wallet["id"]})
    incoming = await store.select("transfers", {"to_wallet_id": wallet["id"]})

    total_income = sum(t["income_cents"] or 0 for t in transactions)
    total_expense = sum(t["expense_cents"] or 0 for t in transactions)
    total_out = sum(t["amount_cents"] for t in outgoing)
    total_in = sum(t["amount_cents"] for t in incoming)

    return (
        wallet["opening_balance_cents"]
        + total_income
        - total_expense
        - total_out
        + total_in
    )
