"""
Transfer service — moving balance between two wallets of the same user.

A transfer is one row plus two balance writes: the source wallet is debited
and the destination credited by the same amount. As in transaction_service,
the store gives no atomicity across those writes, so each mutation runs as a
saga and compensates what it already did when a later step fails:

  create:  insert row -> debit source -> credit destination
  update:  update row -> restore original source -> restore original
           destination -> debit new source -> credit new destination
  delete:  restore source -> restore destination -> delete row

All writes are sequential. Balance writes go through
ledger.apply_balance_delta (optimistic version check, debits re-check
funds).

Update funds rule: the web app only checked funds when the source wallet
stayed the same, so moving a transfer onto a poorer source could push that
wallet below zero. Here the new source must always cover the new amount,
whether or not it changed.
"""

import uuid
from datetime import date
from functools import partial

from trackhub.exceptions import (
    InsufficientBalanceError,
    SameWalletTransferError,
    TransferNotFoundError,
)
from trackhub.logging_setup import get_logger
from trackhub.services.ledger import (
    apply_balance_delta,
    check_amount,
    delete_record,
    fetch_wallet,
    fetch_wallets,
    update_record,
)
from trackhub.services.saga import MutationState, Saga
from trackhub.store import RecordStore

logger = get_logger("trackhub.services.transfers")

TRANSFER_EXPANSIONS = {
    "from_wallet": ("from_wallet_id", "wallets"),
    "to_wallet": ("to_wallet_id", "wallets"),
}


def _check_distinct(from_wallet_id: uuid.UUID, to_wallet_id: uuid.UUID) -> None:
    if from_wallet_id == to_wallet_id:
        raise SameWalletTransferError(from_wallet_id)


async def create_transfer(
    store: RecordStore,
    user_id: uuid.UUID,
    *,
    from_wallet_id: uuid.UUID,
    to_wallet_id: uuid.UUID,
    amount_cents: int,
    transfer_date: date,
    description: str | None = None,
) -> dict:
    """
    Move `amount_cents` from one wallet to another.

    Steps:
      1. Insert the transfer row (status "completed")  (compensation: delete it)
      2. Debit the source wallet                        (compensation: credit it back)
      3. Credit the destination wallet

    A failure in step 2 deletes the row; a failure in step 3 (reading or
    writing the destination) restores the source and deletes the row.

    Returns:
        The stored transfer row.

    Raises:
        InvalidAmountError: If amount_cents <= 0.
        SameWalletTransferError: If source and destination are the same wallet.
        WalletNotFoundError: If either wallet doesn't resolve for this user.
        InsufficientBalanceError: If the source holds less than the amount.
        StoreWriteFailedError / CompensationFailedError: On write failures.
    """
    saga = Saga("create_transfer")
    async with saga.validation():
        check_amount(amount_cents)
        _check_distinct(from_wallet_id, to_wallet_id)
        wallets = await fetch_wallets(store, [from_wallet_id, to_wallet_id], user_id)

        source_balance = wallets[from_wallet_id]["balance_cents"]
        if source_balance < amount_cents:
            raise InsufficientBalanceError(
                wallet_id=from_wallet_id,
                requested_cents=amount_cents,
                available_cents=source_balance,
            )

    transfer_id = uuid.uuid4()
    record = {
        "id": transfer_id,
        "user_id": user_id,
        "amount_cents": amount_cents,
        "date": transfer_date,
        "description": description,
        "from_wallet_id": from_wallet_id,
        "to_wallet_id": to_wallet_id,
        "status": "completed",
    }

    async with saga:
        transfer = await saga.step(
            "insert transfer",
            partial(store.insert, "transfers", record),
            compensate=partial(store.delete, "transfers", {"id": transfer_id}),
            state=MutationState.RECORD_WRITTEN,
        )
        await saga.step(
            "debit source wallet",
            partial(apply_balance_delta, store, from_wallet_id, -amount_cents,
                    require_funds=True),
            compensate=partial(apply_balance_delta, store, from_wallet_id, amount_cents),
        )
        await saga.step(
            "credit destination wallet",
            partial(apply_balance_delta, store, to_wallet_id, amount_cents),
            state=MutationState.BALANCES_RECONCILED,
        )

    logger.info(
        "Transfer %s: %d cents from wallet %s to wallet %s",
        transfer_id, amount_cents, from_wallet_id, to_wallet_id,
    )
    return transfer


async def update_transfer(
    store: RecordStore,
    user_id: uuid.UUID,
    transfer_id: uuid.UUID,
    *,
    from_wallet_id: uuid.UUID,
    to_wallet_id: uuid.UUID,
    amount_cents: int,
    transfer_date: date,
    description: str | None = None,
) -> dict:
    """
    Replace a transfer's wallets/amount and rebalance every wallet involved.

    Up to four wallets are read (original from/to, new from/to, deduplicated).
    Reversing the original transfer gives

        original_from_restored = balance(original from) + original amount
        original_to_restored   = balance(original to)   - original amount

    Validation: the new source must cover the new amount. When the source is
    unchanged that is original_from_restored; otherwise it is the new source's
    balance after any reversal of the original credit to it.

    Steps (sequential, each compensated):
      1. Update the transfer row
      2. Credit the original source back    (+original amount)
      3. Debit the original destination back (-original amount)
      4. Debit the new source               (-new amount)
      5. Credit the new destination         (+new amount)

    Returns:
        The updated transfer row.
    """
    saga = Saga("update_transfer")
    async with saga.validation():
        check_amount(amount_cents)
        _check_distinct(from_wallet_id, to_wallet_id)
        original = await get_transfer(store, user_id, transfer_id)
        original_from = original["from_wallet_id"]
        original_to = original["to_wallet_id"]
        original_amount = original["amount_cents"]
        wallets = await fetch_wallets(
            store, [original_from, original_to, from_wallet_id, to_wallet_id], user_id
        )

        original_from_restored = wallets[original_from]["balance_cents"] + original_amount
        if from_wallet_id == original_from:
            available = original_from_restored
        elif from_wallet_id == original_to:
            available = wallets[original_to]["balance_cents"] - original_amount
        else:
            available = wallets[from_wallet_id]["balance_cents"]

        if available < amount_cents:
            raise InsufficientBalanceError(
                wallet_id=from_wallet_id,
                requested_cents=amount_cents,
                available_cents=available,
            )

    patch = {
        "from_wallet_id": from_wallet_id,
        "to_wallet_id": to_wallet_id,
        "amount_cents": amount_cents,
        "date": transfer_date,
        "description": description,
    }
    previous = {column: original[column] for column in patch}

    async with saga:
        await saga.step(
            "update transfer",
            partial(update_record, store, "transfers", transfer_id, patch,
                    TransferNotFoundError),
            compensate=partial(update_record, store, "transfers", transfer_id,
                               previous, TransferNotFoundError),
            state=MutationState.RECORD_WRITTEN,
        )
        await saga.step(
            "restore original source wallet",
            partial(apply_balance_delta, store, original_from, original_amount),
            compensate=partial(apply_balance_delta, store, original_from, -original_amount),
        )
        await saga.step(
            "restore original destination wallet",
            partial(apply_balance_delta, store, original_to, -original_amount),
            compensate=partial(apply_balance_delta, store, original_to, original_amount),
        )
        await saga.step(
            "debit new source wallet",
            partial(apply_balance_delta, store, from_wallet_id, -amount_cents,
                    require_funds=True),
            compensate=partial(apply_balance_delta, store, from_wallet_id, amount_cents),
        )
        await saga.step(
            "credit new destination wallet",
            partial(apply_balance_delta, store, to_wallet_id, amount_cents),
            state=MutationState.BALANCES_RECONCILED,
        )

    logger.info(
        "Updated transfer %s: %d cents %s->%s (was %d cents %s->%s)",
        transfer_id, amount_cents, from_wallet_id, to_wallet_id,
        original_amount, original_from, original_to,
    )
    return await get_transfer(store, user_id, transfer_id)


async def delete_transfer(
    store: RecordStore,
    user_id: uuid.UUID,
    transfer_id: uuid.UUID,
) -> None:
    """
    Delete a transfer and reverse it on both wallets.

    Steps:
      1. Credit the source back           (compensation: debit it again)
      2. Debit the destination back       (compensation: credit it again)
      3. Delete the transfer row

    If step 2 fails the source is put back; if step 3 fails both wallets are.
    """
    saga = Saga("delete_transfer")
    async with saga.validation():
        transfer = await get_transfer(store, user_id, transfer_id)
        from_wallet_id = transfer["from_wallet_id"]
        to_wallet_id = transfer["to_wallet_id"]
        amount_cents = transfer["amount_cents"]
        await fetch_wallets(store, [from_wallet_id, to_wallet_id], user_id)

    async with saga:
        await saga.step(
            "restore source wallet",
            partial(apply_balance_delta, store, from_wallet_id, amount_cents),
            compensate=partial(apply_balance_delta, store, from_wallet_id, -amount_cents),
        )
        await saga.step(
            "restore destination wallet",
            partial(apply_balance_delta, store, to_wallet_id, -amount_cents),
            compensate=partial(apply_balance_delta, store, to_wallet_id, amount_cents),
            state=MutationState.BALANCES_RECONCILED,
        )
        await saga.step(
            "delete transfer",
            partial(delete_record, store, "transfers", transfer_id, TransferNotFoundError),
            state=MutationState.RECORD_WRITTEN,
        )

    logger.info(
        "Deleted transfer %s, %d cents returned from wallet %s to wallet %s",
        transfer_id, amount_cents, to_wallet_id, from_wallet_id,
    )


async def get_transfer(
    store: RecordStore,
    user_id: uuid.UUID,
    transfer_id: uuid.UUID,
    *,
    expand: bool = False,
) -> dict:
    """
    Get a single transfer owned by the user.

    Raises:
        TransferNotFoundError: If it doesn't exist or belongs to someone else.
    """
    rows = await store.select(
        "transfers",
        {"id": transfer_id, "user_id": user_id},
        expand=TRANSFER_EXPANSIONS if expand else None,
    )
    if not rows:
        raise TransferNotFoundError(transfer_id)
    return rows[0]


async def list_transfers(
    store: RecordStore,
    user_id: uuid.UUID,
    *,
    from_wallet_id: uuid.UUID | None = None,
    to_wallet_id: uuid.UUID | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[dict]:
    """List the user's transfers, newest first, with expanded wallet names."""
    filters: dict = {"user_id": user_id}
    if from_wallet_id:
        await fetch_wallet(store, from_wallet_id, user_id)
        filters["from_wallet_id"] = from_wallet_id
    if to_wallet_id:
        await fetch_wallet(store, to_wallet_id, user_id)
        filters["to_wallet_id"] = to_wallet_id

    return await store.select(
        "transfers",
        filters,
        order_by="created_at",
        descending=True,
        limit=limit,
        offset=offset,
        expand=TRANSFER_EXPANSIONS,
    )
