"""
Transaction service — income/expense mutations and their wallet balances.

THIS IS ONE OF THE TWO CRITICAL FILES IN THE PROJECT (with transfer_service).
Every create, update and delete of a transaction mirrors its balance effect
onto the owning wallet, so that

    wallet.balance == opening balance + Σ income − Σ expense ± transfers

holds as long as nothing bypasses these functions.

Consistency without a database transaction:
  The record store offers independent single-statement writes only. Each
  mutation is therefore a saga (see saga.py): the record write and the
  balance writes run in sequence, and if a later one fails the earlier ones
  are compensated in reverse order. Every path compensates, including the
  plain create, so a failed balance write never leaves an orphaned record.

Balance writes go through ledger.apply_balance_delta, which adds a delta
under an optimistic version check; two tabs editing the same wallet cannot
lose each other's update.

Validation happens before any write. Precondition failures
(InsufficientBalanceError, InvalidAmountError, *NotFoundError) leave the
store untouched.
"""

import uuid
from datetime import date
from functools import partial

from trackhub.exceptions import (
    CategoryNotFoundError,
    InsufficientBalanceError,
    TransactionNotFoundError,
)
from trackhub.logging_setup import get_logger
from trackhub.services.ledger import (
    amount_columns,
    apply_balance_delta,
    check_amount,
    check_transaction_type,
    delete_record,
    fetch_wallet,
    fetch_wallets,
    signed_amount,
    update_record,
)
from trackhub.services.saga import MutationState, Saga
from trackhub.store import RecordStore

logger = get_logger("trackhub.services.transactions")

# Join-expansion used by the read endpoints: wallet name, category name/color
TRANSACTION_EXPANSIONS = {
    "wallet": ("wallet_id", "wallets"),
    "category": ("category_id", "categories"),
}


async def _check_category(
    store: RecordStore,
    category_id: uuid.UUID | None,
    user_id: uuid.UUID,
) -> None:
    if category_id is None:
        return
    rows = await store.select("categories", {"id": category_id, "user_id": user_id})
    if not rows:
        raise CategoryNotFoundError(category_id)


async def create_transaction(
    store: RecordStore,
    user_id: uuid.UUID,
    *,
    txn_type: str,
    amount_cents: int,
    wallet_id: uuid.UUID,
    reason: str,
    txn_date: date,
    category_id: uuid.UUID | None = None,
) -> dict:
    """
    Record an income or expense and apply it to the wallet.

    Steps:
      1. Insert the transaction row      (compensation: delete it)
      2. Add +amount (income) / -amount (expense) to the wallet balance

    Args:
        store: The record store.
        user_id: The authenticated user (owner of the wallet).
        txn_type: "income" or "expense".
        amount_cents: Positive amount in cents.
        wallet_id: The wallet the transaction belongs to.
        reason: Free-text label.
        txn_date: The day the transaction happened.
        category_id: Optional category owned by the same user.

    Returns:
        The stored transaction row.

    Raises:
        InvalidAmountError: If amount_cents <= 0.
        WalletNotFoundError / CategoryNotFoundError: If an id doesn't resolve.
        InsufficientBalanceError: If an expense exceeds the wallet balance.
        StoreWriteFailedError: If a write failed (earlier writes compensated).
        CompensationFailedError: If a write failed and its rollback did too.
    """
    saga = Saga("create_transaction")
    async with saga.validation():
        check_transaction_type(txn_type)
        check_amount(amount_cents)
        wallet = await fetch_wallet(store, wallet_id, user_id)
        await _check_category(store, category_id, user_id)

        if txn_type == "expense" and wallet["balance_cents"] < amount_cents:
            raise InsufficientBalanceError(
                wallet_id=wallet_id,
                requested_cents=amount_cents,
                available_cents=wallet["balance_cents"],
            )

    transaction_id = uuid.uuid4()
    record = {
        "id": transaction_id,
        "user_id": user_id,
        "type": txn_type,
        "reason": reason,
        **amount_columns(txn_type, amount_cents),
        "date": txn_date,
        "wallet_id": wallet_id,
        "category_id": category_id,
    }
    delta = amount_cents if txn_type == "income" else -amount_cents

    async with saga:
        transaction = await saga.step(
            "insert transaction",
            partial(store.insert, "transactions", record),
            compensate=partial(store.delete, "transactions", {"id": transaction_id}),
            state=MutationState.RECORD_WRITTEN,
        )
        await saga.step(
            "apply amount to wallet",
            partial(
                apply_balance_delta, store, wallet_id, delta,
                require_funds=txn_type == "expense",
            ),
            state=MutationState.BALANCES_RECONCILED,
        )

    logger.info(
        "Created %s transaction %s on wallet %s (%+d cents)",
        txn_type, transaction_id, wallet_id, delta,
    )
    return transaction


async def update_transaction(
    store: RecordStore,
    user_id: uuid.UUID,
    transaction_id: uuid.UUID,
    *,
    txn_type: str,
    amount_cents: int,
    wallet_id: uuid.UUID,
    reason: str,
    txn_date: date,
    category_id: uuid.UUID | None = None,
) -> dict:
    """
    Replace a transaction's fields and move its balance effect accordingly.

    The original contribution (delta_old: +amount for income, -amount for
    expense) is taken back from the original wallet and the new one applied
    to the target wallet, which may be the same wallet or a different one.

    Validation for an expense:
      - same wallet:      restored = balance - delta_old must be >= new amount
      - different wallet: the target's own balance must be >= new amount

    Steps (sequential, each compensated):
      1. Update the transaction row          (compensation: write old fields back)
      2. Add -delta_old to the original wallet (compensation: add +delta_old)
      3. Add +delta_new to the target wallet

    Returns:
        The updated transaction row.

    Raises:
        TransactionNotFoundError, WalletNotFoundError, CategoryNotFoundError,
        InvalidAmountError, InsufficientBalanceError, StoreWriteFailedError,
        CompensationFailedError.
    """
    saga = Saga("update_transaction")
    async with saga.validation():
        check_transaction_type(txn_type)
        check_amount(amount_cents)
        original = await get_transaction(store, user_id, transaction_id)
        original_wallet_id = original["wallet_id"]
        wallets = await fetch_wallets(store, [original_wallet_id, wallet_id], user_id)
        await _check_category(store, category_id, user_id)

        delta_old = signed_amount(original)
        restored = wallets[original_wallet_id]["balance_cents"] - delta_old
        if wallet_id == original_wallet_id:
            available = restored
        else:
            available = wallets[wallet_id]["balance_cents"]

        if txn_type == "expense" and available < amount_cents:
            raise InsufficientBalanceError(
                wallet_id=wallet_id,
                requested_cents=amount_cents,
                available_cents=available,
            )

    patch = {
        "type": txn_type,
        "reason": reason,
        **amount_columns(txn_type, amount_cents),
        "date": txn_date,
        "wallet_id": wallet_id,
        "category_id": category_id,
    }
    previous = {column: original[column] for column in patch}
    delta_new = amount_cents if txn_type == "income" else -amount_cents

    async with saga:
        await saga.step(
            "update transaction",
            partial(update_record, store, "transactions", transaction_id, patch,
                    TransactionNotFoundError),
            compensate=partial(update_record, store, "transactions", transaction_id,
                               previous, TransactionNotFoundError),
            state=MutationState.RECORD_WRITTEN,
        )
        await saga.step(
            "restore original wallet",
            partial(apply_balance_delta, store, original_wallet_id, -delta_old),
            compensate=partial(apply_balance_delta, store, original_wallet_id, delta_old),
        )
        await saga.step(
            "apply amount to target wallet",
            partial(
                apply_balance_delta, store, wallet_id, delta_new,
                require_funds=txn_type == "expense",
            ),
            state=MutationState.BALANCES_RECONCILED,
        )

    logger.info(
        "Updated transaction %s: wallet %s %+d -> wallet %s %+d cents",
        transaction_id, original_wallet_id, delta_old, wallet_id, delta_new,
    )
    return await get_transaction(store, user_id, transaction_id)


async def delete_transaction(
    store: RecordStore,
    user_id: uuid.UUID,
    transaction_id: uuid.UUID,
) -> None:
    """
    Delete a transaction and take its contribution back out of the wallet.

    Steps:
      1. Add the reversed contribution to the wallet (compensation: re-apply it)
      2. Delete the transaction row

    Raises:
        TransactionNotFoundError, WalletNotFoundError, StoreWriteFailedError,
        CompensationFailedError.
    """
    saga = Saga("delete_transaction")
    async with saga.validation():
        transaction = await get_transaction(store, user_id, transaction_id)
        wallet_id = transaction["wallet_id"]
        await fetch_wallet(store, wallet_id, user_id)

    reversal = -signed_amount(transaction)

    async with saga:
        await saga.step(
            "reverse wallet balance",
            partial(apply_balance_delta, store, wallet_id, reversal),
            compensate=partial(apply_balance_delta, store, wallet_id, -reversal),
            state=MutationState.BALANCES_RECONCILED,
        )
        await saga.step(
            "delete transaction",
            partial(delete_record, store, "transactions", transaction_id,
                    TransactionNotFoundError),
            state=MutationState.RECORD_WRITTEN,
        )

    logger.info(
        "Deleted transaction %s, wallet %s adjusted %+d cents",
        transaction_id, wallet_id, reversal,
    )


async def get_transaction(
    store: RecordStore,
    user_id: uuid.UUID,
    transaction_id: uuid.UUID,
    *,
    expand: bool = False,
) -> dict:
    """
    Get a single transaction owned by the user.

    Raises:
        TransactionNotFoundError: If it doesn't exist or belongs to someone else.
    """
    rows = await store.select(
        "transactions",
        {"id": transaction_id, "user_id": user_id},
        expand=TRANSACTION_EXPANSIONS if expand else None,
    )
    if not rows:
        raise TransactionNotFoundError(transaction_id)
    return rows[0]


async def list_transactions(
    store: RecordStore,
    user_id: uuid.UUID,
    *,
    type_filter: str | None = None,
    wallet_id: uuid.UUID | None = None,
    category_id: uuid.UUID | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[dict]:
    """
    List the user's transactions, newest date first, with optional filters.

    Each row carries its expanded `wallet` and `category` (None when the
    transaction has no category).
    """
    filters: dict = {"user_id": user_id}
    if type_filter:
        filters["type"] = type_filter
    if wallet_id:
        # Verify ownership so an unknown wallet is a 404, not an empty list
        await fetch_wallet(store, wallet_id, user_id)
        filters["wallet_id"] = wallet_id
    if category_id:
        filters["category_id"] = category_id

    return await store.select(
        "transactions",
        filters,
        order_by=("date", "created_at"),
        descending=True,
        limit=limit,
        offset=offset,
        expand=TRANSACTION_EXPANSIONS,
    )
