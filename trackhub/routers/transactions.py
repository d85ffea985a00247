"""
Transactions router — income and expense records.

Endpoints (require JWT, scoped to the authenticated user):
  POST   /transactions                    — Record income/expense, adjust the wallet
  GET    /transactions                    — List (filters: type, wallet_id, category_id)
  GET    /transactions/{transaction_id}   — Get one
  PUT    /transactions/{transaction_id}   — Replace fields, rebalance wallet(s)
  DELETE /transactions/{transaction_id}   — Delete, reverse the wallet effect

Every mutation keeps the owning wallet's balance in step with the record.
See services/transaction_service.py for the compensation rules.
"""

import uuid
from typing import Literal

from fastapi import APIRouter, Depends, Query, Response, status

from trackhub.database import get_store
from trackhub.dependencies import get_current_user_id
from trackhub.schemas.transaction import TransactionRequest, TransactionResponse
from trackhub.services import transaction_service
from trackhub.store import RecordStore

router = APIRouter()


@router.post(
    "",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a transaction (income or expense)",
)
async def create_transaction(
    request: TransactionRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    """
    Record an income (adds to the wallet) or an expense (subtracts from it).

    Expenses larger than the wallet balance are rejected with 422 and
    nothing is written.

    All amounts are in **integer cents** (e.g., 10.50 = 1050).
    """
    return await transaction_service.create_transaction(
        store,
        user_id,
        txn_type=request.type,
        amount_cents=request.amount_cents,
        wallet_id=request.wallet_id,
        reason=request.reason,
        txn_date=request.date,
        category_id=request.category_id,
    )


@router.get(
    "",
    response_model=list[TransactionResponse],
    summary="List transactions",
)
async def list_transactions(
    type: Literal["income", "expense"] | None = Query(None, description="Filter by type"),
    wallet_id: uuid.UUID | None = Query(None),
    category_id: uuid.UUID | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user_id: uuid.UUID = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    """List transactions newest first, each with its wallet and category."""
    return await transaction_service.list_transactions(
        store,
        user_id,
        type_filter=type,
        wallet_id=wallet_id,
        category_id=category_id,
        limit=limit,
        offset=offset,
    )


@router.get(
    "/{transaction_id}",
    response_model=TransactionResponse,
    summary="Get a single transaction",
)
async def get_transaction(
    transaction_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    return await transaction_service.get_transaction(
        store, user_id, transaction_id, expand=True
    )


@router.put(
    "/{transaction_id}",
    response_model=TransactionResponse,
    summary="Update a transaction",
)
async def update_transaction(
    transaction_id: uuid.UUID,
    request: TransactionRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    """
    Replace a transaction. Its old effect is taken back from the original
    wallet and the new effect applied to the (possibly different) target.
    """
    return await transaction_service.update_transaction(
        store,
        user_id,
        transaction_id,
        txn_type=request.type,
        amount_cents=request.amount_cents,
        wallet_id=request.wallet_id,
        reason=request.reason,
        txn_date=request.date,
        category_id=request.category_id,
    )


@router.delete(
    "/{transaction_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a transaction",
)
async def delete_transaction(
    transaction_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    await transaction_service.delete_transaction(store, user_id, transaction_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
