"""
Wallets router — wallet management and the balance integrity check.

Endpoints (require JWT, scoped to the authenticated user):
  POST   /wallets                      — Create a wallet with an opening balance
  GET    /wallets                      — List own wallets
  GET    /wallets/{wallet_id}          — Get wallet details
  PATCH  /wallets/{wallet_id}          — Rename / change display currency
  DELETE /wallets/{wallet_id}          — Delete an unreferenced wallet
  GET    /wallets/{wallet_id}/balance  — Stored vs. recomputed balance
"""

import uuid

from fastapi import APIRouter, Depends, Response, status

from trackhub.database import get_store
from trackhub.dependencies import get_current_user_id
from trackhub.schemas.wallet import (
    BalanceResponse,
    WalletCreateRequest,
    WalletResponse,
    WalletUpdateRequest,
)
from trackhub.services import wallet_service
from trackhub.store import RecordStore

router = APIRouter()


@router.post(
    "",
    response_model=WalletResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a wallet",
)
async def create_wallet(
    request: WalletCreateRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    """
    Create a wallet. `balance_cents` is the opening balance; afterwards the
    balance only changes through transactions and transfers.
    """
    return await wallet_service.create_wallet(
        store,
        user_id,
        name=request.name,
        balance_cents=request.balance_cents,
        currency=request.currency,
    )


@router.get(
    "",
    response_model=list[WalletResponse],
    summary="List your wallets",
)
async def list_wallets(
    user_id: uuid.UUID = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    return await wallet_service.get_wallets(store, user_id)


@router.get(
    "/{wallet_id}",
    response_model=WalletResponse,
    summary="Get wallet details",
)
async def get_wallet(
    wallet_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    """Returns 404 if the wallet doesn't exist or belongs to another user."""
    return await wallet_service.get_wallet(store, wallet_id, user_id)


@router.patch(
    "/{wallet_id}",
    response_model=WalletResponse,
    summary="Update wallet name or currency",
)
async def update_wallet(
    wallet_id: uuid.UUID,
    request: WalletUpdateRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    return await wallet_service.update_wallet(
        store,
        wallet_id,
        user_id,
        name=request.name,
        currency=request.currency,
    )


@router.delete(
    "/{wallet_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a wallet",
)
async def delete_wallet(
    wallet_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    """
    Delete a wallet. Refused with 409 while any transaction or transfer
    references it.
    """
    await wallet_service.delete_wallet(store, wallet_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{wallet_id}/balance",
    response_model=BalanceResponse,
    summary="Check wallet balance",
)
async def get_balance(
    wallet_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    """
    Get the stored balance and the balance recomputed from the ledger.

    `match` is False when they disagree, which indicates a failed mutation
    whose rollback did not complete.
    """
    return await wallet_service.get_balance(store, wallet_id, user_id)
