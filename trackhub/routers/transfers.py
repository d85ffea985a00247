"""
Transfers router — moving balance between two of the user's wallets.

Endpoints:
  POST   /transfers                  — Transfer between wallets
  GET    /transfers                  — List (filters: from_wallet_id, to_wallet_id)
  GET    /transfers/{transfer_id}    — Get one
  PUT    /transfers/{transfer_id}    — Change wallets/amount, rebalance
  DELETE /transfers/{transfer_id}    — Delete, return the money to the source

A transfer debits the source and credits the destination. If any write
fails part-way, the writes already done are rolled back before the error
is returned (see services/transfer_service.py).
"""

import uuid

from fastapi import APIRouter, Depends, Query, Response, status

from trackhub.database import get_store
from trackhub.dependencies import get_current_user_id
from trackhub.schemas.transfer import TransferRequest, TransferResponse
from trackhub.services import transfer_service
from trackhub.store import RecordStore

router = APIRouter()


@router.post(
    "",
    response_model=TransferResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Transfer between wallets",
)
async def create_transfer(
    request: TransferRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    """
    Move money from one wallet to another.

    - **from_wallet_id** / **to_wallet_id**: both must be yours, and different
    - **amount_cents**: Positive integer in cents; the source must hold it
    """
    return await transfer_service.create_transfer(
        store,
        user_id,
        from_wallet_id=request.from_wallet_id,
        to_wallet_id=request.to_wallet_id,
        amount_cents=request.amount_cents,
        transfer_date=request.date,
        description=request.description,
    )


@router.get(
    "",
    response_model=list[TransferResponse],
    summary="List transfers",
)
async def list_transfers(
    from_wallet_id: uuid.UUID | None = Query(None),
    to_wallet_id: uuid.UUID | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user_id: uuid.UUID = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    return await transfer_service.list_transfers(
        store,
        user_id,
        from_wallet_id=from_wallet_id,
        to_wallet_id=to_wallet_id,
        limit=limit,
        offset=offset,
    )


@router.get(
    "/{transfer_id}",
    response_model=TransferResponse,
    summary="Get a single transfer",
)
async def get_transfer(
    transfer_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    return await transfer_service.get_transfer(store, user_id, transfer_id, expand=True)


@router.put(
    "/{transfer_id}",
    response_model=TransferResponse,
    summary="Update a transfer",
)
async def update_transfer(
    transfer_id: uuid.UUID,
    request: TransferRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    """
    Replace a transfer. The original movement is reversed on its wallets
    and the new one applied.
    """
    return await transfer_service.update_transfer(
        store,
        user_id,
        transfer_id,
        from_wallet_id=request.from_wallet_id,
        to_wallet_id=request.to_wallet_id,
        amount_cents=request.amount_cents,
        transfer_date=request.date,
        description=request.description,
    )


@router.delete(
    "/{transfer_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a transfer",
)
async def delete_transfer(
    transfer_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    await transfer_service.delete_transfer(store, user_id, transfer_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
