"""
Categories router — labels for transactions.

Endpoints:
  POST   /categories                 — Create a category
  GET    /categories                 — List own categories
  GET    /categories/{category_id}   — Get a category
  PATCH  /categories/{category_id}   — Rename / recolor
  DELETE /categories/{category_id}   — Delete (transactions keep existing, uncategorized)
"""

import uuid

from fastapi import APIRouter, Depends, Response, status

from trackhub.database import get_store
from trackhub.dependencies import get_current_user_id
from trackhub.schemas.category import (
    CategoryCreateRequest,
    CategoryResponse,
    CategoryUpdateRequest,
)
from trackhub.services import category_service
from trackhub.store import RecordStore

router = APIRouter()


@router.post(
    "",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a category",
)
async def create_category(
    request: CategoryCreateRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    return await category_service.create_category(
        store, user_id, name=request.name, color=request.color
    )


@router.get(
    "",
    response_model=list[CategoryResponse],
    summary="List your categories",
)
async def list_categories(
    user_id: uuid.UUID = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    return await category_service.get_categories(store, user_id)


@router.get(
    "/{category_id}",
    response_model=CategoryResponse,
    summary="Get a category",
)
async def get_category(
    category_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    return await category_service.get_category(store, category_id, user_id)


@router.patch(
    "/{category_id}",
    response_model=CategoryResponse,
    summary="Update a category",
)
async def update_category(
    category_id: uuid.UUID,
    request: CategoryUpdateRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    return await category_service.update_category(
        store, category_id, user_id, name=request.name, color=request.color
    )


@router.delete(
    "/{category_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a category",
)
async def delete_category(
    category_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    await category_service.delete_category(store, category_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
