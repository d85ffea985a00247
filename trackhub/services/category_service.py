"""
Category service — labels for transactions.

Categories carry no balance effect, so none of this goes through the ledger
engine. Deleting a category detaches it from its transactions first
(category_id set to NULL) rather than deleting them.
"""

import uuid

from trackhub.exceptions import CategoryNotFoundError
from trackhub.logging_setup import get_logger
from trackhub.services.ledger import update_record
from trackhub.store import RecordStore

logger = get_logger("trackhub.services.categories")


async def create_category(
    store: RecordStore,
    user_id: uuid.UUID,
    name: str,
    color: str,
) -> dict:
    return await store.insert(
        "categories",
        {"user_id": user_id, "name": name, "color": color},
    )


async def get_categories(store: RecordStore, user_id: uuid.UUID) -> list[dict]:
    """List the user's categories, newest first."""
    return await store.select(
        "categories", {"user_id": user_id}, order_by="created_at", descending=True
    )


async def get_category(
    store: RecordStore,
    category_id: uuid.UUID,
    user_id: uuid.UUID,
) -> dict:
    rows = await store.select("categories", {"id": category_id, "user_id": user_id})
    if not rows:
        raise CategoryNotFoundError(category_id)
    return rows[0]


async def update_category(
    store: RecordStore,
    category_id: uuid.UUID,
    user_id: uuid.UUID,
    name: str | None = None,
    color: str | None = None,
) -> dict:
    await get_category(store, category_id, user_id)

    patch = {}
    if name is not None:
        patch["name"] = name
    if color is not None:
        patch["color"] = color
    if patch:
        await update_record(store, "categories", category_id, patch, CategoryNotFoundError)

    return await get_category(store, category_id, user_id)


async def delete_category(
    store: RecordStore,
    category_id: uuid.UUID,
    user_id: uuid.UUID,
) -> None:
    """Detach the category from its transactions, then delete it."""
    await get_category(store, category_id, user_id)

    detached = await store.update(
        "transactions",
        {"category_id": None},
        {"category_id": category_id, "user_id": user_id},
    )
    await store.delete("categories", {"id": category_id, "user_id": user_id})
    logger.info("Deleted category %s (detached from %d transactions)", category_id, detached)
