"""
Tests for SqlRecordStore — the table-level interface under the services.

These tests verify:
  - Filter forms: equality, membership, IS NULL, comparisons
  - Ordering, limit/offset and related-row expansion
  - update()/delete() report match counts (what version checks rely on)
  - Driver errors surface as StoreReadFailedError / StoreWriteFailedError
"""

import uuid
from datetime import date

import pytest
from sqlalchemy import Column, MetaData, String, Table

from trackhub.exceptions import StoreReadFailedError, StoreWriteFailedError
from trackhub.store import SqlRecordStore


async def _wallet(real_store, user_id, name, balance_cents=0) -> dict:
    return await real_store.insert(
        "wallets",
        {
            "user_id": user_id,
            "name": name,
            "balance_cents": balance_cents,
            "opening_balance_cents": balance_cents,
            "currency": "NPR",
        },
    )


class TestInsertAndSelect:
    async def test_insert_fills_defaults(self, real_store, user_id):
        wallet = await _wallet(real_store, user_id, "Cash", 500)

        assert isinstance(wallet["id"], uuid.UUID)
        assert wallet["version"] == 0
        assert wallet["created_at"] is not None

    async def test_insert_keeps_given_id(self, real_store, user_id):
        wallet_id = uuid.uuid4()
        wallet = await real_store.insert(
            "wallets",
            {"id": wallet_id, "user_id": user_id, "name": "Cash", "currency": "NPR"},
        )
        assert wallet["id"] == wallet_id

    async def test_filters(self, real_store, user_id):
        cash = await _wallet(real_store, user_id, "Cash", 100)
        bank = await _wallet(real_store, user_id, "Bank", 900)
        await _wallet(real_store, uuid.uuid4(), "Someone else's", 5000)

        rows = await real_store.select("wallets", {"user_id": user_id})
        assert {r["name"] for r in rows} == {"Cash", "Bank"}

        rows = await real_store.select("wallets", {"id": [cash["id"], bank["id"]]})
        assert len(rows) == 2

        rows = await real_store.select("wallets", {"id": {cash["id"]}})
        assert [r["name"] for r in rows] == ["Cash"]

        rows = await real_store.select("wallets", {"balance_cents": (">=", 500)})
        assert {r["name"] for r in rows} == {"Bank", "Someone else's"}

        rows = await real_store.select("wallets", {"name": ("!=", "Cash"), "user_id": user_id})
        assert [r["name"] for r in rows] == ["Bank"]

    async def test_is_null_filter(self, real_store, user_id):
        wallet = await _wallet(real_store, user_id, "Cash", 1000)
        for category_id in (None, uuid.uuid4()):
            await real_store.insert(
                "transactions",
                {
                    "user_id": user_id,
                    "type": "income",
                    "reason": "Salary",
                    "income_cents": 100,
                    "date": date(2024, 1, 1),
                    "wallet_id": wallet["id"],
                    "category_id": category_id,
                },
            )

        rows = await real_store.select("transactions", {"category_id": None})
        assert len(rows) == 1
        assert rows[0]["category_id"] is None

    async def test_order_limit_offset(self, real_store, user_id):
        for name, balance in (("a", 3), ("b", 1), ("c", 2)):
            await _wallet(real_store, user_id, name, balance)

        rows = await real_store.select("wallets", order_by="balance_cents")
        assert [r["name"] for r in rows] == ["b", "c", "a"]

        rows = await real_store.select("wallets", order_by="balance_cents", descending=True, limit=2)
        assert [r["name"] for r in rows] == ["a", "c"]

        rows = await real_store.select("wallets", order_by="balance_cents", limit=2, offset=1)
        assert [r["name"] for r in rows] == ["c", "a"]

    async def test_expand_related_rows(self, real_store, user_id):
        wallet = await _wallet(real_store, user_id, "Cash", 1000)
        category = await real_store.insert(
            "categories", {"user_id": user_id, "name": "Food", "color": "#EF4444"}
        )
        for category_id in (category["id"], None):
            await real_store.insert(
                "transactions",
                {
                    "user_id": user_id,
                    "type": "expense",
                    "reason": "Lunch",
                    "expense_cents": 100,
                    "date": date(2024, 1, 1),
                    "wallet_id": wallet["id"],
                    "category_id": category_id,
                },
            )

        rows = await real_store.select(
            "transactions",
            order_by="category_id",
            expand={"wallet": ("wallet_id", "wallets"), "category": ("category_id", "categories")},
        )
        assert all(r["wallet"]["name"] == "Cash" for r in rows)
        assert sorted(
            (r["category"]["name"] if r["category"] else None) is None for r in rows
        ) == [False, True]

    async def test_unknown_table_rejected(self, real_store):
        with pytest.raises(ValueError):
            await real_store.select("accounts")


class TestUpdateAndDelete:
    async def test_update_returns_match_count(self, real_store, user_id):
        wallet = await _wallet(real_store, user_id, "Cash", 100)

        matched = await real_store.update(
            "wallets", {"balance_cents": 50, "version": 1}, {"id": wallet["id"], "version": 0}
        )
        assert matched == 1

        # Stale version: nothing matches, nothing changes
        matched = await real_store.update(
            "wallets", {"balance_cents": 0, "version": 1}, {"id": wallet["id"], "version": 0}
        )
        assert matched == 0
        [row] = await real_store.select("wallets", {"id": wallet["id"]})
        assert row["balance_cents"] == 50

    async def test_delete_returns_count(self, real_store, user_id):
        wallet = await _wallet(real_store, user_id, "Cash")

        assert await real_store.delete("wallets", {"id": wallet["id"]}) == 1
        assert await real_store.delete("wallets", {"id": wallet["id"]}) == 0

    async def test_unfiltered_writes_refused(self, real_store):
        with pytest.raises(ValueError):
            await real_store.update("wallets", {"balance_cents": 0}, {})
        with pytest.raises(ValueError):
            await real_store.delete("wallets", {})


class TestStoreErrors:
    async def test_constraint_violation_is_write_failure(self, real_store, user_id):
        """An income row with an expense amount violates the amount CHECK."""
        with pytest.raises(StoreWriteFailedError) as exc_info:
            await real_store.insert(
                "transactions",
                {
                    "user_id": user_id,
                    "type": "income",
                    "reason": "Broken",
                    "expense_cents": 100,
                    "date": date(2024, 1, 1),
                    "wallet_id": uuid.uuid4(),
                },
            )
        assert exc_info.value.operation == "insert"
        assert exc_info.value.table == "transactions"

    async def test_transfer_to_same_wallet_violates_check(self, real_store, user_id):
        wallet_id = uuid.uuid4()
        with pytest.raises(StoreWriteFailedError):
            await real_store.insert(
                "transfers",
                {
                    "user_id": user_id,
                    "amount_cents": 10,
                    "date": date(2024, 1, 1),
                    "from_wallet_id": wallet_id,
                    "to_wallet_id": wallet_id,
                    "status": "completed",
                },
            )

    async def test_missing_table_is_read_failure(self, db_engine):
        metadata = MetaData()
        Table("ghosts", metadata, Column("id", String, primary_key=True))
        ghost_store = SqlRecordStore(db_engine, metadata)

        with pytest.raises(StoreReadFailedError):
            await ghost_store.select("ghosts")
