"""
Tests for wallet endpoints.

These tests verify:
  - Wallet creation with opening balance and currency
  - Listing, renaming and currency changes (the balance is not editable)
  - Deleting unreferenced wallets, and refusing referenced ones
  - The balance integrity check (stored vs. recomputed)
"""

import uuid

from conftest import targets


class TestCreateWallet:
    """Tests for POST /wallets."""

    async def test_create_wallet_defaults(self, authenticated_client):
        response = await authenticated_client.post("/wallets", json={"name": "Cash"})
        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "Cash"
        assert data["balance_cents"] == 0
        assert data["opening_balance_cents"] == 0
        assert data["currency"] == "NPR"
        assert "id" in data

    async def test_create_with_opening_balance_and_currency(self, authenticated_client):
        response = await authenticated_client.post(
            "/wallets", json={"name": "Travel", "balance_cents": 12_345, "currency": "usd"}
        )
        assert response.status_code == 201
        data = response.json()
        assert data["balance_cents"] == 12_345
        assert data["opening_balance_cents"] == 12_345
        assert data["currency"] == "USD"

    async def test_negative_opening_balance_rejected(self, authenticated_client):
        response = await authenticated_client.post(
            "/wallets", json={"name": "Broken", "balance_cents": -1}
        )
        assert response.status_code == 422

    async def test_empty_name_rejected(self, authenticated_client):
        response = await authenticated_client.post("/wallets", json={"name": ""})
        assert response.status_code == 422

    async def test_store_failure_returns_503(self, authenticated_client, store):
        store.fail("insert", "wallets")

        response = await authenticated_client.post("/wallets", json={"name": "Cash"})
        assert response.status_code == 503
        assert response.json()["error_type"] == "store_write_failed"


class TestReadWallets:
    async def test_list_oldest_first(self, authenticated_client, make_wallet):
        first = await make_wallet("First")
        second = await make_wallet("Second")

        response = await authenticated_client.get("/wallets")
        assert response.status_code == 200
        assert [w["id"] for w in response.json()] == [first, second]

    async def test_get_wallet(self, authenticated_client, make_wallet):
        wallet_id = await make_wallet("Cash", balance_cents=500)

        response = await authenticated_client.get(f"/wallets/{wallet_id}")
        assert response.status_code == 200
        assert response.json()["balance_cents"] == 500

    async def test_get_unknown_wallet_returns_404(self, authenticated_client):
        response = await authenticated_client.get(f"/wallets/{uuid.uuid4()}")
        assert response.status_code == 404
        assert response.json()["error_type"] == "wallet_not_found"

    async def test_read_failure_returns_503(self, authenticated_client, store, make_wallet):
        wallet_id = await make_wallet("Cash")
        store.fail("select", "wallets", when=targets(wallet_id))

        response = await authenticated_client.get(f"/wallets/{wallet_id}")
        assert response.status_code == 503
        assert response.json()["error_type"] == "store_read_failed"


class TestUpdateWallet:
    """Tests for PATCH /wallets/{id}."""

    async def test_rename(self, authenticated_client, make_wallet):
        wallet_id = await make_wallet("Cash", balance_cents=500)

        response = await authenticated_client.patch(f"/wallets/{wallet_id}", json={"name": "Pocket"})
        assert response.status_code == 200
        assert response.json()["name"] == "Pocket"
        assert response.json()["balance_cents"] == 500

    async def test_change_currency(self, authenticated_client, make_wallet):
        wallet_id = await make_wallet("Cash")

        response = await authenticated_client.patch(f"/wallets/{wallet_id}", json={"currency": "eur"})
        assert response.json()["currency"] == "EUR"

    async def test_balance_is_not_editable(self, authenticated_client, make_wallet):
        """Unknown fields are ignored: the balance only moves through the ledger."""
        wallet_id = await make_wallet("Cash", balance_cents=500)

        response = await authenticated_client.patch(
            f"/wallets/{wallet_id}", json={"balance_cents": 1_000_000}
        )
        assert response.status_code == 200
        assert response.json()["balance_cents"] == 500

    async def test_update_unknown_wallet_returns_404(self, authenticated_client):
        response = await authenticated_client.patch(f"/wallets/{uuid.uuid4()}", json={"name": "X"})
        assert response.status_code == 404


class TestDeleteWallet:
    """Tests for DELETE /wallets/{id}."""

    async def test_delete_unused_wallet(self, authenticated_client, make_wallet):
        wallet_id = await make_wallet("Old")

        response = await authenticated_client.delete(f"/wallets/{wallet_id}")
        assert response.status_code == 204
        assert (await authenticated_client.get(f"/wallets/{wallet_id}")).status_code == 404

    async def test_wallet_with_transactions_is_refused(self, authenticated_client, make_wallet):
        wallet_id = await make_wallet("Cash", balance_cents=100)
        await authenticated_client.post(
            "/transactions",
            json={"type": "expense", "amount_cents": 10, "reason": "Tea", "wallet_id": wallet_id},
        )

        response = await authenticated_client.delete(f"/wallets/{wallet_id}")
        assert response.status_code == 409
        data = response.json()
        assert data["error_type"] == "wallet_in_use"
        assert (await authenticated_client.get(f"/wallets/{wallet_id}")).status_code == 200

    async def test_wallet_receiving_transfers_is_refused(self, authenticated_client, make_wallet):
        source = await make_wallet("Source", balance_cents=100)
        destination = await make_wallet("Destination")
        await authenticated_client.post(
            "/transfers",
            json={"from_wallet_id": source, "to_wallet_id": destination, "amount_cents": 50},
        )

        response = await authenticated_client.delete(f"/wallets/{destination}")
        assert response.status_code == 409

    async def test_wallet_can_be_deleted_once_ledger_is_cleared(
        self, authenticated_client, make_wallet
    ):
        wallet_id = await make_wallet("Cash", balance_cents=100)
        txn = await authenticated_client.post(
            "/transactions",
            json={"type": "income", "amount_cents": 10, "reason": "Tip", "wallet_id": wallet_id},
        )
        await authenticated_client.delete(f"/transactions/{txn.json()['id']}")

        response = await authenticated_client.delete(f"/wallets/{wallet_id}")
        assert response.status_code == 204


class TestBalanceCheck:
    """Tests for GET /wallets/{id}/balance."""

    async def test_fresh_wallet_matches(self, authenticated_client, make_wallet):
        wallet_id = await make_wallet("Cash", balance_cents=2500)

        response = await authenticated_client.get(f"/wallets/{wallet_id}/balance")
        assert response.status_code == 200
        data = response.json()
        assert data["wallet_id"] == wallet_id
        assert data["balance_cents"] == 2500
        assert data["computed_balance_cents"] == 2500
        assert data["match"] is True
        assert data["currency"] == "NPR"

    async def test_drift_is_reported(self, authenticated_client, real_store, make_wallet):
        """A balance written behind the ledger engine's back shows up as a mismatch."""
        wallet_id = await make_wallet("Cash", balance_cents=2500)
        await real_store.update(
            "wallets", {"balance_cents": 9999}, {"id": uuid.UUID(wallet_id)}
        )

        response = await authenticated_client.get(f"/wallets/{wallet_id}/balance")
        data = response.json()
        assert data["balance_cents"] == 9999
        assert data["computed_balance_cents"] == 2500
        assert data["match"] is False
