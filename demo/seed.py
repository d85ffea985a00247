#!/usr/bin/env python3
"""
Demo seed script — populates a running server with sample wallets and
ledger activity.

!! NOT FOR PRODUCTION !!
The access token is minted locally with SECRET_KEY, standing in for the
auth backend. Run it only against a local server sharing the same .env.

Usage:
    # With the API server running on localhost:8000:
    python demo/seed.py

    # Custom server URL / demo user:
    python demo/seed.py --base-url http://localhost:9000 --user-id <uuid>

What it does:
    1. Creates wallet "Cash" (1000.00) and wallet "Bank" (500.00)
    2. Records a 200.00 "Groceries" expense on Cash        -> Cash 800
    3. Transfers 300.00 from Cash to Bank                   -> Cash 500, Bank 800
    4. Deletes the groceries expense                        -> Cash 700
    5. Adds a few categorised transactions on top and checks every
       wallet's stored balance against its ledger
"""

import argparse
import asyncio
import sys
import uuid
from datetime import date, timedelta

import httpx

from trackhub.security import mint_access_token

BASE_URL = "http://localhost:8000"

CATEGORIES = [
    {"name": "Food", "color": "#EF4444"},
    {"name": "Salary", "color": "#10B981"},
    {"name": "Transport", "color": "#F59E0B"},
]

EXTRA_TRANSACTIONS = [
    # (wallet, type, amount_cents, reason, category, days ago)
    ("Bank", "income", 2_500_00, "Monthly salary", "Salary", 20),
    ("Cash", "expense", 45_00, "Bus pass", "Transport", 12),
    ("Bank", "expense", 120_00, "Supermarket", "Food", 5),
    ("Cash", "expense", 18_50, "Lunch", "Food", 1),
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def log(msg: str) -> None:
    print(f"  {msg}")


def cents_to_units(cents: int) -> str:
    return f"{cents / 100:,.2f}"


async def post(client: httpx.AsyncClient, path: str, body: dict) -> dict:
    resp = await client.post(f"{BASE_URL}{path}", json=body)
    resp.raise_for_status()
    return resp.json()


async def balance(client: httpx.AsyncClient, wallet_id: str) -> dict:
    resp = await client.get(f"{BASE_URL}/wallets/{wallet_id}/balance")
    resp.raise_for_status()
    return resp.json()


def expect(label: str, actual: int, expected: int) -> None:
    mark = "ok" if actual == expected else "MISMATCH"
    log(f"{label}: {cents_to_units(actual)} (expected {cents_to_units(expected)}) [{mark}]")
    if actual != expected:
        sys.exit(1)


# ---------------------------------------------------------------------------
# Seed logic
# ---------------------------------------------------------------------------

async def seed(base_url: str, user_id: uuid.UUID) -> None:
    global BASE_URL
    BASE_URL = base_url

    print("\n========================================")
    print("  DEMO SEED — NOT FOR PRODUCTION")
    print("========================================\n")

    token = mint_access_token(str(user_id), expires_delta=timedelta(hours=1))
    headers = {"Authorization": f"Bearer {token}"}

    async with httpx.AsyncClient(timeout=30.0, headers=headers) as client:
        try:
            health = await client.get(f"{BASE_URL}/health")
            health.raise_for_status()
        except (httpx.ConnectError, httpx.HTTPStatusError):
            print(f"  ERROR: Cannot connect to {BASE_URL}")
            print("  Start the server first: uvicorn trackhub.main:app --reload\n")
            sys.exit(1)

        print(f"Seeding for user {user_id}...")
        cash = await post(client, "/wallets", {"name": "Cash", "balance_cents": 1000_00})
        bank = await post(client, "/wallets", {"name": "Bank", "balance_cents": 500_00})
        wallets = {"Cash": cash["id"], "Bank": bank["id"]}
        log("Wallets: Cash 1,000.00 / Bank 500.00")

        # --- Reference scenario ---
        print("\nReference scenario...")
        groceries = await post(client, "/transactions", {
            "type": "expense",
            "amount_cents": 200_00,
            "reason": "Groceries",
            "wallet_id": cash["id"],
        })
        expect("Cash after groceries", (await balance(client, cash["id"]))["balance_cents"], 800_00)

        await post(client, "/transfers", {
            "from_wallet_id": cash["id"],
            "to_wallet_id": bank["id"],
            "amount_cents": 300_00,
            "description": "Move to bank",
        })
        expect("Cash after transfer", (await balance(client, cash["id"]))["balance_cents"], 500_00)
        expect("Bank after transfer", (await balance(client, bank["id"]))["balance_cents"], 800_00)

        resp = await client.delete(f"{BASE_URL}/transactions/{groceries['id']}")
        resp.raise_for_status()
        expect("Cash after deleting groceries",
               (await balance(client, cash["id"]))["balance_cents"], 700_00)

        # --- Extra sample data ---
        print("\nCategories and history...")
        category_ids = {}
        for category in CATEGORIES:
            created = await post(client, "/categories", category)
            category_ids[category["name"]] = created["id"]
        log(f"{len(category_ids)} categories")

        for wallet, txn_type, amount, reason, category, days_ago in EXTRA_TRANSACTIONS:
            await post(client, "/transactions", {
                "type": txn_type,
                "amount_cents": amount,
                "reason": reason,
                "date": (date.today() - timedelta(days=days_ago)).isoformat(),
                "wallet_id": wallets[wallet],
                "category_id": category_ids[category],
            })
            log(f"{txn_type:<7} {cents_to_units(amount):>10}  {reason} ({wallet})")

        print("\nIntegrity check...")
        for name, wallet_id in wallets.items():
            check = await balance(client, wallet_id)
            status = "match" if check["match"] else "DRIFT"
            log(f"{name}: {cents_to_units(check['balance_cents'])} {check['currency']} [{status}]")

    print("\nDone. Use this header against the API:")
    print(f"  Authorization: Bearer {token}\n")


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed demo data into a running server")
    parser.add_argument("--base-url", default=BASE_URL, help="API base URL")
    parser.add_argument(
        "--user-id",
        type=uuid.UUID,
        default=uuid.uuid4(),
        help="User id to seed for (random by default)",
    )
    args = parser.parse_args()
    asyncio.run(seed(args.base_url, args.user_id))


if __name__ == "__main__":
    main()
