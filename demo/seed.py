#!/usr/bin/env python3
"""
Demo seed script — populates a running ledger with sample data for demos.

!! NOT FOR PRODUCTION !!
This script registers test users with known passwords and moves fake money
between them. It is intended ONLY for local demos and frontend development.

Usage:
    # With the API server running on localhost:8000:
    python demo/seed.py

    # Reset the database (restart the server afterwards):
    python demo/seed.py --reset

    # Custom server URL:
    python demo/seed.py --base-url http://localhost:9000

Users after seeding:
    ┌───────────────────┬──────────────┬──────────────────┐
    │ Name              │ Phone        │ Password         │
    ├───────────────────┼──────────────┼──────────────────┤
    │ Alice Chen        │ 5550100001   │ AliceDemo123!    │
    │ Bob Martinez      │ 5550100002   │ BobDemo123!      │
    │ Carol Nguyen      │ 5550100003   │ CarolDemo123!    │
    │ Dave Johnson      │ 5550100004   │ DaveDemo123!     │
    └───────────────────┴──────────────┴──────────────────┘
"""

import argparse
import asyncio
import os
import random
import sys
from decimal import Decimal

import httpx

BASE_URL = "http://localhost:8000"

# ---------------------------------------------------------------------------
# Demo users
# ---------------------------------------------------------------------------

USERS = [
    {
        "first_name": "Alice",
        "last_name": "Chen",
        "phone_number": "5550100001",
        "email": "alice.chen@example.com",
        "password": "AliceDemo123!",
        "opening_deposit": Decimal("850.00"),
    },
    {
        "first_name": "Bob",
        "last_name": "Martinez",
        "phone_number": "5550100002",
        "email": "bob.martinez@example.com",
        "password": "BobDemo123!",
        "opening_deposit": Decimal("1200.00"),
    },
    {
        "first_name": "Carol",
        "last_name": "Nguyen",
        "phone_number": "5550100003",
        "email": None,
        "password": "CarolDemo123!",
        "opening_deposit": Decimal("3200.00"),
    },
    {
        "first_name": "Dave",
        "last_name": "Johnson",
        "phone_number": "5550100004",
        "email": None,
        "password": "DaveDemo123!",
        "opening_deposit": Decimal("600.00"),
    },
]

CREDIT_DESCRIPTIONS = [
    "Payroll deposit", "Freelance payment", "Refund", "Cash deposit",
]

TRANSFER_DESCRIPTIONS = [
    "Dinner split", "Rent share", "Concert tickets", "Birthday gift",
    "Groceries", "Taxi fare",
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def log(msg: str) -> None:
    print(f"  {msg}")


def random_amount(low: int, high: int) -> str:
    """A random amount between low and high whole units, as a decimal string."""
    return str(Decimal(random.randint(low * 100, high * 100)) / 100)


async def register(client: httpx.AsyncClient, user: dict) -> dict:
    """Register a user, return the created user (with its account)."""
    body = {
        "first_name": user["first_name"],
        "last_name": user["last_name"],
        "phone_number": user["phone_number"],
        "password": user["password"],
    }
    if user["email"]:
        body["email"] = user["email"]
    resp = await client.post(f"{BASE_URL}/users", json=body)
    resp.raise_for_status()
    return resp.json()


async def credit(client: httpx.AsyncClient, kind: str, account_id: str,
                 amount: str, description: str) -> dict:
    resp = await client.post(
        f"{BASE_URL}/transactions/{kind}",
        json={"account_id": account_id, "amount": amount, "description": description},
    )
    resp.raise_for_status()
    return resp.json()


async def do_transfer(client: httpx.AsyncClient, from_id: str, to_id: str,
                      amount: str, description: str) -> dict:
    """Attempt a transfer; insufficient funds comes back as an error body."""
    resp = await client.post(
        f"{BASE_URL}/transactions/transfer",
        json={
            "source_account_id": from_id,
            "destination_account_id": to_id,
            "amount": amount,
            "description": description,
        },
    )
    return resp.json()


async def get_balance(client: httpx.AsyncClient, account_id: str) -> str:
    resp = await client.get(f"{BASE_URL}/accounts/{account_id}")
    resp.raise_for_status()
    return resp.json()["balance"]


# ---------------------------------------------------------------------------
# Seed logic
# ---------------------------------------------------------------------------

async def seed(base_url: str) -> None:
    global BASE_URL
    BASE_URL = base_url

    print("\n========================================")
    print("  DEMO SEED — NOT FOR PRODUCTION")
    print("========================================\n")

    async with httpx.AsyncClient(timeout=30.0) as client:
        # Health check
        try:
            health = await client.get(f"{BASE_URL}/health")
            health.raise_for_status()
        except (httpx.ConnectError, httpx.HTTPStatusError):
            print(f"  ERROR: Cannot connect to {BASE_URL}")
            print("  Start the server first: uvicorn ledger.main:app --reload\n")
            sys.exit(1)

        # --- Users and opening balances ---
        accounts: list[dict] = []
        for user in USERS:
            name = f"{user['first_name']} {user['last_name']}"
            print(f"Registering {name}...")
            created = await register(client, user)
            account_id = created["account"]["id"]
            log(f"Account {created['account']['account_number']}")

            await credit(client, "deposit", account_id,
                         str(user["opening_deposit"]), "Opening deposit")
            for _ in range(random.randint(1, 3)):
                await credit(client, "deposit", account_id,
                             random_amount(50, 400), random.choice(CREDIT_DESCRIPTIONS))
            await credit(client, "charge", account_id, random_amount(10, 60), "Card top-up")

            accounts.append({"account_id": account_id, "name": name})

        # --- Transfers between users ---
        print("\nCreating transfers...")
        declined = 0
        for _ in range(12):
            a, b = random.sample(accounts, 2)
            amount = random_amount(5, 300)
            result = await do_transfer(
                client, a["account_id"], b["account_id"], amount,
                random.choice(TRANSFER_DESCRIPTIONS),
            )
            if "error_type" in result:
                declined += 1
                continue
            log(f"{a['name']} -> {b['name']}: {amount}")

        # One transfer that is too large on purpose, to show a rejection
        a, b = accounts[0], accounts[1]
        result = await do_transfer(client, a["account_id"], b["account_id"],
                                   "1000000.00", "Too much")
        log(f"Oversized transfer rejected: {result.get('detail')}")
        if declined:
            log(f"{declined} random transfer(s) declined for insufficient funds")

        # --- Summary ---
        print("\n========================================")
        print("  SEED COMPLETE — Balances")
        print("========================================")
        print(f"\n  {'Name':<20s} {'Phone':<12s} {'Password':<16s} {'Balance':>12s}")
        print(f"  {'─' * 20} {'─' * 12} {'─' * 16} {'─' * 12}")
        for user, acct in zip(USERS, accounts):
            balance = await get_balance(client, acct["account_id"])
            print(f"  {acct['name']:<20s} {user['phone_number']:<12s} "
                  f"{user['password']:<16s} {balance:>12s}")
        print()


def reset_database() -> None:
    """Delete the SQLite database file so the server recreates it on restart."""
    db_path = os.path.join(os.path.dirname(__file__), "..", "data", "ledger.db")
    db_path = os.path.normpath(db_path)

    if os.path.exists(db_path):
        os.remove(db_path)
        print(f"\n  Deleted {db_path}")
        print("  Restart the server to recreate empty tables.\n")
    else:
        print(f"\n  No database found at {db_path}\n")


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

async def main() -> None:
    parser = argparse.ArgumentParser(
        description="Demo seed script — NOT FOR PRODUCTION",
        epilog="Registers sample users and moves money between them.",
    )
    parser.add_argument(
        "--base-url", default="http://localhost:8000",
        help="Base URL of the running API (default: http://localhost:8000)",
    )
    parser.add_argument(
        "--reset", action="store_true",
        help="Delete the database file and exit (restart server to recreate)",
    )
    args = parser.parse_args()

    if args.reset:
        reset_database()
        return

    await seed(args.base_url)


if __name__ == "__main__":
    asyncio.run(main())
