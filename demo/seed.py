#!/usr/bin/env python3
"""
Demo seed script — populates the database with sample data for demos.

!! NOT FOR PRODUCTION !!
This script creates test users with known passwords, buys them credits,
lists skills and runs a few connections through their lifecycle. It is
intended ONLY for local demos and frontend development.

Usage:
    # With the API server running on localhost:8000:
    python demo/seed.py

    # Reset the database and re-seed:
    python demo/seed.py --reset

    # Custom server URL:
    python demo/seed.py --base-url http://localhost:9000

Login credentials after seeding:
    ┌──────────────────────────────┬───────────────────┐
    │ Email                        │ Password          │
    ├──────────────────────────────┼───────────────────┤
    │ alice.chen@example.com       │ AliceDemo123!     │
    │ bob.martinez@example.com     │ BobDemo123!       │
    │ carol.nguyen@example.com     │ CarolDemo123!     │
    │ dave.johnson@example.com     │ DaveDemo123!      │
    └──────────────────────────────┴───────────────────┘
"""

import argparse
import asyncio
import os
import sys

import httpx

BASE_URL = "http://localhost:8000"

# ---------------------------------------------------------------------------
# Demo users
# ---------------------------------------------------------------------------

MEMBERS = [
    {
        "email": "alice.chen@example.com",
        "password": "AliceDemo123!",
        "full_name": "Alice Chen",
        "credits": "120.00",
        "skills": [
            {"title": "Python for data analysis", "price": "30.00",
             "tags": ["python", "data", "pandas"],
             "description": "Notebooks, pandas and plotting from scratch"},
            {"title": "Intro to SQL", "price": "15.00", "tags": ["sql", "data"]},
        ],
    },
    {
        "email": "bob.martinez@example.com",
        "password": "BobDemo123!",
        "full_name": "Bob Martinez",
        "credits": "50.00",
        "skills": [
            {"title": "Acoustic guitar basics", "price": "20.00",
             "tags": ["music", "guitar"]},
            {"title": "Web APIs with Python", "price": "35.00",
             "tags": ["python", "web", "api"],
             "description": "Build and deploy a small Python web API"},
        ],
    },
    {
        "email": "carol.nguyen@example.com",
        "password": "CarolDemo123!",
        "full_name": "Carol Nguyen",
        "credits": "80.00",
        "skills": [
            {"title": "Sourdough baking", "price": "12.50", "tags": ["baking", "bread"]},
            {"title": "Machine learning primer", "price": "40.00",
             "tags": ["python", "ml", "data"]},
        ],
    },
    {
        "email": "dave.johnson@example.com",
        "password": "DaveDemo123!",
        "full_name": "Dave Johnson",
        "credits": "10.00",
        "skills": [
            {"title": "Conversational Spanish", "price": "0.00", "tags": ["language", "spanish"]},
        ],
    },
]

# (learner email, skill title, status the teacher moves it to or None to leave pending)
CONNECTIONS = [
    ("bob.martinez@example.com", "Python for data analysis", "accepted"),
    ("carol.nguyen@example.com", "Web APIs with Python", "accepted"),
    ("alice.chen@example.com", "Sourdough baking", "completed"),
    ("dave.johnson@example.com", "Machine learning primer", "accepted"),  # can't afford it
    ("alice.chen@example.com", "Conversational Spanish", "accepted"),
    ("carol.nguyen@example.com", "Acoustic guitar basics", None),
    ("dave.johnson@example.com", "Intro to SQL", "rejected"),
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def log(msg: str) -> None:
    print(f"  {msg}")


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def register(client: httpx.AsyncClient, user: dict) -> dict:
    """Register a user, return {id, token}."""
    resp = await client.post(f"{BASE_URL}/auth/register", json={
        "email": user["email"],
        "password": user["password"],
        "full_name": user["full_name"],
    })
    resp.raise_for_status()
    data = resp.json()
    return {"id": data["user"]["id"], "token": data["token"]}


async def purchase(client: httpx.AsyncClient, token: str, amount: str) -> str:
    resp = await client.post(
        f"{BASE_URL}/credits/purchase",
        json={"amount": amount, "meta": {"source": "demo-seed"}},
        headers=auth_header(token),
    )
    resp.raise_for_status()
    return resp.json()["balance"]


async def create_skill(client: httpx.AsyncClient, token: str, skill: dict) -> dict:
    resp = await client.post(f"{BASE_URL}/skills", json=skill, headers=auth_header(token))
    resp.raise_for_status()
    return resp.json()


async def request_connection(client: httpx.AsyncClient, token: str, skill_id: str) -> dict:
    resp = await client.post(
        f"{BASE_URL}/connections",
        json={"skill_id": skill_id, "message": "Hi! I'd love to learn this."},
        headers=auth_header(token),
    )
    resp.raise_for_status()
    return resp.json()


async def set_status(client: httpx.AsyncClient, token: str, connection_id: str, status: str) -> httpx.Response:
    return await client.put(
        f"{BASE_URL}/connections/{connection_id}",
        json={"status": status},
        headers=auth_header(token),
    )


async def get_balance(client: httpx.AsyncClient, token: str) -> str:
    resp = await client.get(f"{BASE_URL}/credits/balance", headers=auth_header(token))
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
            print(f"  Start the server first: uvicorn app.main:app --reload\n")
            sys.exit(1)

        # --- Members, credits and skills ---
        tokens: dict[str, str] = {}
        skills: dict[str, dict] = {}  # title -> {id, teacher_email}

        for member in MEMBERS:
            print(f"Creating {member['full_name']}...")
            user = await register(client, member)
            tokens[member["email"]] = user["token"]
            log(f"Login: {member['email']} / {member['password']}")

            balance = await purchase(client, user["token"], member["credits"])
            log(f"Purchased credits, balance {balance}")

            for skill in member["skills"]:
                created = await create_skill(client, user["token"], skill)
                skills[created["title"]] = {"id": created["id"], "teacher": member["email"]}
                log(f"Skill: {created['title']} ({created['price']} credits)")

        # --- Connections ---
        print("\nRunning connections...")
        for learner_email, title, status in CONNECTIONS:
            skill = skills[title]
            connection = await request_connection(client, tokens[learner_email], skill["id"])
            line = f"{learner_email} -> {title}: pending"

            if status is not None:
                resp = await set_status(client, tokens[skill["teacher"]], connection["id"], status)
                if resp.status_code == 200:
                    line = f"{learner_email} -> {title}: {status}"
                else:
                    line += f" ({resp.json().get('error_type')})"
            log(line)

        # --- Summary ---
        print("\n========================================")
        print("  SEED COMPLETE — Login Credentials")
        print("========================================")
        print(f"\n  {'Email':<30s} {'Password':<20s} {'Balance'}")
        print(f"  {'─' * 30} {'─' * 20} {'─' * 8}")
        for m in MEMBERS:
            balance = await get_balance(client, tokens[m["email"]])
            print(f"  {m['email']:<30s} {m['password']:<20s} {balance}")
        print()


def reset_database() -> None:
    """Delete the SQLite database file so the server recreates it on restart."""
    db_path = os.path.join(os.path.dirname(__file__), "..", "data", "skilllink.db")
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
        epilog="Creates sample users, credits, skills and connections for demos.",
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
