"""
Lead Tracker - Seed Test Users (dev/staging only)
Creates one admin and four employees with predictable credentials.
Run: python scripts/seed_test_users.py
Reset: python scripts/seed_test_users.py --reset
"""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from config import DB_NAME, hash_password, now_iso
from services.document_store import DocumentStore, ensure_indexes

# Same password for all test accounts
TEST_PASSWORD = "LeadTest2026!"

TEST_USERS = [
    {"name": "Admin", "email": "admin@leadtracker.test", "role": "admin",
     "daily_lead_target": 0, "experience_level": "senior", "skills": []},
    {"name": "Asha Verma", "email": "asha@leadtracker.test", "role": "employee",
     "daily_lead_target": 20, "experience_level": "senior", "skills": ["Legal Service", "GST"]},
    {"name": "Ravi Kumar", "email": "ravi@leadtracker.test", "role": "employee",
     "daily_lead_target": 15, "experience_level": "senior", "skills": ["GST"]},
    {"name": "Neha Singh", "email": "neha@leadtracker.test", "role": "employee",
     "daily_lead_target": 10, "experience_level": "new", "skills": ["Legal Service"]},
    {"name": "Imran Shaikh", "email": "imran@leadtracker.test", "role": "employee",
     "daily_lead_target": 10, "experience_level": "new", "skills": []},
]


async def seed(reset: bool = False):
    store = DocumentStore()
    await ensure_indexes(store)

    if reset:
        deleted = await store.delete_where("users", {"email": {"$in": [u["email"] for u in TEST_USERS]}})
        print(f"Reset: {deleted} test users removed")

    for user in TEST_USERS:
        if await store.find_one("users", {"email": user["email"]}):
            print(f"  = {user['email']} (exists)")
            continue
        created = await store.add("users", {
            **user,
            "password": hash_password(TEST_PASSWORD),
            "mobile": "",
            "is_active": True,
            "created_at": now_iso(),
        })
        print(f"  + {created['email']} id={created['id']} role={created['role']}")

    print(f"Done on {DB_NAME}. Password for all accounts: {TEST_PASSWORD}")


if __name__ == "__main__":
    asyncio.run(seed(reset="--reset" in sys.argv))
