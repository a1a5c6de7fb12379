"""
Lead Tracker - Fixtures de test

Mongo est remplacé par mongomock-motor: mêmes appels Motor, base en mémoire,
une base neuve par test.
"""

import uuid

import pytest
from mongomock_motor import AsyncMongoMockClient

from config import hash_password, now_iso, DEFAULT_PROCESS_TYPE
from services.assignment_ledger import AssignmentLedger
from services.document_store import DocumentStore

PASSWORD = "LeadTest2026!"


@pytest.fixture
def store():
    return DocumentStore(AsyncMongoMockClient()[f"lead_tracker_{uuid.uuid4().hex[:8]}"])


@pytest.fixture
def ledger(store):
    return AssignmentLedger(store)


@pytest.fixture
def make_user(store):
    async def _make(
        role="employee",
        experience_level="new",
        daily_lead_target=5,
        skills=None,
        is_active=True,
        email=None,
        name=None
    ):
        suffix = uuid.uuid4().hex[:6]
        return await store.add("users", {
            "name": name or f"{role}-{suffix}",
            "email": email or f"{role}-{suffix}@leadtracker.test",
            "password": hash_password(PASSWORD),
            "mobile": "",
            "role": role,
            "is_active": is_active,
            "daily_lead_target": daily_lead_target,
            "experience_level": experience_level,
            "skills": skills or [],
            "created_at": now_iso(),
        })
    return _make


@pytest.fixture
def make_lead(store):
    async def _make(process_type=DEFAULT_PROCESS_TYPE, name="Test Lead", mobile="9876543210"):
        now = now_iso()
        return await store.add("leads", {
            "customer_name": name,
            "customer_mobile": mobile,
            "location": "Delhi",
            "source": "Test",
            "process_type": process_type,
            "status": "New",
            "created_at": now,
            "updated_at": now,
        })
    return _make


@pytest.fixture
def seed_assignments(store):
    """Assignments pré-existantes (ex: saisies manuelles) écrites hors ledger"""
    async def _seed(employee_id, count, assigned_at=None, active=True):
        rows = []
        for _ in range(count):
            rows.append(await store.add("assignments", {
                "lead_id": 10_000 + uuid.uuid4().int % 100_000,
                "assigned_to": employee_id,
                "assigned_by": "seed",
                "assigned_at": assigned_at or now_iso(),
                "active": active,
            }))
        return rows
    return _seed
