"""
Lead Tracker - Event Logger

Audit trail for sensitive actions (assignments, status changes, logins...).
Fire-and-forget: an audit failure never blocks or fails the primary operation.
"""

import asyncio
import logging
from typing import Any, Optional, Set

from config import now_iso

logger = logging.getLogger("event_logger")

AUDIT_LOGS = "audit_logs"

_pending: Set[asyncio.Task] = set()


async def log_event(
    store,
    action_type: str,
    entity_type: str,
    user_id: Any = None,
    entity_id: Any = None,
    old_value: Any = None,
    new_value: Any = None,
    ip_address: Optional[str] = None
) -> Optional[dict]:
    """
    Write a single event to the audit_logs collection.

    Args:
        action_type: e.g. LEAD_ASSIGNED, LEAD_STATUS_CHANGE, USER_LOGIN
        entity_type: lead | user | sale
        user_id: id of the user performing the action
        entity_id: id of the primary entity
        old_value / new_value: free-form payloads
    """
    event = {
        "user_id": user_id,
        "action_type": action_type,
        "entity_type": entity_type,
        "entity_id": entity_id,
        "old_value": old_value,
        "new_value": new_value,
        "ip_address": ip_address,
        "created_at": now_iso()
    }
    try:
        return await store.insert(AUDIT_LOGS, event)
    except Exception as e:
        logger.warning(f"[AUDIT] dropped {action_type} on {entity_type}/{entity_id}: {e}")
        return None


def record_event(store, action_type: str, entity_type: str, **fields) -> Optional[asyncio.Task]:
    """Schedule log_event in the background and return immediately."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        logger.warning(f"[AUDIT] no running loop, dropped {action_type}")
        return None

    task = loop.create_task(log_event(store, action_type, entity_type, **fields))
    _pending.add(task)
    task.add_done_callback(_pending.discard)
    return task


async def flush_events():
    """Await every audit write still in flight (shutdown, tests)."""
    current = asyncio.get_running_loop()
    tasks = [t for t in _pending if t.get_loop() is current]
    if tasks:
        await asyncio.gather(*tasks, return_exceptions=True)


async def list_events(store, action_type: Optional[str] = None, entity_type: Optional[str] = None,
                      entity_id: Any = None, limit: int = 100) -> list:
    query = {}
    if action_type:
        query["action_type"] = action_type
    if entity_type:
        query["entity_type"] = entity_type
    if entity_id is not None:
        query["entity_id"] = entity_id
    return await store.list_all(AUDIT_LOGS, query, sort="created_at", direction=-1, limit=limit)
