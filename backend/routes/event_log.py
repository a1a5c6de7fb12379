"""
Lead Tracker - Routes Audit Log
"""

from fastapi import APIRouter, Depends
from typing import Optional

from routes.auth import require_admin
from services.document_store import DocumentStore, get_store
from services.event_logger import list_events

router = APIRouter(prefix="/audit-logs", tags=["AuditLog"])


@router.get("")
async def get_audit_logs(
    action_type: Optional[str] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    limit: int = 100,
    user: dict = Depends(require_admin),
    store: DocumentStore = Depends(get_store)
):
    """Liste les events, plus récents d'abord"""
    events = await list_events(store, action_type, entity_type, entity_id, min(limit, 1000))
    return {"events": events, "count": len(events)}
