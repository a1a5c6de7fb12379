"""
Routes pour les Leads
Dump (collage + distribution), statuts, saisie manuelle, réassignation.
"""

from fastapi import APIRouter, HTTPException, Depends
from typing import Optional

from models.lead import (
    LeadStatus,
    LeadPasteRequest,
    LeadDumpRequest,
    LeadStatusUpdate,
    ManualLeadCreate,
    LeadAssignRequest,
    DumpResult,
    ParsePreview,
    LeadList,
)
from models.assignment import AssignmentHistory
from routes.auth import get_current_user, require_admin, require_employee
from services.assignment_ledger import AssignmentLedger, CapacityExceeded, NotFound, get_ledger
from services.distribution_engine import DistributionError, distribute_leads, resolve_strategy
from services.document_store import DocumentStore, get_store
from services.event_logger import record_event
from services.lead_parser import parse_leads_from_text
from services.lead_service import (
    import_drafts,
    update_lead_status,
    add_manual_lead,
    leads_for_employee,
)

router = APIRouter(prefix="/leads", tags=["Leads"])


# ==================== SMART DUMP (admin) ====================

@router.post("/parse", response_model=ParsePreview)
async def parse_leads(data: LeadPasteRequest, user: dict = Depends(require_admin)):
    """Aperçu: extrait les leads du collage sans rien écrire."""
    drafts = parse_leads_from_text(data.text)
    return {
        "leads": drafts,
        "total": len(drafts),
        "valid": sum(1 for d in drafts if d["valid"]),
    }


@router.post("/dump", response_model=DumpResult, response_model_exclude_none=True)
async def dump_leads(
    data: LeadDumpRequest,
    user: dict = Depends(require_admin),
    store: DocumentStore = Depends(get_store),
    ledger: AssignmentLedger = Depends(get_ledger)
):
    """
    Collage -> création des leads valides -> distribution.
    La stratégie est vérifiée avant toute écriture.
    """
    try:
        strategy = resolve_strategy(data.strategy)
    except DistributionError as e:
        raise HTTPException(status_code=400, detail=str(e))

    drafts = parse_leads_from_text(data.text)
    if not any(d["valid"] for d in drafts):
        raise HTTPException(status_code=400, detail="No valid leads to distribute. Please check phone numbers.")

    leads = await import_drafts(store, drafts)
    result = await distribute_leads(leads, strategy, user["id"], ledger)

    return {
        "created": len(leads),
        "lead_ids": [lead["id"] for lead in leads],
        **result.to_dict(),
    }


# ==================== LECTURE ====================

@router.get("", response_model=LeadList)
async def list_leads(
    status: Optional[str] = None,
    user: dict = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
    ledger: AssignmentLedger = Depends(get_ledger)
):
    """Admin: tous les leads. Employé: ses leads actifs."""
    try:
        if user.get("role") == "admin":
            query = {"status": LeadStatus(status).value} if status else {}
            leads = await store.list_all("leads", query, direction=-1)
        else:
            leads = await leads_for_employee(store, ledger, user["id"], status)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid status: {status}")

    return {"leads": leads, "count": len(leads)}


@router.get("/capacity/{employee_id}")
async def get_capacity(
    employee_id: int,
    user: dict = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
    ledger: AssignmentLedger = Depends(get_ledger)
):
    if user.get("role") != "admin" and user["id"] != employee_id:
        raise HTTPException(status_code=403, detail="Access denied")

    employee = await store.get_by_id("users", employee_id)
    if not employee:
        raise HTTPException(status_code=404, detail="Employee not found")

    assigned_today = await ledger.active_assignments_today(employee_id)
    target = employee.get("daily_lead_target", 0)
    return {
        "employee_id": employee_id,
        "assigned_today": assigned_today,
        "daily_lead_target": target,
        "remaining_capacity": target - assigned_today,
    }


@router.get("/{lead_id}/assignments", response_model=AssignmentHistory)
async def get_lead_assignments(
    lead_id: int,
    user: dict = Depends(require_admin),
    ledger: AssignmentLedger = Depends(get_ledger)
):
    return {"assignments": await ledger.history_for(lead_id)}


# ==================== MUTATIONS ====================

@router.put("/{lead_id}/status")
async def change_status(
    lead_id: int,
    data: LeadStatusUpdate,
    user: dict = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
    ledger: AssignmentLedger = Depends(get_ledger)
):
    if user.get("role") != "admin":
        active = await ledger.active_assignment_for(lead_id)
        if not active or active["assigned_to"] != user["id"]:
            raise HTTPException(status_code=403, detail="Lead is not assigned to you")

    try:
        old_status = await update_lead_status(store, lead_id, data.status, user["id"])
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))

    return {"success": True, "lead_id": lead_id, "old_status": old_status, "status": data.status.value}


@router.post("/manual")
async def create_manual_lead(
    data: ManualLeadCreate,
    user: dict = Depends(require_employee),
    store: DocumentStore = Depends(get_store),
    ledger: AssignmentLedger = Depends(get_ledger)
):
    """Saisie manuelle + auto-assignation par l'employé"""
    try:
        result = await add_manual_lead(
            store, ledger, user,
            data.customer_name, data.customer_mobile, data.process_type
        )
    except CapacityExceeded as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"success": True, **result}


@router.post("/{lead_id}/assign")
async def assign_lead(
    lead_id: int,
    data: LeadAssignRequest,
    user: dict = Depends(require_admin),
    store: DocumentStore = Depends(get_store),
    ledger: AssignmentLedger = Depends(get_ledger)
):
    """Réassignation manuelle: l'ancienne assignment est désactivée"""
    lead = await store.get_by_id("leads", lead_id)
    if not lead:
        raise HTTPException(status_code=404, detail="Lead not found")

    previous = await ledger.active_assignment_for(lead_id)

    try:
        assignment = await ledger.assign(lead_id, data.employee_id, f"admin_{user['id']}")
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except CapacityExceeded as e:
        raise HTTPException(status_code=409, detail=str(e))

    record_event(
        store, "LEAD_ASSIGNED", "lead",
        user_id=user["id"], entity_id=lead_id,
        old_value={"assigned_to": previous["assigned_to"]} if previous else None,
        new_value={"assigned_to": data.employee_id, "reason": "manual"}
    )
    return {"success": True, "assignment": assignment}
