"""
Lead Tracker - Service Leads

Création des leads (dump admin, saisie manuelle employé) et changement
de statut. Un lead n'est jamais supprimé.
"""

import logging
from typing import Dict, List, Optional

from config import now_iso, mask_phone, DUMP_SOURCE, MANUAL_SOURCE, SELF_ASSIGNED
from models.lead import LeadStatus
from services.assignment_ledger import AssignmentLedger, NotFound
from services.event_logger import record_event

logger = logging.getLogger("lead_service")

LEADS = "leads"


async def create_lead(store, data: Dict) -> Dict:
    """Crée un lead (id séquentiel, statut New par défaut)"""
    now = now_iso()
    status = data.get("status") or LeadStatus.NEW
    lead = {
        "customer_name": data.get("customer_name") or "Unknown",
        "customer_mobile": data.get("customer_mobile", ""),
        "customer_email": data.get("customer_email"),
        "location": data.get("location"),
        "source": data.get("source", ""),
        "process_type": data["process_type"],
        "status": LeadStatus(status).value,
        "created_at": now,
        "updated_at": now,
    }
    created = await store.add(LEADS, lead)
    logger.info(
        f"[LEADS] created id={created['id']} phone={mask_phone(created['customer_mobile'])} "
        f"source={created['source']}"
    )
    return created


async def import_drafts(store, drafts: List[Dict], source: str = DUMP_SOURCE) -> List[Dict]:
    """
    Crée un lead par brouillon valide, dans l'ordre.
    Séquentiel: les ids sont alloués par max+1, pas en parallèle.
    """
    created = []
    for draft in drafts:
        if not draft.get("valid"):
            continue
        created.append(await create_lead(store, {
            "customer_name": draft["customer_name"],
            "customer_mobile": draft["customer_mobile"],
            "location": draft.get("location"),
            "source": source,
            "process_type": draft["process_type"],
        }))
    logger.info(f"[LEADS] imported {len(created)}/{len(drafts)} drafts from {source}")
    return created


async def update_lead_status(store, lead_id: int, status, user_id=None) -> str:
    """
    Change le statut d'un lead (update de champs uniquement).
    Retourne l'ancien statut. NotFound si le lead n'existe pas.
    """
    new_status = LeadStatus(status).value

    lead = await store.get_by_id(LEADS, lead_id)
    if not lead:
        raise NotFound(f"Lead {lead_id} not found")

    old_status = lead.get("status")
    await store.update_fields(LEADS, lead_id, {"status": new_status, "updated_at": now_iso()})

    record_event(
        store,
        "LEAD_STATUS_CHANGE",
        "lead",
        user_id=user_id,
        entity_id=lead_id,
        old_value={"status": old_status},
        new_value={"status": new_status}
    )
    logger.info(f"[LEADS] lead={lead_id} status {old_status} -> {new_status}")
    return old_status


async def add_manual_lead(
    store,
    ledger: AssignmentLedger,
    employee: Dict,
    customer_name: str,
    customer_mobile: str,
    process_type: str
) -> Dict:
    """
    Un employé saisit un lead et se l'assigne.
    Les erreurs du ledger (CapacityExceeded...) remontent; le lead reste créé.
    """
    lead = await create_lead(store, {
        "customer_name": customer_name,
        "customer_mobile": customer_mobile,
        "process_type": process_type,
        "source": MANUAL_SOURCE,
    })
    record_event(store, "LEAD_CREATED", "lead", user_id=employee["id"], entity_id=lead["id"])

    assignment = await ledger.assign(lead["id"], employee["id"], SELF_ASSIGNED)
    return {"lead": lead, "assignment": assignment}


async def leads_for_employee(
    store,
    ledger: AssignmentLedger,
    employee_id: int,
    status: Optional[str] = None
) -> List[Dict]:
    """Leads dont l'assignment active pointe sur l'employé, plus récents d'abord"""
    lead_ids = await ledger.active_lead_ids_for(employee_id)
    if not lead_ids:
        return []

    query = {"id": {"$in": lead_ids}}
    if status:
        query["status"] = LeadStatus(status).value
    return await store.list_all(LEADS, query, direction=-1)
