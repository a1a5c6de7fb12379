"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  LEAD TRACKER - Assignment Ledger                                            ║
║                                                                              ║
║  SEUL CE MODULE écrit dans la collection "assignments"                       ║
║                                                                              ║
║  INVARIANTS:                                                                 ║
║  - un lead a au plus UNE assignment active=true                              ║
║  - une nouvelle assignment désactive toutes les précédentes du même lead     ║
║  - les assignments ne sont jamais supprimées (historique)                    ║
║  - capacité = assignments actives créées AUJOURD'HUI (date UTC)              ║
║    pour les employés, comparée à daily_lead_target                           ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import asyncio
import logging
from collections import Counter
from typing import Dict, List, Optional

from config import now_iso, day_bounds
from services.document_store import DocumentStore, PersistenceFailure, get_store

logger = logging.getLogger("assignment_ledger")

ASSIGNMENTS = "assignments"

# Roles whose assignments are bounded by daily_lead_target
CAPACITY_ROLES = ("employee",)


class LedgerError(Exception):
    """Base des erreurs du ledger"""
    pass


class NotFound(LedgerError):
    """Employé (ou lead) référencé introuvable"""
    pass


class CapacityExceeded(LedgerError):
    """L'employé a déjà atteint son objectif journalier"""

    def __init__(self, employee_id: int, assigned_today: int, target: int):
        self.employee_id = employee_id
        self.assigned_today = assigned_today
        self.target = target
        super().__init__(
            f"Employee {employee_id} is at capacity ({assigned_today}/{target} today)"
        )


class AssignmentLedger:
    """
    Point d'écriture unique des assignments.

    Toutes les écritures passent par un seul verrou: la vérification de
    capacité, la désactivation des anciennes lignes et l'insertion de la
    nouvelle forment une unité non entrelaçable dans ce process.
    En multi-process il faut une transaction Mongo indexée sur lead_id.
    """

    def __init__(self, store: DocumentStore):
        self.store = store
        self._write_lock = asyncio.Lock()

    # ==================== LECTURE ====================

    async def todays_active_assignments(self, employee_id: Optional[int] = None) -> List[Dict]:
        start, end = day_bounds()
        query = {"active": True}
        if employee_id is not None:
            query["assigned_to"] = employee_id
        return await self.store.find_range(ASSIGNMENTS, "assigned_at", start, end, query)

    async def active_assignments_today(self, employee_id: int) -> int:
        """Nombre d'assignments actives créées aujourd'hui pour cet employé"""
        return len(await self.todays_active_assignments(employee_id))

    async def active_counts_today(self) -> Counter:
        """{employee_id: nb assignments actives du jour}, en une seule requête"""
        rows = await self.todays_active_assignments()
        return Counter(row["assigned_to"] for row in rows)

    async def active_assignment_for(self, lead_id: int) -> Optional[Dict]:
        return await self.store.find_one(ASSIGNMENTS, {"lead_id": lead_id, "active": True})

    async def history_for(self, lead_id: int) -> List[Dict]:
        return await self.store.list_all(ASSIGNMENTS, {"lead_id": lead_id})

    async def active_lead_ids_for(self, employee_id: int) -> List[int]:
        rows = await self.store.list_all(ASSIGNMENTS, {"assigned_to": employee_id, "active": True})
        return [row["lead_id"] for row in rows]

    # ==================== ÉCRITURE ====================

    async def _reactivate(self, assignment_ids: List[int]):
        """Rétablit les assignments désactivées quand l'insertion a échoué"""
        if not assignment_ids:
            return
        try:
            await self.store.update_where(
                ASSIGNMENTS, {"id": {"$in": assignment_ids}}, {"active": True}, notify=False
            )
        except PersistenceFailure as e:
            logger.error(f"[LEDGER] rollback failed for assignments {assignment_ids}: {e}")
            return
        logger.warning(f"[LEDGER] insert failed, assignments {assignment_ids} reactivated")

    async def assign(self, lead_id: int, employee_id: int, assigned_by: str) -> Dict:
        """
        Assigne un lead à un employé.

        1. Employé introuvable -> NotFound
        2. Rôle employee et objectif du jour atteint -> CapacityExceeded (aucune écriture)
        3. Désactive toutes les assignments du lead puis insère la nouvelle;
           si l'insertion échoue, les anciennes sont réactivées avant de relever
           l'erreur (les abonnés ne voient que l'état final)
        """
        async with self._write_lock:
            employee = await self.store.get_by_id("users", employee_id)
            if not employee:
                raise NotFound(f"Employee {employee_id} not found")

            if employee.get("role") in CAPACITY_ROLES:
                assigned_today = await self.active_assignments_today(employee_id)
                target = employee.get("daily_lead_target", 0)
                if assigned_today >= target:
                    logger.info(
                        f"[LEDGER] capacity reached employee={employee_id} "
                        f"({assigned_today}/{target}) lead={lead_id}"
                    )
                    raise CapacityExceeded(employee_id, assigned_today, target)

            previous_ids = [row["id"] for row in await self.store.list_all(
                ASSIGNMENTS, {"lead_id": lead_id, "active": True}
            )]
            deactivated = await self.store.update_where(
                ASSIGNMENTS,
                {"id": {"$in": previous_ids}},
                {"active": False},
                notify=False
            )

            try:
                assignment = await self.store.add(ASSIGNMENTS, {
                    "lead_id": lead_id,
                    "assigned_to": employee_id,
                    "assigned_by": assigned_by,
                    "assigned_at": now_iso(),
                    "active": True,
                })
            except PersistenceFailure:
                await self._reactivate(previous_ids)
                raise

        logger.info(
            f"[LEDGER] lead={lead_id} -> employee={employee_id} by={assigned_by} "
            f"superseded={deactivated}"
        )
        return assignment


_ledger: Optional[AssignmentLedger] = None


def get_ledger() -> AssignmentLedger:
    """Ledger partagé de l'application (dépendance FastAPI)"""
    global _ledger
    if _ledger is None:
        _ledger = AssignmentLedger(get_store())
    return _ledger
