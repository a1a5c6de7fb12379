"""
Lead Tracker - Moteur de Distribution

Répartit un batch de leads (déjà créés, id connus) entre les employés actifs.

ROSTER = role employee AND is_active AND remaining_capacity > 0
         remaining_capacity = daily_lead_target - assignments actives du jour

ORDRE DES CANDIDATS (re-trié avant CHAQUE lead, les compteurs bougent),
identique pour toutes les stratégies:
  1. seniorité (senior avant new)
  2. assigned_count croissant
  3. remaining_capacity décroissant
equal et target-based ne diffèrent pas dans le calcul; seule skill-based
restreint le pool.

skill-based: on restreint aux candidats qui ont le process_type du lead;
si personne ne l'a, on garde tout le roster (préférence, pas obligation).

Les paires calculées sont persistées dans l'ordre via le ledger. Un refus
(capacité, employé disparu, erreur store) = lead compté "skipped", jamais
d'erreur fatale pour le batch, jamais de rollback des paires déjà écrites.
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from services.assignment_ledger import AssignmentLedger, LedgerError
from services.document_store import PersistenceFailure
from services.event_logger import record_event

logger = logging.getLogger("distribution_engine")

ASSIGNMENT_REASON = "seniority-balanced round robin"
NO_CAPACITY_MESSAGE = "No active employees with remaining capacity found."


class DistributionStrategy(str, Enum):
    EQUAL = "equal"
    TARGET_BASED = "target-based"
    SKILL_BASED = "skill-based"


class DistributionError(Exception):
    """Appel structurellement invalide (batch vide, stratégie inconnue, lead sans id)"""
    pass


_STRATEGY_ALIASES = {
    "equal": DistributionStrategy.EQUAL,
    "targetbased": DistributionStrategy.TARGET_BASED,
    "skillbased": DistributionStrategy.SKILL_BASED,
}


def resolve_strategy(value: Any) -> DistributionStrategy:
    """Accepte l'enum ou ses variantes texte: "equal", "TargetBased", "skill_based"..."""
    if isinstance(value, DistributionStrategy):
        return value
    key = str(value or "").lower().replace("-", "").replace("_", "").replace(" ", "")
    if key not in _STRATEGY_ALIASES:
        raise DistributionError(f"Unknown distribution strategy: {value!r}")
    return _STRATEGY_ALIASES[key]


class DistributionCandidate:
    """Employé + son état de charge pour la durée d'un batch"""

    def __init__(self, employee: Dict, assigned_count: int = 0):
        self.id = employee["id"]
        self.name = employee.get("name", "")
        self.experience_level = employee.get("experience_level", "new")
        self.skills = set(employee.get("skills") or [])
        self.daily_lead_target = employee.get("daily_lead_target", 0)
        self.assigned_count = assigned_count
        self.remaining_capacity = self.daily_lead_target - assigned_count

    @property
    def is_senior(self) -> bool:
        return self.experience_level == "senior"

    def has_skill(self, process_type: Optional[str]) -> bool:
        return bool(process_type) and process_type in self.skills

    def take(self):
        self.assigned_count += 1
        self.remaining_capacity -= 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "experience_level": self.experience_level,
            "skills": sorted(self.skills),
            "daily_lead_target": self.daily_lead_target,
            "assigned_count": self.assigned_count,
            "remaining_capacity": self.remaining_capacity,
        }

    def __repr__(self):
        return (
            f"<Candidate {self.id} {self.experience_level} "
            f"{self.assigned_count}/{self.daily_lead_target}>"
        )


class DistributionResult:
    """Résultat d'un batch de distribution"""

    def __init__(
        self,
        assigned: int,
        skipped: int,
        message: Optional[str] = None,
        assignments: Optional[List[Dict]] = None,
        failures: Optional[List[Dict]] = None
    ):
        self.assigned = assigned
        self.skipped = skipped
        self.message = message
        self.assignments = assignments or []
        self.failures = failures or []

    def to_dict(self) -> Dict[str, Any]:
        result = {"assigned": self.assigned, "skipped": self.skipped}
        if self.message:
            result["message"] = self.message
        return result


# ==================== ORDONNANCEMENT ====================

def seniority_rank(candidate: DistributionCandidate) -> int:
    return 0 if candidate.is_senior else 1


def candidate_sort_key(candidate: DistributionCandidate) -> Tuple[int, int, int]:
    return (seniority_rank(candidate), candidate.assigned_count, -candidate.remaining_capacity)


def build_roster(employees: List[Dict], counts: Dict[int, int]) -> List[DistributionCandidate]:
    """Employés actifs avec de la capacité restante aujourd'hui"""
    roster = []
    for emp in employees:
        if emp.get("role") != "employee" or not emp.get("is_active"):
            continue
        candidate = DistributionCandidate(emp, counts.get(emp["id"], 0))
        if candidate.remaining_capacity <= 0:
            logger.debug(
                f"[DISTRIBUTION] Skip employee {candidate.id}: "
                f"{candidate.assigned_count}/{candidate.daily_lead_target} today"
            )
            continue
        roster.append(candidate)
    return roster


def plan_distribution(
    leads: List[Dict],
    roster: List[DistributionCandidate],
    strategy: DistributionStrategy
) -> List[Tuple[int, int]]:
    """
    Calcule les paires (lead_id, employee_id) dans l'ordre des leads.
    Modifie le roster en place (compteurs, retrait des candidats pleins).
    """
    pairings = []

    for lead in leads:
        roster.sort(key=candidate_sort_key)
        if not roster:
            break

        pool = roster
        if strategy == DistributionStrategy.SKILL_BASED:
            skilled = [c for c in roster if c.has_skill(lead.get("process_type"))]
            if skilled:
                pool = skilled

        chosen = pool[0]
        pairings.append((lead["id"], chosen.id))

        chosen.take()
        if chosen.remaining_capacity <= 0:
            roster.remove(chosen)

    return pairings


def validate_batch(leads: List[Dict]):
    if not leads:
        raise DistributionError("No leads to distribute")
    for lead in leads:
        if not isinstance(lead, dict) or not isinstance(lead.get("id"), int):
            raise DistributionError(f"Lead must be persisted (integer id) before distribution: {lead!r}")


# ==================== BATCH ====================

async def distribute_leads(
    leads: List[Dict],
    strategy: Any,
    requested_by: Any,
    ledger: AssignmentLedger
) -> DistributionResult:
    """
    Distribue un batch de leads persistés.

    Retourne un DistributionResult: assigned + skipped == len(leads).
    Lève DistributionError uniquement avant toute écriture.
    """
    strategy = resolve_strategy(strategy)
    validate_batch(leads)

    store = ledger.store
    employees = await store.list_all("users", {"role": "employee", "is_active": True})
    counts = await ledger.active_counts_today()
    roster = build_roster(employees, counts)

    logger.info(
        f"[DISTRIBUTION] batch={len(leads)} strategy={strategy.value} "
        f"requested_by={requested_by} roster={len(roster)}"
    )

    if not roster:
        logger.info(f"[DISTRIBUTION] {NO_CAPACITY_MESSAGE} skipped={len(leads)}")
        return DistributionResult(assigned=0, skipped=len(leads), message=NO_CAPACITY_MESSAGE)

    pairings = plan_distribution(leads, roster, strategy)

    assigned_by = f"auto_dist_admin_{requested_by}"
    assignments = []
    failures = []

    for lead_id, employee_id in pairings:
        try:
            assignment = await ledger.assign(lead_id, employee_id, assigned_by)
        except (LedgerError, PersistenceFailure) as e:
            logger.warning(f"[DISTRIBUTION] lead={lead_id} -> employee={employee_id} dropped: {e}")
            failures.append({"lead_id": lead_id, "employee_id": employee_id, "reason": str(e)})
            continue

        assignments.append(assignment)
        record_event(
            store,
            "LEAD_ASSIGNED",
            "lead",
            user_id=requested_by,
            entity_id=lead_id,
            new_value={"assigned_to": employee_id, "reason": ASSIGNMENT_REASON}
        )

    assigned = len(assignments)
    skipped = len(leads) - assigned

    logger.info(f"[DISTRIBUTION_OK] assigned={assigned} skipped={skipped}")

    message = None
    if skipped:
        message = f"{skipped} lead(s) not assigned. Raise employee targets to assign more."

    return DistributionResult(
        assigned=assigned,
        skipped=skipped,
        message=message,
        assignments=assignments,
        failures=failures
    )
