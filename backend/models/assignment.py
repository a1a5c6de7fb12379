"""
Lead Tracker - Modèle Assignment

INVARIANT: pour un lead_id donné, au plus une assignment active=true.
Une assignment n'est jamais supprimée: la réassignation passe l'ancienne
à active=false et en insère une nouvelle.
"""

from typing import List

from pydantic import BaseModel


class AssignmentDocument(BaseModel):
    id: int
    lead_id: int
    assigned_to: int
    assigned_by: str
    assigned_at: str
    active: bool = True


class AssignmentHistory(BaseModel):
    """Historique complet d'un lead, la ligne active comprise"""
    assignments: List[AssignmentDocument]
