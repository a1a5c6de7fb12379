"""
Lead Tracker - Modèle Lead

RÈGLES:
1. L'id est un entier séquentiel, attribué à la création, jamais modifié
2. Un lead n'est jamais supprimé, seul son statut évolue
3. Statuts: New, Calling, Follow-up, Not Interested, Converted
"""

from typing import Optional, List
from pydantic import BaseModel, Field
from enum import Enum


class LeadStatus(str, Enum):
    """Pipeline de statuts d'un lead"""
    NEW = "New"
    CALLING = "Calling"
    FOLLOW_UP = "Follow-up"
    NOT_INTERESTED = "Not Interested"
    CONVERTED = "Converted"


VALID_LEAD_STATUSES = [s.value for s in LeadStatus]


class LeadDocument(BaseModel):
    """Structure complète d'un lead en base de données"""
    id: int
    customer_name: str
    customer_mobile: str
    customer_email: Optional[str] = None
    location: Optional[str] = None
    source: str = ""
    process_type: str
    status: LeadStatus = LeadStatus.NEW
    created_at: str = ""
    updated_at: str = ""


class DraftLead(BaseModel):
    """
    Ligne extraite d'un collage brut.
    `index` sert uniquement à la corrélation côté UI, ce n'est pas un id de lead.
    """
    index: int
    customer_name: str
    customer_mobile: str = ""
    location: str = "Other"
    process_type: str
    valid: bool = False


class LeadPasteRequest(BaseModel):
    text: str


class LeadDumpRequest(BaseModel):
    text: str
    strategy: str = "equal"


class LeadStatusUpdate(BaseModel):
    status: LeadStatus


class ManualLeadCreate(BaseModel):
    customer_name: str = Field(min_length=1)
    customer_mobile: str = Field(min_length=1)
    process_type: str = "GST"


class LeadAssignRequest(BaseModel):
    employee_id: int


class DumpResult(BaseModel):
    created: int
    assigned: int
    skipped: int
    message: Optional[str] = None
    lead_ids: List[int] = []


class ParsePreview(BaseModel):
    """Aperçu du collage, rien n'est écrit"""
    leads: List[DraftLead]
    total: int
    valid: int


class LeadList(BaseModel):
    leads: List[LeadDocument]
    count: int
