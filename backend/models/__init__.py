"""
Lead Tracker - Models Package

Exports tous les modèles pour import facile
from models import LeadStatus, UserCreate, SaleCreate, etc.
"""

# Auth / Users
from .auth import (
    VALID_ROLES,
    VALID_EXPERIENCE_LEVELS,
    UserLogin,
    UserCreate,
    UserUpdate,
    UserResponse,
)

# Lead
from .lead import (
    LeadStatus,
    VALID_LEAD_STATUSES,
    LeadDocument,
    DraftLead,
    LeadPasteRequest,
    LeadDumpRequest,
    LeadStatusUpdate,
    ManualLeadCreate,
    LeadAssignRequest,
    DumpResult,
    ParsePreview,
    LeadList,
)

# Assignment
from .assignment import AssignmentDocument, AssignmentHistory

# Sale
from .sale import SaleType, SaleCreate, SaleDocument, SaleList

__all__ = [
    # Auth
    "VALID_ROLES",
    "VALID_EXPERIENCE_LEVELS",
    "UserLogin",
    "UserCreate",
    "UserUpdate",
    "UserResponse",
    # Lead
    "LeadStatus",
    "VALID_LEAD_STATUSES",
    "LeadDocument",
    "DraftLead",
    "LeadPasteRequest",
    "LeadDumpRequest",
    "LeadStatusUpdate",
    "ManualLeadCreate",
    "LeadAssignRequest",
    "DumpResult",
    "ParsePreview",
    "LeadList",
    # Assignment
    "AssignmentDocument",
    "AssignmentHistory",
    # Sale
    "SaleType",
    "SaleCreate",
    "SaleDocument",
    "SaleList",
]
