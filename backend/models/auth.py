"""
Lead Tracker - Modeles Auth & Utilisateurs
Two roles: admin (distributes leads, manages the team) and employee
(works the leads assigned to them, subject to a daily target).
"""

from pydantic import BaseModel, validator
from typing import Optional, List


VALID_ROLES = ["admin", "employee"]
VALID_EXPERIENCE_LEVELS = ["senior", "new"]


class UserLogin(BaseModel):
    email: str
    password: str


class UserCreate(BaseModel):
    name: str
    email: str
    password: str
    mobile: str = ""
    role: str = "employee"
    daily_lead_target: int = 0
    experience_level: str = "new"
    skills: List[str] = []

    @validator("role")
    def validate_role(cls, v):
        if v not in VALID_ROLES:
            raise ValueError(f"Invalid role: {v}. Valid: {VALID_ROLES}")
        return v

    @validator("experience_level")
    def validate_experience(cls, v):
        if v not in VALID_EXPERIENCE_LEVELS:
            raise ValueError(f"Invalid experience level: {v}")
        return v

    @validator("daily_lead_target")
    def validate_target(cls, v):
        if v < 0:
            raise ValueError("daily_lead_target must be >= 0")
        return v


class UserUpdate(BaseModel):
    name: Optional[str] = None
    mobile: Optional[str] = None
    is_active: Optional[bool] = None
    daily_lead_target: Optional[int] = None
    experience_level: Optional[str] = None
    skills: Optional[List[str]] = None

    @validator("experience_level")
    def validate_experience(cls, v):
        if v is not None and v not in VALID_EXPERIENCE_LEVELS:
            raise ValueError(f"Invalid experience level: {v}")
        return v

    @validator("daily_lead_target")
    def validate_target(cls, v):
        if v is not None and v < 0:
            raise ValueError("daily_lead_target must be >= 0")
        return v


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    mobile: str = ""
    role: str = "employee"
    is_active: bool = True
    daily_lead_target: int = 0
    experience_level: str = "new"
    skills: List[str] = []
    created_at: str = ""
