"""
Lead Tracker - Modèle Sale
"""

from typing import List, Optional
from pydantic import BaseModel, Field
from enum import Enum


class SaleType(str, Enum):
    ADD = "add"
    SUBTRACT = "subtract"


class SaleCreate(BaseModel):
    amount: float = Field(ge=0)
    type: SaleType = SaleType.ADD
    payment_mode: str = "UPI"
    lead_id: Optional[int] = None
    comments: Optional[str] = ""


class SaleDocument(BaseModel):
    id: int
    user_id: int
    user_name: str
    lead_id: Optional[int] = None
    lead_name: Optional[str] = None
    amount: float
    type: SaleType
    payment_mode: str
    sale_date: str
    sale_time: str
    timestamp: str
    comments: Optional[str] = ""
    created_at: str


class SaleList(BaseModel):
    sales: List[SaleDocument]
    count: int
    net_total: float
