"""
Lead Tracker - Routes Ventes
"""

from fastapi import APIRouter, HTTPException, Depends
from typing import Optional

from models.sale import SaleCreate, SaleList
from routes.auth import get_current_user
from services.document_store import DocumentStore, get_store
from services.sales import add_sale, list_sales, net_total

router = APIRouter(prefix="/sales", tags=["Sales"])


@router.get("", response_model=SaleList)
async def get_sales(
    user_id: Optional[int] = None,
    user: dict = Depends(get_current_user),
    store: DocumentStore = Depends(get_store)
):
    """Admin: toutes les ventes (filtrables par user_id). Employé: les siennes."""
    if user.get("role") != "admin":
        user_id = user["id"]

    sales = await list_sales(store, user_id)
    return {"sales": sales, "count": len(sales), "net_total": net_total(sales)}


@router.post("")
async def record_sale(
    data: SaleCreate,
    user: dict = Depends(get_current_user),
    store: DocumentStore = Depends(get_store)
):
    lead = None
    if data.lead_id is not None:
        lead = await store.get_by_id("leads", data.lead_id)
        if not lead:
            raise HTTPException(status_code=404, detail="Lead not found")

    sale = await add_sale(
        store,
        user,
        data.amount,
        sale_type=data.type,
        payment_mode=data.payment_mode,
        lead=lead,
        comments=data.comments or ""
    )
    return {"success": True, "sale": sale}
