"""
Lead Tracker - Ventes

Enregistrement des ventes (ajout / correction négative) et total net.
Pas d'analytique historique ici: les agrégats fins restent côté appelant.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from models.sale import SaleType
from services.event_logger import record_event

logger = logging.getLogger("sales")

SALES = "sales"


async def add_sale(
    store,
    user: Dict,
    amount: float,
    sale_type=SaleType.ADD,
    payment_mode: str = "UPI",
    lead: Optional[Dict] = None,
    comments: str = ""
) -> Dict:
    """Enregistre une vente pour l'utilisateur (montant >= 0, le type porte le signe)"""
    if amount is None or amount < 0:
        raise ValueError("Sale amount must be >= 0")

    sale_type = SaleType(sale_type)
    now = datetime.now(timezone.utc)
    iso = now.isoformat()

    sale = await store.add(SALES, {
        "user_id": user["id"],
        "user_name": user.get("name", ""),
        "lead_id": lead.get("id") if lead else None,
        "lead_name": lead.get("customer_name") if lead else None,
        "amount": float(amount),
        "type": sale_type.value,
        "payment_mode": payment_mode,
        "sale_date": now.date().isoformat(),
        "sale_time": now.strftime("%H:%M"),
        "timestamp": iso,
        "comments": comments or "",
        "created_at": iso,
    })

    record_event(
        store,
        "SALE_RECORDED",
        "sale",
        user_id=user["id"],
        entity_id=sale["id"],
        new_value={"amount": sale["amount"], "type": sale["type"], "lead_id": sale["lead_id"]}
    )
    logger.info(f"[SALES] {sale_type.value} {sale['amount']} by user={user['id']} lead={sale['lead_id']}")
    return sale


async def list_sales(store, user_id: Optional[int] = None) -> List[Dict]:
    query = {"user_id": user_id} if user_id is not None else {}
    return await store.list_all(SALES, query, sort="timestamp", direction=-1)


def net_total(sales: List[Dict]) -> float:
    """Somme des ajouts moins somme des corrections"""
    total = 0.0
    for sale in sales:
        amount = sale.get("amount", 0) or 0
        if sale.get("type") == SaleType.SUBTRACT.value:
            total -= amount
        else:
            total += amount
    return total
