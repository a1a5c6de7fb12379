"""
Lead Tracker - Routes Auth
Login / Logout / Session / User CRUD (admin only).
"""

from fastapi import APIRouter, HTTPException, Depends, Request
from typing import Optional
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from models.auth import UserLogin, UserCreate, UserUpdate, UserResponse
from config import hash_password, now_iso
from services.document_store import DocumentStore, get_store
from services.event_logger import record_event
from services.session import create_session, resolve_session, end_session, public_user

router = APIRouter(prefix="/auth", tags=["Auth"])
security = HTTPBearer(auto_error=False)


# ==================== HELPERS ====================

async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    store: DocumentStore = Depends(get_store)
):
    """Récupère l'utilisateur connecté depuis le token."""
    if not credentials:
        raise HTTPException(status_code=401, detail="Not authenticated")

    user = await resolve_session(store, credentials.credentials)
    if not user:
        raise HTTPException(status_code=401, detail="Session expired or account inactive")

    return user


async def require_admin(user: dict = Depends(get_current_user)):
    if user.get("role") != "admin":
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


async def require_employee(user: dict = Depends(get_current_user)):
    if user.get("role") != "employee":
        raise HTTPException(status_code=403, detail="Employee access required")
    return user


# ==================== LOGIN / LOGOUT ====================

@router.post("/login")
async def login(data: UserLogin, request: Request, store: DocumentStore = Depends(get_store)):
    """Connexion utilisateur."""
    session = await create_session(
        store,
        data.email,
        data.password,
        ip_address=request.client.host if request.client else None
    )
    if not session:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return session


@router.post("/logout")
async def logout(
    user: dict = Depends(get_current_user),
    credentials: HTTPAuthorizationCredentials = Depends(security),
    store: DocumentStore = Depends(get_store)
):
    await end_session(store, credentials.credentials, user["id"])
    return {"success": True}


@router.get("/me", response_model=UserResponse)
async def get_me(user: dict = Depends(get_current_user)):
    return user


# ==================== USER CRUD (admin) ====================

@router.get("/users")
async def list_users(
    role: Optional[str] = None,
    user: dict = Depends(require_admin),
    store: DocumentStore = Depends(get_store)
):
    query = {"role": role} if role else {}
    users = await store.list_all("users", query)
    return {"users": [public_user(u) for u in users]}


@router.post("/users")
async def create_user(
    data: UserCreate,
    user: dict = Depends(require_admin),
    store: DocumentStore = Depends(get_store)
):
    email = data.email.lower().strip()
    if await store.find_one("users", {"email": email}):
        raise HTTPException(status_code=400, detail="Email already exists")

    new_user = await store.add("users", {
        "name": data.name,
        "email": email,
        "password": hash_password(data.password),
        "mobile": data.mobile,
        "role": data.role,
        "is_active": True,
        "daily_lead_target": data.daily_lead_target,
        "experience_level": data.experience_level,
        "skills": data.skills,
        "created_at": now_iso(),
    })

    record_event(
        store, "USER_CREATED", "user",
        user_id=user["id"], entity_id=new_user["id"],
        new_value={"role": data.role, "email": email}
    )
    return {"success": True, "user": public_user(new_user)}


@router.put("/users/{user_id}")
async def update_user(
    user_id: int,
    data: UserUpdate,
    user: dict = Depends(require_admin),
    store: DocumentStore = Depends(get_store)
):
    """
    Mise à jour (objectif journalier, activation, seniorité, compétences).
    Baisser l'objectif ne révoque pas les assignments déjà actives.
    """
    target = await store.get_by_id("users", user_id)
    if not target:
        raise HTTPException(status_code=404, detail="User not found")

    update_data = data.model_dump(exclude_none=True)
    if not update_data:
        raise HTTPException(status_code=400, detail="Nothing to update")

    if update_data.get("is_active") is False and user_id == user["id"]:
        raise HTTPException(status_code=400, detail="Cannot deactivate your own account")

    old_value = {k: target.get(k) for k in update_data}
    update_data["updated_at"] = now_iso()
    await store.update_fields("users", user_id, update_data)

    record_event(
        store, "USER_UPDATED", "user",
        user_id=user["id"], entity_id=user_id,
        old_value=old_value,
        new_value={k: v for k, v in update_data.items() if k != "updated_at"}
    )

    updated = await store.get_by_id("users", user_id)
    return {"success": True, "user": public_user(updated)}


@router.delete("/users/{user_id}")
async def remove_user(
    user_id: int,
    user: dict = Depends(require_admin),
    store: DocumentStore = Depends(get_store)
):
    target = await store.get_by_id("users", user_id)
    if not target:
        raise HTTPException(status_code=404, detail="User not found")

    if user_id == user["id"]:
        raise HTTPException(status_code=400, detail="Cannot remove your own account")

    await store.delete_by_id("users", user_id)
    await store.delete_where("sessions", {"user_id": user_id})

    record_event(
        store, "USER_REMOVED", "user",
        user_id=user["id"], entity_id=user_id,
        old_value={"email": target.get("email")}
    )
    return {"success": True}
