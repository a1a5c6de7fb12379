"""
Lead Tracker - Sessions

Sessions par token stockées dans la collection "sessions".
Une session est invalidée dès que son utilisateur est désactivé ou supprimé.

SessionContext porte l'identité connectée de façon explicite (pas d'état
global): il est passé aux appelants qui en ont besoin.
"""

import logging
from datetime import datetime, timezone, timedelta
from typing import Dict, List, Optional

from config import hash_password, generate_token, now_iso, SESSION_TTL_DAYS
from services.event_logger import record_event

logger = logging.getLogger("session")

SESSIONS = "sessions"


def public_user(user: Optional[Dict]) -> Optional[Dict]:
    """Copie sans le hash du mot de passe"""
    if user is None:
        return None
    return {k: v for k, v in user.items() if k not in ("password", "_id")}


async def verify_credentials(store, email: str, password: str) -> Optional[Dict]:
    user = await store.find_one("users", {"email": (email or "").lower().strip()})
    if not user:
        return None
    if user.get("password") != hash_password(password or ""):
        return None
    if not user.get("is_active", True):
        return None
    return user


async def create_session(store, email: str, password: str, ip_address: str = None) -> Optional[Dict]:
    """
    Connexion: retourne {"token", "user"} ou None si identifiants invalides
    ou compte désactivé.
    """
    user = await verify_credentials(store, email, password)
    if not user:
        logger.info(f"[AUTH] login refused for {email}")
        return None

    token = generate_token()
    expires_at = (datetime.now(timezone.utc) + timedelta(days=SESSION_TTL_DAYS)).isoformat()

    await store.insert(SESSIONS, {
        "token": token,
        "user_id": user["id"],
        "created_at": now_iso(),
        "expires_at": expires_at
    })

    record_event(
        store, "USER_LOGIN", "user",
        user_id=user["id"], entity_id=user["id"], ip_address=ip_address
    )
    return {"token": token, "user": public_user(user)}


async def resolve_session(store, token: str) -> Optional[Dict]:
    """Utilisateur de la session, ou None (session expirée / compte inactif -> supprimée)"""
    if not token:
        return None

    session = await store.find_one(SESSIONS, {"token": token})
    if not session:
        return None

    if session.get("expires_at", "") <= now_iso():
        await store.delete_where(SESSIONS, {"token": token})
        return None

    user = await store.get_by_id("users", session["user_id"])
    if not user or not user.get("is_active", True):
        await store.delete_where(SESSIONS, {"token": token})
        logger.info(f"[AUTH] session invalidated for user={session['user_id']}")
        return None

    return public_user(user)


async def end_session(store, token: str, user_id=None) -> bool:
    deleted = await store.delete_where(SESSIONS, {"token": token})
    if deleted and user_id is not None:
        record_event(store, "USER_LOGOUT", "user", user_id=user_id, entity_id=user_id)
    return deleted > 0


class SessionContext:
    """
    Identité connectée d'un client (init / restore / logout).

    attach() s'abonne aux snapshots "users": si l'utilisateur courant
    disparaît ou est désactivé, le contexte se vide et le token est révoqué.
    """

    def __init__(self, store):
        self.store = store
        self.token: Optional[str] = None
        self.user: Optional[Dict] = None
        self._unsubscribe = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    async def login(self, email: str, password: str) -> bool:
        session = await create_session(self.store, email, password)
        if not session:
            return False
        self.token = session["token"]
        self.user = session["user"]
        return True

    async def restore(self, token: str) -> bool:
        """Recharge l'identité depuis un token persisté"""
        user = await resolve_session(self.store, token)
        if not user:
            self.clear()
            return False
        self.token = token
        self.user = user
        return True

    async def logout(self):
        if self.token:
            await end_session(self.store, self.token, self.user["id"] if self.user else None)
        self.clear()

    def clear(self):
        self.token = None
        self.user = None

    def attach(self):
        if self._unsubscribe is None:
            self._unsubscribe = self.store.subscribe("users", self.on_users_snapshot)

    def detach(self):
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def on_users_snapshot(self, users: List[Dict]):
        if not self.user:
            return

        current = next((u for u in users if u.get("id") == self.user["id"]), None)
        if current and current.get("is_active", True):
            self.user = public_user(current)
            return

        logger.info(f"[AUTH] user={self.user['id']} deactivated, logging out")
        if self.token:
            await self.store.delete_where(SESSIONS, {"token": self.token})
        self.clear()
