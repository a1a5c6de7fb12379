"""
Lead Tracker - Document Store

Accès CRUD aux collections Mongo (users, leads, assignments, sales,
audit_logs, sessions) + abonnement aux changements.

Chaque écriture passée par le store pousse un snapshot complet de la
collection à ses abonnés (tri par id).
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, Dict, List, Optional

from pymongo.errors import DuplicateKeyError, PyMongoError

from config import db

logger = logging.getLogger("document_store")


class PersistenceFailure(Exception):
    """Raised when the backing store rejects or loses a read/write"""
    pass


class DocumentStore:
    """Thin wrapper over a Motor database keyed by the integer `id` field"""

    def __init__(self, database=None):
        self.db = database if database is not None else db
        self._subscribers: Dict[str, List[Callable]] = {}

    def collection(self, name: str):
        return self.db[name]

    # ==================== READ ====================

    async def list_all(
        self,
        collection: str,
        query: Optional[Dict] = None,
        sort: str = "id",
        direction: int = 1,
        limit: int = 0
    ) -> List[Dict]:
        try:
            cursor = self.db[collection].find(query or {}, {"_id": 0}).sort(sort, direction)
            if limit:
                cursor = cursor.limit(limit)
            return await cursor.to_list(length=None)
        except PyMongoError as e:
            raise PersistenceFailure(f"list {collection}: {e}") from e

    async def get_by_id(self, collection: str, doc_id: Any) -> Optional[Dict]:
        try:
            return await self.db[collection].find_one({"id": doc_id}, {"_id": 0})
        except PyMongoError as e:
            raise PersistenceFailure(f"get {collection}/{doc_id}: {e}") from e

    async def find_one(self, collection: str, query: Dict) -> Optional[Dict]:
        try:
            return await self.db[collection].find_one(query, {"_id": 0})
        except PyMongoError as e:
            raise PersistenceFailure(f"find_one {collection}: {e}") from e

    async def find_range(
        self,
        collection: str,
        field: str,
        start: str,
        end: str,
        query: Optional[Dict] = None
    ) -> List[Dict]:
        """Documents dont `field` est dans [start, end)"""
        full_query = dict(query or {})
        full_query[field] = {"$gte": start, "$lt": end}
        return await self.list_all(collection, full_query)

    async def count(self, collection: str, query: Optional[Dict] = None) -> int:
        try:
            return await self.db[collection].count_documents(query or {})
        except PyMongoError as e:
            raise PersistenceFailure(f"count {collection}: {e}") from e

    # ==================== WRITE ====================

    async def create_with_id(self, collection: str, doc_id: Any, record: Dict) -> Dict:
        """Écrit le document sous l'id donné (remplace s'il existe déjà)"""
        doc = {**record, "id": doc_id}
        try:
            await self.db[collection].replace_one({"id": doc_id}, doc, upsert=True)
        except PyMongoError as e:
            raise PersistenceFailure(f"create {collection}/{doc_id}: {e}") from e
        doc.pop("_id", None)
        await self._notify(collection)
        return doc

    async def add(self, collection: str, record: Dict) -> Dict:
        """
        Alloue le prochain id entier puis insère le document.
        Jamais de remplacement: une collision d'id (index unique) lève
        PersistenceFailure au lieu d'écraser le document existant.
        """
        from services.id_allocator import next_id

        doc_id = await next_id(self, collection)
        doc = {**record, "id": doc_id}
        try:
            await self.db[collection].insert_one(doc)
        except DuplicateKeyError as e:
            logger.error(f"[STORE] id collision on {collection}/{doc_id}")
            raise PersistenceFailure(f"id {doc_id} already taken in {collection}") from e
        except PyMongoError as e:
            raise PersistenceFailure(f"add {collection}/{doc_id}: {e}") from e
        doc.pop("_id", None)
        await self._notify(collection)
        return doc

    async def insert(self, collection: str, record: Dict) -> Dict:
        """Insertion sans id séquentiel (audit, sessions)"""
        doc = dict(record)
        try:
            await self.db[collection].insert_one(doc)
        except PyMongoError as e:
            raise PersistenceFailure(f"insert {collection}: {e}") from e
        doc.pop("_id", None)
        await self._notify(collection)
        return doc

    async def update_fields(self, collection: str, doc_id: Any, fields: Dict) -> bool:
        try:
            result = await self.db[collection].update_one({"id": doc_id}, {"$set": fields})
        except PyMongoError as e:
            raise PersistenceFailure(f"update {collection}/{doc_id}: {e}") from e
        if result.matched_count:
            await self._notify(collection)
        return result.matched_count > 0

    async def update_where(self, collection: str, query: Dict, fields: Dict, notify: bool = True) -> int:
        """
        notify=False: étape intermédiaire d'une écriture en plusieurs temps,
        l'appelant notifie (ou non) une fois l'état final écrit.
        """
        try:
            result = await self.db[collection].update_many(query, {"$set": fields})
        except PyMongoError as e:
            raise PersistenceFailure(f"update_many {collection}: {e}") from e
        if result.modified_count and notify:
            await self._notify(collection)
        return result.modified_count

    async def delete_by_id(self, collection: str, doc_id: Any) -> bool:
        return await self.delete_where(collection, {"id": doc_id}) > 0

    async def delete_where(self, collection: str, query: Dict) -> int:
        try:
            result = await self.db[collection].delete_many(query)
        except PyMongoError as e:
            raise PersistenceFailure(f"delete {collection}: {e}") from e
        if result.deleted_count:
            await self._notify(collection)
        return result.deleted_count

    # ==================== SUBSCRIPTIONS ====================

    def subscribe(self, collection: str, callback: Callable) -> Callable[[], None]:
        """
        Enregistre un callback (sync ou async) appelé avec le snapshot
        complet de la collection après chaque écriture.
        Retourne la fonction de désabonnement.
        """
        self._subscribers.setdefault(collection, []).append(callback)

        def unsubscribe():
            callbacks = self._subscribers.get(collection, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    async def _notify(self, collection: str):
        callbacks = list(self._subscribers.get(collection, []))
        if not callbacks:
            return

        snapshot = await self.list_all(collection)
        for callback in callbacks:
            try:
                result = callback(snapshot)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"[STORE] subscriber error on {collection}: {e}")


_store: Optional[DocumentStore] = None


def get_store() -> DocumentStore:
    """Store partagé de l'application (dépendance FastAPI)"""
    global _store
    if _store is None:
        _store = DocumentStore()
    return _store


async def ensure_indexes(store: DocumentStore):
    """Index utilisés par les requêtes du ledger et des sessions"""
    await asyncio.gather(
        store.collection("users").create_index("id", unique=True),
        store.collection("users").create_index("email"),
        store.collection("leads").create_index("id", unique=True),
        store.collection("assignments").create_index("id", unique=True),
        store.collection("assignments").create_index("lead_id"),
        store.collection("assignments").create_index([("assigned_to", 1), ("active", 1), ("assigned_at", 1)]),
        store.collection("sales").create_index("id", unique=True),
        store.collection("sessions").create_index("token", unique=True),
    )
    logger.info("[STORE] indexes ensured")
