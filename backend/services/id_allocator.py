"""
Lead Tracker - Allocation des identifiants entiers

next_id = id max existant + 1 (1 si collection vide).

LIMITE CONNUE: deux créations quasi simultanées peuvent calculer le même id.
Un compteur à incrément atomique
($inc sur un document "counters") supprimerait la course.
"""


async def next_id(store, collection: str) -> int:
    """Prochain id entier pour la collection"""
    docs = await store.list_all(collection, sort="id", direction=-1, limit=1)
    if not docs or docs[0].get("id") is None:
        return 1
    return int(docs[0]["id"]) + 1
