"""
Configuration et utilitaires partagés
"""

import os
import hashlib
import secrets
from datetime import datetime, timezone, timedelta, date
from motor.motor_asyncio import AsyncIOMotorClient
from dotenv import load_dotenv
from pathlib import Path

# Charger .env
ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

# MongoDB
MONGO_URL = os.environ.get('MONGO_URL', 'mongodb://localhost:27017')
DB_NAME = os.environ.get('DB_NAME', 'lead_tracker')

client = AsyncIOMotorClient(MONGO_URL)
db = client[DB_NAME]

CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*')
LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
SESSION_TTL_DAYS = int(os.environ.get('SESSION_TTL_DAYS', '7'))


# ==================== CONSTANTES METIER ====================

# The paste parser never infers the process; every dumped lead gets this one.
DEFAULT_PROCESS_TYPE = "Legal Service"
DUMP_SOURCE = "Smart Dump"
MANUAL_SOURCE = "Manual Entry"
SELF_ASSIGNED = "Self-Assigned"


# ==================== HELPERS ====================

def hash_password(password: str) -> str:
    """Hash un mot de passe avec SHA256"""
    return hashlib.sha256(password.encode()).hexdigest()

def generate_token() -> str:
    """Génère un token de session sécurisé"""
    return secrets.token_urlsafe(32)

def now_iso() -> str:
    """Retourne la date/heure actuelle en ISO"""
    return datetime.now(timezone.utc).isoformat()

def today_iso() -> str:
    """Retourne la date du jour (UTC) au format YYYY-MM-DD"""
    return datetime.now(timezone.utc).date().isoformat()

def day_bounds(day: str = None) -> tuple[str, str]:
    """
    Bornes ISO d'une journée calendaire, intervalle semi-ouvert [début, lendemain).

    "2026-03-04" -> ("2026-03-04T00:00:00", "2026-03-05T00:00:00")
    Les timestamps stockés ("2026-03-04T23:59:59.912+00:00") tombent bien
    dans l'intervalle par comparaison de chaînes.
    """
    day = day or today_iso()
    next_day = date.fromisoformat(day) + timedelta(days=1)
    return f"{day}T00:00:00", f"{next_day.isoformat()}T00:00:00"

def mask_phone(phone: str) -> str:
    """Masque un numéro pour les logs"""
    return f"***{phone[-4:]}" if phone and len(phone) >= 4 else "***"
