"""
Lead Tracker - Parseur de collage "Smart Dump"

Transforme un bloc de texte collé (tableur, tableau HTML...) en leads
brouillons, une ligne = un lead.

Par ligne:
1. Découpage sur tabulation, virgule ou 2+ espaces (tokens vides ignorés)
2. Premier token contenant un numéro de 10 chiffres ASCII (0-9) = mobile -> valid
3. Tokens avant le mobile = nom (un n° de ligne 1-4 chiffres en tête est retiré)
4. Premier token après le mobile = localisation (sinon "Other")
5. process_type est FIXE (DEFAULT_PROCESS_TYPE), jamais déduit de la ligne

Fonction pure: aucune I/O, déterministe.
"""

import re
from typing import Dict, List

from config import DEFAULT_PROCESS_TYPE

SEPARATOR_RE = re.compile(r"\t|,| {2,}", re.ASCII)
PHONE_RE = re.compile(r"\b\d{10}\b", re.ASCII)
SERIAL_RE = re.compile(r"^\d{1,4}$", re.ASCII)

UNKNOWN_NAME = "Unknown"
DEFAULT_LOCATION = "Other"


def tokenize_line(line: str) -> List[str]:
    """Découpe une ligne sur les séparateurs de colonnes irréguliers"""
    return [part.strip() for part in SEPARATOR_RE.split(line) if part and part.strip()]


def find_phone_index(tokens: List[str]) -> int:
    """Index du premier token portant un numéro 10 chiffres, -1 sinon"""
    for i, token in enumerate(tokens):
        if PHONE_RE.search(token):
            return i
    return -1


def parse_lead_line(line: str, index: int) -> Dict:
    """Parse une ligne non vide en lead brouillon"""
    tokens = tokenize_line(line)
    phone_index = find_phone_index(tokens)

    if phone_index == -1:
        return {
            "index": index,
            "customer_name": tokens[0] if tokens else UNKNOWN_NAME,
            "customer_mobile": "",
            "location": DEFAULT_LOCATION,
            "process_type": DEFAULT_PROCESS_TYPE,
            "valid": False,
        }

    name_parts = tokens[:phone_index]
    if name_parts and SERIAL_RE.match(name_parts[0]):
        name = " ".join(name_parts[1:])
    else:
        name = " ".join(name_parts)

    if not name:
        name = name_parts[0] if name_parts else UNKNOWN_NAME

    after = tokens[phone_index + 1:]

    return {
        "index": index,
        "customer_name": name,
        "customer_mobile": tokens[phone_index],
        "location": after[0] if after else DEFAULT_LOCATION,
        "process_type": DEFAULT_PROCESS_TYPE,
        "valid": True,
    }


def parse_leads_from_text(text: str) -> List[Dict]:
    """
    Parse un collage complet.

    Retourne un brouillon par ligne non vide, dans l'ordre, chacun avec
    `index` (position 0-based parmi les lignes non vides) et `valid`.
    """
    if not text:
        return []

    lines = [line for line in text.splitlines() if line.strip()]
    return [parse_lead_line(line, i) for i, line in enumerate(lines)]
