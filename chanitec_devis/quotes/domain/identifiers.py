"""
Génération et lecture des identifiants.

L'identifiant canonique d'un devis est `P-########` (8 chiffres). La version est
stockée dans son propre champ; `format_quote_id` ne sert qu'à l'affichage
(`P-########-NNN`).
"""
import random
import re
import string
import time
from typing import Iterable, Optional

QUOTE_ID_PREFIX = "P"
QUOTE_DIGITS = 8
CLIENT_ID_WIDTH = 4

_BASE36 = string.digits + string.ascii_lowercase
_QUOTE_ID_RE = re.compile(rf"^{QUOTE_ID_PREFIX}-([0-9]{{{QUOTE_DIGITS}}})(?:-([0-9]+))?$")


def _to_base36(number: int) -> str:
    if number == 0:
        return "0"
    chars = []
    while number:
        number, rem = divmod(number, 36)
        chars.append(_BASE36[rem])
    return "".join(reversed(chars))


def generate_id() -> str:
    """Identifiant opaque temporaire: horodatage base 36 + suffixe aléatoire."""
    timestamp = _to_base36(int(time.time() * 1000))
    suffix = "".join(random.choices(_BASE36, k=6))
    return f"{timestamp}-{suffix}"


def _random_digits(length: int) -> str:
    return str(random.randrange(10 ** length)).zfill(length)


def generate_quote_id(base_id: Optional[str] = None) -> str:
    return f"{QUOTE_ID_PREFIX}-{base_id or _random_digits(QUOTE_DIGITS)}"


def format_quote_id(quote_id: str, version: int) -> str:
    """Forme d'affichage: P-12345678-003."""
    base = extract_base_id(quote_id)
    canonical = generate_quote_id(base) if base else quote_id
    return f"{canonical}-{version:03d}"


def extract_base_id(quote_id: str) -> Optional[str]:
    match = _QUOTE_ID_RE.match(quote_id or "")
    return match.group(1) if match else None


def extract_version(quote_id: str) -> Optional[int]:
    """Version d'un identifiant d'affichage; 0 pour un identifiant canonique."""
    match = _QUOTE_ID_RE.match(quote_id or "")
    if not match:
        return None
    return int(match.group(2)) if match.group(2) is not None else 0


def generate_client_id(existing_ids: Iterable[str]) -> str:
    """
    Identifiant client séquentiel ("0001", "0002", ...).

    Max des identifiants numériques existants + 1. Deux créations simultanées
    peuvent produire le même identifiant: le backend reste l'arbitre.
    """
    # Chiffres ASCII uniquement: "²" passe isdigit() mais pas int()
    candidates = (str(i).strip() for i in existing_ids)
    numeric_ids = [int(i) for i in candidates if i.isascii() and i.isdigit()]
    highest = max((i for i in numeric_ids if i > 0), default=0)
    return str(highest + 1).zfill(CLIENT_ID_WIDTH)
