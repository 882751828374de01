"""
Client HTTP partagé vers le backend REST.

Un seul `httpx.AsyncClient` est créé par l'application (lifespan FastAPI) et
injecté dans les repositories. Les erreurs de transport et les réponses HTTP en
erreur sont converties en exceptions du domaine; aucune relance automatique.
"""
import logging
from typing import Any, Callable, Dict, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from chanitec_devis.config import Settings
from chanitec_devis.quotes.domain.exceptions import PersistenceFailureException

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def create_http_client(settings: Settings) -> httpx.AsyncClient:
    """Construit le client HTTP asynchrone vers le backend."""
    logger.info(f"Création du client HTTP backend: {settings.API_BASE_URL}")
    return httpx.AsyncClient(
        base_url=settings.API_BASE_URL.rstrip("/"),
        timeout=settings.HTTP_TIMEOUT_SECONDS,
        headers={"Content-Type": "application/json"},
    )


def decode_payload(model: Type[M], data: Any) -> M:
    """Valide une réponse JSON du backend; une réponse non conforme est une erreur de persistance."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.error(f"Réponse backend non conforme pour {model.__name__}: {e}")
        raise PersistenceFailureException(f"réponse non conforme ({model.__name__})") from e

class BackendApiClient:
    """Base des repositories HTTP: envoi de la requête et mapping des erreurs."""

    def __init__(self, http_client: httpx.AsyncClient):
        self.http_client = http_client

    async def _request(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
        not_found: Optional[Callable[[], Exception]] = None,
    ) -> Any:
        name = type(self).__name__
        logger.debug(f"[{name}] {method} {url}")
        try:
            response = await self.http_client.request(method, url, json=json, params=params)
        except httpx.HTTPError as e:
            logger.error(f"[{name}] Erreur transport {method} {url}: {e}")
            raise PersistenceFailureException(f"{method} {url}: {e}") from e

        if response.status_code == 404 and not_found is not None:
            logger.warning(f"[{name}] Ressource introuvable: {method} {url}")
            raise not_found()
        if response.is_error:
            logger.error(f"[{name}] {method} {url} -> HTTP {response.status_code}: {response.text[:200]}")
            raise PersistenceFailureException(
                response.reason_phrase or "réponse en erreur", status_code=response.status_code
            )
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"[{name}] Réponse JSON invalide pour {method} {url}: {e}")
            raise PersistenceFailureException(f"réponse JSON invalide pour {url}") from e
