import logging
from typing import Annotated

from fastapi import Depends, Request

from chanitec_devis.clients.application.services import ClientService

logger = logging.getLogger(__name__)

# --- Dépendances Service ---
def get_client_service(request: Request) -> ClientService:
    """Fournit ClientService (créé dans le lifespan de l'application)."""
    logger.debug("Fourniture de ClientService")
    return request.app.state.client_service

ClientServiceDep = Annotated[ClientService, Depends(get_client_service)]
