import logging
from typing import List

from fastapi import APIRouter, HTTPException, Query, status

from .dependencies import ClientServiceDep

from chanitec_devis.clients.application.schemas import ClientCreate, ClientMarginResponse
from chanitec_devis.clients.domain.entities import Client
from chanitec_devis.clients.domain.exceptions import ClientCreationFailedException, ClientNotFoundException
from chanitec_devis.quotes.domain.exceptions import PersistenceFailureException

logger = logging.getLogger(__name__)

# --- Création du Routeur ---
client_router = APIRouter(
    prefix="/clients",
    tags=["Clients"]
)


@client_router.get("", response_model=List[Client])
async def list_clients(client_service: ClientServiceDep):
    """Liste les clients avec leurs sites."""
    try:
        return await client_service.list_clients_with_sites()
    except PersistenceFailureException as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)
    except Exception as e:
        logger.error(f"Erreur API list_clients: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Erreur interne listage clients.")


@client_router.post("", response_model=Client, status_code=status.HTTP_201_CREATED)
async def create_client(client_request: ClientCreate, client_service: ClientServiceDep):
    """Crée un client avec son premier site et ses splits."""
    logger.info(f"API create_client: {client_request.name}")
    try:
        return await client_service.create_client_with_site(client_request)
    except ClientCreationFailedException as e:
        logger.warning(f"Erreur création client {client_request.name}: {e.message}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)
    except Exception as e:
        logger.error(f"Erreur API create_client: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Erreur interne création client.")


@client_router.get("/margin", response_model=ClientMarginResponse)
async def read_client_margin(
    client_service: ClientServiceDep,
    name: str = Query(..., min_length=1, description="Nom du client"),
):
    """Taux de marge du client (fraction), à appliquer manuellement au devis."""
    try:
        margin_rate = await client_service.get_client_margin_rate(name)
        return ClientMarginResponse(name=name.strip(), margin_rate=margin_rate)
    except ClientNotFoundException as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    except PersistenceFailureException as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)
