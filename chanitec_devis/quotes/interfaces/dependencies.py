import logging
from typing import Annotated

from fastapi import Depends, Request

# Services / poste de travail
from chanitec_devis.quotes.application.catalog import CatalogService
from chanitec_devis.quotes.application.history import QuoteHistoryService
from chanitec_devis.quotes.application.store import QuoteStore

logger = logging.getLogger(__name__)

# Les instances sont créées dans le lifespan de l'application (voir main.py)
# et partagées entre les requêtes via app.state.

# --- Dépendances Poste de travail ---
def get_quote_store(request: Request) -> QuoteStore:
    """Fournit le QuoteStore de l'application."""
    logger.debug("Fourniture de QuoteStore")
    return request.app.state.quote_store

QuoteStoreDep = Annotated[QuoteStore, Depends(get_quote_store)]

# --- Dépendances Service ---
def get_quote_history_service(request: Request) -> QuoteHistoryService:
    """Fournit QuoteHistoryService."""
    logger.debug("Fourniture de QuoteHistoryService")
    return request.app.state.quote_history_service

QuoteHistoryServiceDep = Annotated[QuoteHistoryService, Depends(get_quote_history_service)]

def get_catalog_service(request: Request) -> CatalogService:
    """Fournit CatalogService."""
    logger.debug("Fourniture de CatalogService")
    return request.app.state.catalog_service

CatalogServiceDep = Annotated[CatalogService, Depends(get_catalog_service)]
