"""
Module principal de l'application FastAPI Chanitec Devis.

Ce module configure l'instance FastAPI (CORS, lifespan) et inclut les routeurs
du poste de travail des devis, de l'historique, du catalogue de fournitures
et des clients. Le lifespan crée le client HTTP partagé vers le backend REST,
les repositories et les services, puis les expose via `app.state` aux
dépendances.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chanitec_devis.config import Settings, settings as default_settings
from chanitec_devis.core.http import create_http_client

# --- Importer les routeurs ---
from chanitec_devis.clients.interfaces.api import client_router
from chanitec_devis.quotes.interfaces.api import catalog_router, quote_router, workspace_router

# --- Composants injectés au démarrage ---
from chanitec_devis.clients.application.services import ClientService
from chanitec_devis.clients.infrastructure.api_client import HttpClientRepository
from chanitec_devis.quotes.application.catalog import CatalogService
from chanitec_devis.quotes.application.history import QuoteHistoryService
from chanitec_devis.quotes.application.store import QuoteStore
from chanitec_devis.quotes.infrastructure.api_client import HttpExchangeRateProvider, HttpQuoteRepository

logger = logging.getLogger(__name__)


def create_app(settings: Settings = default_settings) -> FastAPI:
    # Configurer le logging
    logging.basicConfig(level=settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        http_client = create_http_client(settings)
        quote_repo = HttpQuoteRepository(http_client)
        app.state.quote_store = QuoteStore(
            quote_repo=quote_repo,
            rate_provider=HttpExchangeRateProvider(http_client),
            settings=settings,
        )
        app.state.quote_history_service = QuoteHistoryService(quote_repo)
        app.state.catalog_service = CatalogService(quote_repo)
        app.state.client_service = ClientService(HttpClientRepository(http_client))
        logger.info(f"Application démarrée, backend: {settings.API_BASE_URL}")
        try:
            yield
        finally:
            await http_client.aclose()
            logger.info("Client HTTP backend fermé.")

    app = FastAPI(
        title="Chanitec Devis API",
        description="Poste de travail des devis de climatisation: tarification, versions, confirmation.",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Configurer CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ======================================================
    # Inclure les routeurs
    # ======================================================
    # Devis: poste de travail, historique et catalogue
    app.include_router(workspace_router, prefix=settings.API_V1_PREFIX)
    app.include_router(quote_router, prefix=settings.API_V1_PREFIX)
    app.include_router(catalog_router, prefix=settings.API_V1_PREFIX)

    # Clients, sites et splits
    app.include_router(client_router, prefix=settings.API_V1_PREFIX)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("chanitec_devis.main:app", host="0.0.0.0", port=8000)
