# Standard Library
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import AsyncGenerator, Dict, List, Optional, Set

# Third-Party Libraries
import pytest
import pytest_asyncio

from httpx import AsyncClient, ASGITransport

# First-Party Libraries (Your project)
from chanitec_devis.config import Settings
from chanitec_devis.main import app
from chanitec_devis.clients.application.services import ClientService
from chanitec_devis.clients.config import ClientSettings
from chanitec_devis.clients.domain.entities import Client, Site, Split
from chanitec_devis.clients.domain.exceptions import ClientNotFoundException
from chanitec_devis.clients.domain.repositories import AbstractClientRepository
from chanitec_devis.clients.interfaces.dependencies import get_client_service
from chanitec_devis.quotes.application.catalog import CatalogService
from chanitec_devis.quotes.application.history import QuoteHistoryService
from chanitec_devis.quotes.application.store import QuoteStore
from chanitec_devis.quotes.domain.entities import CatalogItem, LaborItem, Quote, SupplyItem
from chanitec_devis.quotes.domain.exceptions import PersistenceFailureException, QuoteNotFoundException
from chanitec_devis.quotes.domain.repositories import AbstractExchangeRateProvider, AbstractQuoteRepository
from chanitec_devis.quotes.interfaces.dependencies import (
    get_catalog_service, get_quote_history_service, get_quote_store,
)

FIXED_NOW = datetime(2024, 5, 15, 9, 30, tzinfo=timezone.utc)
FIXED_TODAY = date(2024, 5, 15)


# --- Repositories simulés ---

class MockQuoteRepository(AbstractQuoteRepository):
    """Backend de devis simulé en mémoire.

    `fail_on` contient les noms d'opérations qui doivent échouer avec une
    PersistenceFailureException; `calls` trace les appels dans l'ordre.
    """

    def __init__(self):
        self.quotes: Dict[str, Quote] = {}
        self.catalog: List[CatalogItem] = []
        self.calls: List[tuple] = []
        self.fail_on: Set[str] = set()
        self._next_item_id = 1

    def _check(self, operation: str, *args):
        self.calls.append((operation, *args))
        if operation in self.fail_on:
            raise PersistenceFailureException(f"{operation} simulé en échec", status_code=500)

    def _server_item_id(self) -> str:
        item_id = f"srv-{self._next_item_id}"
        self._next_item_id += 1
        return item_id

    async def get_quote_by_id(self, quote_id: str) -> Quote:
        self._check("get_quote_by_id", quote_id)
        if quote_id not in self.quotes:
            raise QuoteNotFoundException(quote_id)
        return self.quotes[quote_id].model_copy(deep=True)

    async def list_quotes(self) -> List[Quote]:
        self._check("list_quotes")
        return [q.model_copy(deep=True) for q in self.quotes.values()]

    async def save_quote(self, quote: Quote) -> Quote:
        self._check("save_quote", quote.id)
        self.quotes[quote.id] = quote.model_copy(deep=True)
        return quote.model_copy(deep=True)

    async def create_supply_item(self, quote_id: str, item: SupplyItem) -> SupplyItem:
        self._check("create_supply_item", quote_id, item.description)
        created = item.model_copy(update={"id": self._server_item_id(), "quote_id": quote_id})
        stored = self.quotes[quote_id]
        self.quotes[quote_id] = stored.model_copy(update={"supply_items": [*stored.supply_items, created]})
        return created

    async def create_labor_item(self, quote_id: str, item: LaborItem) -> LaborItem:
        self._check("create_labor_item", quote_id, item.description)
        created = item.model_copy(update={"id": self._server_item_id(), "quote_id": quote_id})
        stored = self.quotes[quote_id]
        self.quotes[quote_id] = stored.model_copy(update={"labor_items": [*stored.labor_items, created]})
        return created

    async def confirm_quote(self, quote_id: str, confirmed: bool, reference_number: str) -> None:
        self._check("confirm_quote", quote_id, reference_number)
        if quote_id not in self.quotes:
            raise QuoteNotFoundException(quote_id)
        self.quotes[quote_id] = self.quotes[quote_id].model_copy(
            update={"confirmed": confirmed, "reference_number": reference_number}
        )

    async def set_reminder(self, quote_id: str, reminder_date: date) -> None:
        self._check("set_reminder", quote_id, reminder_date)
        if quote_id not in self.quotes:
            raise QuoteNotFoundException(quote_id)
        self.quotes[quote_id] = self.quotes[quote_id].model_copy(update={"reminder_date": reminder_date})

    async def delete_quote(self, quote_id: str) -> None:
        self._check("delete_quote", quote_id)
        if quote_id not in self.quotes:
            raise QuoteNotFoundException(quote_id)
        del self.quotes[quote_id]

    async def list_catalog_items(self) -> List[CatalogItem]:
        self._check("list_catalog_items")
        return list(self.catalog)

    async def clear_catalog_items(self) -> int:
        self._check("clear_catalog_items")
        deleted = len(self.catalog)
        self.catalog = []
        return deleted


class MockExchangeRateProvider(AbstractExchangeRateProvider):
    """Taux de change simulé; `rate=None` simule un service indisponible."""

    def __init__(self, rate: Optional[Decimal] = Decimal("1.0834")):
        self.rate = rate
        self.requests: List[tuple] = []

    async def get_exchange_rate(self, from_currency: str, to_currency: str) -> Decimal:
        self.requests.append((from_currency, to_currency))
        if self.rate is None:
            raise PersistenceFailureException("service de change indisponible")
        return self.rate


class MockClientRepository(AbstractClientRepository):
    """Backend clients / sites / splits simulé en mémoire."""

    def __init__(self):
        self.clients: Dict[str, Client] = {}
        self.sites: Dict[str, Site] = {}
        self.splits: List[Split] = []
        self.deleted_clients: List[str] = []
        self.deleted_sites: List[str] = []
        self.fail_on: Set[str] = set()
        self._next_site_id = 1

    def _check(self, operation: str):
        if operation in self.fail_on:
            raise PersistenceFailureException(f"{operation} simulé en échec", status_code=500)

    async def list_clients(self) -> List[Client]:
        self._check("list_clients")
        return list(self.clients.values())

    async def get_client_by_id(self, client_id: str) -> Client:
        self._check("get_client_by_id")
        if client_id not in self.clients:
            raise ClientNotFoundException(client_id)
        return self.clients[client_id]

    async def create_client(self, client_id: str, name: str, margin_rate: Decimal) -> Client:
        self._check("create_client")
        client = Client(id=client_id, name=name, margin_rate=margin_rate)
        self.clients[client_id] = client
        return client

    async def delete_client(self, client_id: str) -> None:
        self._check("delete_client")
        self.deleted_clients.append(client_id)
        self.clients.pop(client_id, None)

    async def list_sites_by_client(self, client_id: str) -> List[Site]:
        self._check("list_sites_by_client")
        return [s for s in self.sites.values() if s.client_id == client_id]

    async def create_site(self, client_id: str, name: str) -> Site:
        self._check("create_site")
        site = Site(id=str(self._next_site_id), name=name, client_id=client_id)
        self._next_site_id += 1
        self.sites[site.id] = site
        return site

    async def delete_site(self, site_id: str) -> None:
        self._check("delete_site")
        self.deleted_sites.append(site_id)
        self.sites.pop(site_id, None)

    async def create_split(self, site_id: str, split: Split) -> Split:
        self._check("create_split")
        created = split.model_copy(update={"site": site_id})
        self.splits.append(created)
        return created


# --- Fixtures de Base ---

@pytest.fixture
def test_settings() -> Settings:
    """Configuration de test, indépendante de l'environnement."""
    return Settings(
        VAT_RATE=Decimal("0.16"),
        DEFAULT_SUPPLY_EXCHANGE_RATE=Decimal("1.2"),
        DEFAULT_LABOR_EXCHANGE_RATE=Decimal("1.2"),
        DEFAULT_SUPPLY_MARGIN_RATE=Decimal("0.2"),
        DEFAULT_LABOR_MARGIN_RATE=Decimal("0.2"),
    )


@pytest.fixture
def quote_repo() -> MockQuoteRepository:
    return MockQuoteRepository()


@pytest.fixture
def rate_provider() -> MockExchangeRateProvider:
    return MockExchangeRateProvider()


@pytest.fixture
def quote_store(quote_repo, rate_provider, test_settings) -> QuoteStore:
    """Poste de travail branché sur les repositories simulés, horloge figée."""
    return QuoteStore(
        quote_repo=quote_repo,
        rate_provider=rate_provider,
        settings=test_settings,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def history_service(quote_repo) -> QuoteHistoryService:
    return QuoteHistoryService(quote_repo, today=lambda: FIXED_TODAY)


@pytest.fixture
def catalog_service(quote_repo) -> CatalogService:
    return CatalogService(quote_repo)


@pytest.fixture
def client_repo() -> MockClientRepository:
    return MockClientRepository()


@pytest.fixture
def client_service(client_repo) -> ClientService:
    return ClientService(client_repo, settings=ClientSettings(INCLUDE_SITES=True, DEFAULT_MARGIN_PERCENT=Decimal(0)))


@pytest.fixture
def make_quote():
    """Fabrique de devis enregistrés (pour alimenter le backend simulé)."""
    def _make(quote_id: str = "P-00000001", **overrides) -> Quote:
        data = dict(
            id=quote_id,
            client_name="Bralima",
            site_name="Usine Kinshasa",
            date=FIXED_TODAY,
            supply_exchange_rate=Decimal("1.2"),
            supply_margin_rate=Decimal("0.2"),
            labor_exchange_rate=Decimal("1.2"),
            labor_margin_rate=Decimal("0.2"),
            created_at=FIXED_NOW,
            updated_at=FIXED_NOW,
        )
        data.update(overrides)
        return Quote(**data)
    return _make


# --- Fixtures API ---

@pytest_asyncio.fixture(scope="function")
async def test_client(quote_store, history_service, catalog_service, client_service) -> AsyncGenerator[AsyncClient, None]:
    """Fournit un AsyncClient httpx branché sur les services de test."""
    app.dependency_overrides[get_quote_store] = lambda: quote_store
    app.dependency_overrides[get_quote_history_service] = lambda: history_service
    app.dependency_overrides[get_catalog_service] = lambda: catalog_service
    app.dependency_overrides[get_client_service] = lambda: client_service
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
