from decimal import Decimal

import pytest
from httpx import AsyncClient

from chanitec_devis.quotes.application.catalog import filter_catalog_items
from chanitec_devis.quotes.domain.entities import CatalogItem

API = "/api/v1"


@pytest.fixture
def catalog(quote_repo):
    quote_repo.catalog = [
        CatalogItem(id="SPL-12", description="Split mural 12000 BTU", price_euro=Decimal("420")),
        CatalogItem(id="CUI-14", description="Tube cuivre 1/4", price_euro=Decimal("6.5")),
        CatalogItem(id="GAZ-R410", description="Recharge gaz R410A", price_euro=Decimal("35")),
    ]
    return quote_repo.catalog


@pytest.mark.parametrize("search, expected", [
    ("split", ["SPL-12"]),
    ("CUIVRE", ["CUI-14"]),
    ("r410", ["GAZ-R410"]),
    ("  ", ["SPL-12", "CUI-14", "GAZ-R410"]),
    (None, ["SPL-12", "CUI-14", "GAZ-R410"]),
    ("compresseur", []),
])
def test_filter_catalog_on_description_or_id(catalog, search, expected):
    assert [i.id for i in filter_catalog_items(catalog, search)] == expected


def test_catalog_item_becomes_supply_line():
    item = CatalogItem(id="SPL-12", description="Split mural", price_euro=Decimal("420"), quantity=Decimal("8"))
    line = item.as_supply_item(Decimal("2"))
    assert line.description == "Split mural"
    assert line.price_euro == Decimal("420")
    assert line.quantity == Decimal("2")


@pytest.mark.asyncio
async def test_catalog_service_search(catalog_service, catalog):
    found = await catalog_service.search_items("tube")
    assert [i.id for i in found] == ["CUI-14"]


@pytest.mark.asyncio
async def test_catalog_service_clear(catalog_service, quote_repo, catalog):
    assert await catalog_service.clear_catalog() == 3
    assert quote_repo.catalog == []


# --- API ---

@pytest.mark.asyncio
async def test_search_catalog_endpoint(test_client: AsyncClient, catalog):
    response = await test_client.get(f"{API}/catalog", params={"search": "split"})
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["id"] == "SPL-12"
    assert data["items"][0]["priceEuro"] == 420


@pytest.mark.asyncio
async def test_search_catalog_backend_failure(test_client: AsyncClient, quote_repo):
    quote_repo.fail_on.add("list_catalog_items")
    response = await test_client.get(f"{API}/catalog")
    assert response.status_code == 502


@pytest.mark.asyncio
async def test_clear_catalog_endpoint(test_client: AsyncClient, quote_repo, catalog):
    response = await test_client.delete(f"{API}/catalog")
    assert response.status_code == 200
    assert response.json() == {"deleted_count": 3}
    assert quote_repo.catalog == []


@pytest.mark.asyncio
async def test_catalog_item_added_to_workspace_quote(test_client: AsyncClient, catalog):
    await test_client.post(f"{API}/workspace/new")
    await test_client.post(f"{API}/workspace/actions", json={"type": "set_supply_exchange_rate", "value": 1.2})
    item = (await test_client.get(f"{API}/catalog", params={"search": "SPL"})).json()["items"][0]

    response = await test_client.post(f"{API}/workspace/actions", json={
        "type": "add_supply_item",
        "item": {"description": item["description"], "quantity": 2, "priceEuro": item["priceEuro"]},
    })

    assert response.status_code == 200
    # 420 × 1.2 / 0.8 = 630 ; × 2
    assert response.json()["quote"]["totalSuppliesHT"] == 1260
