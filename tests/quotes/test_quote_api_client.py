import json
from datetime import date
from decimal import Decimal

import httpx
import pytest

from chanitec_devis.quotes.domain.entities import LaborItem, SupplyItem
from chanitec_devis.quotes.domain.exceptions import PersistenceFailureException, QuoteNotFoundException
from chanitec_devis.quotes.infrastructure.api_client import HttpExchangeRateProvider, HttpQuoteRepository

BASE_URL = "http://backend.test/api"

QUOTE_PAYLOAD = {
    "id": "P-12345678",
    "clientName": "Bralima",
    "siteName": "Usine Kinshasa",
    "object": "Climatisation bureaux",
    "date": "2024-05-15T00:00:00.000Z",
    "supplyDescription": "",
    "laborDescription": "",
    "supplyExchangeRate": "1.2",
    "supplyMarginRate": 0.2,
    "laborExchangeRate": 1.2,
    "laborMarginRate": 0.2,
    "supplyItems": [
        {"id": 7, "quote_id": "P-12345678", "description": "Split", "quantity": 3, "priceEuro": 100,
         "priceDollar": 120, "unitPriceDollar": 150, "totalPriceDollar": 450},
    ],
    "laborItems": None,
    "totalSuppliesHT": 450,
    "totalLaborHT": 0,
    "totalHT": 450,
    "tva": 72,
    "totalTTC": 522,
    "createdAt": "2024-05-15T09:30:00Z",
    "updatedAt": "2024-05-15T09:30:00Z",
    "version": 2,
    "parentId": "",
    "confirmed": None,
    "number_chanitec": None,
    "reminderDate": None,
}


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=BASE_URL)


@pytest.mark.asyncio
async def test_get_quote_decodes_backend_payload():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "GET"
        assert request.url.path == "/api/quotes/P-12345678"
        return httpx.Response(200, json=QUOTE_PAYLOAD)

    async with _client(handler) as http_client:
        quote = await HttpQuoteRepository(http_client).get_quote_by_id("P-12345678")

    assert quote.subject == "Climatisation bureaux"
    assert quote.date == date(2024, 5, 15)
    assert quote.parent_id is None
    assert quote.confirmed is False
    assert quote.labor_items == []
    assert quote.supply_items[0].id == "7"
    assert quote.supply_items[0].total_price_dollar == Decimal("450")
    assert quote.total_ttc == Decimal("522")


@pytest.mark.asyncio
async def test_get_quote_not_found():
    async with _client(lambda request: httpx.Response(404, json={"error": "Quote not found"})) as http_client:
        with pytest.raises(QuoteNotFoundException):
            await HttpQuoteRepository(http_client).get_quote_by_id("P-00000000")


@pytest.mark.asyncio
async def test_server_error_is_persistence_failure():
    async with _client(lambda request: httpx.Response(500, text="boom")) as http_client:
        with pytest.raises(PersistenceFailureException) as exc_info:
            await HttpQuoteRepository(http_client).list_quotes()
    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_transport_error_is_persistence_failure():
    def handler(request):
        raise httpx.ConnectError("connexion refusée", request=request)

    async with _client(handler) as http_client:
        with pytest.raises(PersistenceFailureException):
            await HttpQuoteRepository(http_client).delete_quote("P-12345678")


@pytest.mark.asyncio
async def test_undecodable_payload_is_persistence_failure():
    async with _client(lambda request: httpx.Response(200, json={"id": "P-1"})) as http_client:
        with pytest.raises(PersistenceFailureException):
            await HttpQuoteRepository(http_client).get_quote_by_id("P-1")


@pytest.mark.asyncio
async def test_save_quote_posts_camel_case_json(make_quote):
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["path"] = request.url.path
        captured["body"] = json.loads(request.content)
        return httpx.Response(201, json=captured["body"])

    quote = make_quote("P-12345678", subject="Maintenance", reference_number=None)
    async with _client(handler) as http_client:
        saved = await HttpQuoteRepository(http_client).save_quote(quote)

    body = captured["body"]
    assert captured["path"] == "/api/quotes"
    assert body["clientName"] == "Bralima"
    assert body["object"] == "Maintenance"
    assert body["supplyMarginRate"] == 0.2
    assert body["totalHT"] == 0
    assert body["parentId"] is None
    assert saved.id == "P-12345678"


@pytest.mark.asyncio
async def test_save_quote_with_empty_response_returns_input(make_quote):
    quote = make_quote()
    async with _client(lambda request: httpx.Response(204)) as http_client:
        saved = await HttpQuoteRepository(http_client).save_quote(quote)
    assert saved == quote


@pytest.mark.asyncio
async def test_create_labor_item_sends_snake_case_columns():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["path"] = request.url.path
        captured["body"] = json.loads(request.content)
        return httpx.Response(201, json={**captured["body"], "id": 12})

    item = LaborItem(id="tmp", description="Pose", nb_technicians=2, nb_hours=4, price_euro=50,
                     price_dollar=60, unit_price_dollar=75, total_price_dollar=Decimal("600.005"))
    async with _client(handler) as http_client:
        created = await HttpQuoteRepository(http_client).create_labor_item("P-12345678", item)

    assert captured["path"] == "/api/labor-items/P-12345678"
    assert captured["body"]["quote_id"] == "P-12345678"
    assert captured["body"]["nb_technicians"] == 2
    assert captured["body"]["total_price_dollar"] == 600.01
    assert created.id == "12"


@pytest.mark.asyncio
async def test_create_supply_item_omits_temporary_id():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["body"] = json.loads(request.content)
        return httpx.Response(201, json={**captured["body"], "id": "srv-1"})

    item = SupplyItem(id="tmp", description="Split", quantity=1, price_euro=100)
    async with _client(handler) as http_client:
        created = await HttpQuoteRepository(http_client).create_supply_item("P-12345678", item)

    assert "id" not in captured["body"]
    assert captured["body"]["quote_id"] == "P-12345678"
    assert created.id == "srv-1"


@pytest.mark.asyncio
async def test_confirm_quote_sends_reference_number():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["method"] = request.method
        captured["path"] = request.url.path
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"message": "ok"})

    async with _client(handler) as http_client:
        await HttpQuoteRepository(http_client).confirm_quote("P-12345678", True, "CH-001")

    assert captured == {
        "method": "PATCH",
        "path": "/api/quotes/P-12345678/confirm",
        "body": {"confirmed": True, "number_chanitec": "CH-001"},
    }


@pytest.mark.asyncio
async def test_set_reminder_sends_iso_date():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["method"] = request.method
        captured["body"] = json.loads(request.content)
        return httpx.Response(204)

    async with _client(handler) as http_client:
        await HttpQuoteRepository(http_client).set_reminder("P-12345678", date(2024, 5, 22))

    assert captured == {"method": "PUT", "body": {"reminderDate": "2024-05-22"}}


@pytest.mark.asyncio
async def test_exchange_rate_provider():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/exchange-rate"
        assert request.url.params["from"] == "EUR"
        assert request.url.params["to"] == "USD"
        return httpx.Response(200, json={"rate": 1.0834})

    async with _client(handler) as http_client:
        rate = await HttpExchangeRateProvider(http_client).get_exchange_rate("EUR", "USD")

    assert rate == Decimal("1.0834")


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [{"rate": None}, {"rate": "abc"}, {"rate": 0}, {"rate": -1.1}])
async def test_exchange_rate_provider_rejects_invalid_rates(payload):
    async with _client(lambda request: httpx.Response(200, json=payload)) as http_client:
        with pytest.raises(PersistenceFailureException):
            await HttpExchangeRateProvider(http_client).get_exchange_rate("EUR", "USD")


@pytest.mark.asyncio
async def test_list_catalog_items_maps_legacy_columns():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "GET"
        assert request.url.path == "/api/items"
        return httpx.Response(200, json=[
            {"id": 1, "description": "Split mural", "price": "420.50", "quantity": 4},
            {"id": "CUI-14", "Description": "Tube cuivre", "price": 6.5},
            {"id": "GAZ", "Name": "Recharge gaz", "price": None, "quantity": None},
            {"id": "X", "price": "n/a"},
        ])

    async with _client(handler) as http_client:
        items = await HttpQuoteRepository(http_client).list_catalog_items()

    assert [i.id for i in items] == ["1", "CUI-14", "GAZ", "X"]
    assert [i.description for i in items] == ["Split mural", "Tube cuivre", "Recharge gaz", ""]
    assert [i.price_euro for i in items] == [Decimal("420.50"), Decimal("6.5"), 0, 0]
    assert items[0].quantity == Decimal("4")
    assert items[2].quantity == 0


@pytest.mark.asyncio
async def test_list_catalog_item_without_id_is_persistence_failure():
    async with _client(lambda request: httpx.Response(200, json=[{"description": "Split"}])) as http_client:
        with pytest.raises(PersistenceFailureException):
            await HttpQuoteRepository(http_client).list_catalog_items()


@pytest.mark.asyncio
async def test_clear_catalog_items_returns_deleted_count():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "DELETE"
        assert request.url.path == "/api/items/clear"
        return httpx.Response(200, json={"message": "Items cleared", "deletedCount": 42})

    async with _client(handler) as http_client:
        assert await HttpQuoteRepository(http_client).clear_catalog_items() == 42


@pytest.mark.asyncio
async def test_save_quote_sends_discount_but_not_discounted_totals(make_quote):
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["body"] = json.loads(request.content)
        return httpx.Response(201, json=captured["body"])

    quote = make_quote(discount_percent=Decimal("5"), discount_amount=Decimal("10"))
    async with _client(handler) as http_client:
        await HttpQuoteRepository(http_client).save_quote(quote)

    body = captured["body"]
    assert body["remise"] == 5
    assert "discountAmount" not in body
    assert "totalHtAfterDiscount" not in body
    assert "totalTtcAfterDiscount" not in body
