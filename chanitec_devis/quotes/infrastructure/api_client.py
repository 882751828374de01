import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import List

from chanitec_devis.core.http import BackendApiClient, decode_payload
from chanitec_devis.quotes.domain.entities import CatalogItem, LaborItem, Quote, SupplyItem
from chanitec_devis.quotes.domain.exceptions import PersistenceFailureException, QuoteNotFoundException
from chanitec_devis.quotes.domain.pricing import round_to_two
from chanitec_devis.quotes.domain.repositories import AbstractExchangeRateProvider, AbstractQuoteRepository

logger = logging.getLogger(__name__)


def _money(value) -> float:
    # Colonnes decimal(10,2) côté backend
    return float(round_to_two(value))


def _parse_price(value) -> Decimal:
    # Prix illisible ou absent: 0
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal(0)
    return price if price.is_finite() else Decimal(0)


def _catalog_item(raw: dict) -> CatalogItem:
    """Article du catalogue; les anciens imports nomment la description de plusieurs façons."""
    if not isinstance(raw, dict):
        raise PersistenceFailureException(f"article de catalogue non conforme: {raw!r}")
    description = next(
        (raw[key] for key in ("description", "Description", "name", "Name") if raw.get(key)),
        "",
    )
    quantity = raw.get("quantity")
    return decode_payload(CatalogItem, {
        "id": raw.get("id"),
        "description": description,
        "priceEuro": _parse_price(raw.get("price")),
        "quantity": _parse_price(quantity) if quantity is not None else Decimal(0),
    })


# Totaux remisés: dérivés localement, le backend ne stocke que `remise`
_DISCOUNT_TOTALS = {"discount_amount", "total_ht_after_discount", "total_ttc_after_discount"}


class HttpQuoteRepository(BackendApiClient, AbstractQuoteRepository):
    """Implémentation HTTP (httpx) du repository de devis."""

    async def get_quote_by_id(self, quote_id: str) -> Quote:
        data = await self._request("GET", f"/quotes/{quote_id}", not_found=lambda: QuoteNotFoundException(quote_id))
        if not data:
            raise QuoteNotFoundException(quote_id)
        return decode_payload(Quote, data)

    async def list_quotes(self) -> List[Quote]:
        data = await self._request("GET", "/quotes") or []
        return [decode_payload(Quote, q) for q in data]

    async def save_quote(self, quote: Quote) -> Quote:
        payload = quote.model_dump(mode="json", by_alias=True, exclude=_DISCOUNT_TOTALS)
        data = await self._request("POST", "/quotes", json=payload)
        logger.info(f"[HttpQuoteRepository] Devis {quote.id} (v{quote.version}) enregistré.")
        # Certains backends ne renvoient qu'un accusé de réception
        return decode_payload(Quote, data) if data else quote

    async def create_supply_item(self, quote_id: str, item: SupplyItem) -> SupplyItem:
        payload = item.model_copy(update={"quote_id": quote_id}).model_dump(mode="json", by_alias=True, exclude={"id"})
        data = await self._request("POST", f"/supply-items/{quote_id}", json=payload)
        return decode_payload(SupplyItem, data) if data else item

    async def create_labor_item(self, quote_id: str, item: LaborItem) -> LaborItem:
        # Le backend attend ici des colonnes snake_case
        payload = {
            "quote_id": quote_id,
            "description": item.description,
            "nb_technicians": int(item.nb_technicians),
            "nb_hours": _money(item.nb_hours),
            "weekend_multiplier": _money(item.weekend_multiplier),
            "price_euro": _money(item.price_euro),
            "price_dollar": _money(item.price_dollar),
            "unit_price_dollar": _money(item.unit_price_dollar),
            "total_price_dollar": _money(item.total_price_dollar),
        }
        data = await self._request("POST", f"/labor-items/{quote_id}", json=payload)
        return decode_payload(LaborItem, data) if data else item

    async def confirm_quote(self, quote_id: str, confirmed: bool, reference_number: str) -> None:
        await self._request(
            "PATCH",
            f"/quotes/{quote_id}/confirm",
            json={"confirmed": confirmed, "number_chanitec": reference_number},
            not_found=lambda: QuoteNotFoundException(quote_id),
        )
        logger.info(f"[HttpQuoteRepository] Devis {quote_id} confirmé={confirmed} (réf. {reference_number}).")

    async def set_reminder(self, quote_id: str, reminder_date: date) -> None:
        await self._request(
            "PUT",
            f"/quotes/{quote_id}/reminder",
            json={"reminderDate": reminder_date.isoformat()},
            not_found=lambda: QuoteNotFoundException(quote_id),
        )

    async def delete_quote(self, quote_id: str) -> None:
        await self._request("DELETE", f"/quotes/{quote_id}", not_found=lambda: QuoteNotFoundException(quote_id))
        logger.info(f"[HttpQuoteRepository] Devis {quote_id} supprimé.")

    async def list_catalog_items(self) -> List[CatalogItem]:
        data = await self._request("GET", "/items") or []
        return [_catalog_item(raw) for raw in data]

    async def clear_catalog_items(self) -> int:
        data = await self._request("DELETE", "/items/clear") or {}
        deleted = int(data.get("deletedCount", 0)) if isinstance(data, dict) else 0
        logger.info(f"[HttpQuoteRepository] Catalogue vidé ({deleted} article(s)).")
        return deleted


class HttpExchangeRateProvider(BackendApiClient, AbstractExchangeRateProvider):
    """Taux de change servi par le backend (`GET /exchange-rate`)."""

    async def get_exchange_rate(self, from_currency: str, to_currency: str) -> Decimal:
        data = await self._request("GET", "/exchange-rate", params={"from": from_currency, "to": to_currency})
        raw = data.get("rate") if isinstance(data, dict) else data
        try:
            rate = Decimal(str(raw))
        except (InvalidOperation, ValueError) as e:
            raise PersistenceFailureException(f"taux de change illisible: {raw!r}") from e
        if not rate.is_finite() or rate <= 0:
            raise PersistenceFailureException(f"taux de change invalide: {raw!r}")
        return rate
