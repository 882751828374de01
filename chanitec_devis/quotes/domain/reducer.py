import logging
from typing import Callable, Dict, List, Type

from pydantic import BaseModel

from . import actions as a
from .entities import LaborItem, Quote, SupplyItem
from .exceptions import QuoteItemNotFoundException
from .identifiers import generate_id
from .pricing import (
    Number, recalculate_quote, validate_discount_percent, validate_exchange_rate, validate_margin_rate,
)

logger = logging.getLogger(__name__)

# Action -> champ du devis modifié
_FIELD_ACTIONS: Dict[Type[BaseModel], str] = {
    a.SetClientName: "client_name",
    a.SetSiteName: "site_name",
    a.SetSubject: "subject",
    a.SetDate: "date",
    a.SetSupplyDescription: "supply_description",
    a.SetLaborDescription: "labor_description",
    a.SetReminderDate: "reminder_date",
    a.SetSupplyExchangeRate: "supply_exchange_rate",
    a.SetSupplyMarginRate: "supply_margin_rate",
    a.SetLaborExchangeRate: "labor_exchange_rate",
    a.SetLaborMarginRate: "labor_margin_rate",
    a.SetDiscountPercent: "discount_percent",
}

_RATE_VALIDATORS: Dict[Type[BaseModel], Callable] = {
    a.SetSupplyExchangeRate: validate_exchange_rate,
    a.SetLaborExchangeRate: validate_exchange_rate,
    a.SetSupplyMarginRate: validate_margin_rate,
    a.SetLaborMarginRate: validate_margin_rate,
    a.SetDiscountPercent: validate_discount_percent,
}


def _replace_item(items: List, item, quote_id: str) -> List:
    if not any(i.id == item.id for i in items):
        raise QuoteItemNotFoundException(item.id)
    replacement = item.model_copy(update={"quote_id": quote_id})
    return [replacement if i.id == item.id else i for i in items]


def _remove_item(items: List, item_id: str) -> List:
    remaining = [i for i in items if i.id != item_id]
    if len(remaining) == len(items):
        raise QuoteItemNotFoundException(item_id)
    return remaining


def _apply(quote: Quote, action: BaseModel) -> Quote:
    field = _FIELD_ACTIONS.get(type(action))
    if field is not None:
        validator = _RATE_VALIDATORS.get(type(action))
        value = validator(action.value) if validator else action.value
        return quote.model_copy(update={field: value})

    if isinstance(action, a.AddSupplyItem):
        new_item = SupplyItem(id=generate_id(), quote_id=quote.id, **action.item.model_dump())
        return quote.model_copy(update={"supply_items": [*quote.supply_items, new_item]})
    if isinstance(action, a.UpdateSupplyItem):
        return quote.model_copy(update={"supply_items": _replace_item(quote.supply_items, action.item, quote.id)})
    if isinstance(action, a.RemoveSupplyItem):
        return quote.model_copy(update={"supply_items": _remove_item(quote.supply_items, action.item_id)})

    if isinstance(action, a.AddLaborItem):
        new_item = LaborItem(id=generate_id(), quote_id=quote.id, **action.item.model_dump())
        return quote.model_copy(update={"labor_items": [*quote.labor_items, new_item]})
    if isinstance(action, a.UpdateLaborItem):
        return quote.model_copy(update={"labor_items": _replace_item(quote.labor_items, action.item, quote.id)})
    if isinstance(action, a.RemoveLaborItem):
        return quote.model_copy(update={"labor_items": _remove_item(quote.labor_items, action.item_id)})

    if isinstance(action, a.RecalculateTotals):
        return quote

    raise TypeError(f"Action inconnue: {type(action).__name__}")


def reduce_quote(quote: Quote, action: BaseModel, vat_rate: Number) -> Quote:
    """
    Applique une action au devis et retourne un nouveau devis aux totaux recalculés.

    Le devis d'entrée n'est jamais modifié; une entrée invalide lève une
    exception avant qu'un nouvel état ne soit produit.
    """
    logger.debug(f"[reducer] {type(action).__name__} sur devis {quote.id}")
    return recalculate_quote(_apply(quote, action), vat_rate)
