"""
Moteur de tarification des devis.

PR $  = PR € × taux de change
PV/u  = PR $ / (1 - taux de marge)      (marge exprimée sur le prix de vente)
Total = PV/u × quantité                              (fournitures)
Total = PV/u × techniciens × heures × coef week-end  (main d'oeuvre)

Aucun arrondi n'est appliqué pendant le calcul; `round_to_two` sert uniquement
à l'affichage.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Union

from .entities import LaborItem, Quote, QuoteTotals, SupplyItem
from .exceptions import InvalidInputException, InvalidMarginRateException

Number = Union[Decimal, int, float, str]

_ZERO = Decimal(0)
_ONE = Decimal(1)
_CENT = Decimal("0.01")
_HUNDRED = Decimal(100)


def _dec(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() évite les artefacts binaires des floats (1.2 -> 1.2 et non 1.19999...)
    return Decimal(str(value))


def _non_negative(field: str, value: Number) -> Decimal:
    result = _dec(value)
    if result < _ZERO:
        raise InvalidInputException(field, value)
    return result


def validate_margin_rate(margin_rate: Number) -> Decimal:
    rate = _dec(margin_rate)
    if not (_ZERO <= rate < _ONE):
        raise InvalidMarginRateException(margin_rate)
    return rate


def validate_exchange_rate(exchange_rate: Number) -> Decimal:
    return _non_negative("exchange_rate", exchange_rate)


def validate_discount_percent(discount_percent: Number) -> Decimal:
    percent = _dec(discount_percent)
    if not (_ZERO <= percent <= _HUNDRED):
        raise InvalidInputException("discount_percent", discount_percent, "la remise doit être comprise entre 0 et 100")
    return percent


def round_to_two(value: Number) -> Decimal:
    """Arrondi à deux décimales, pour l'affichage uniquement."""
    return _dec(value).quantize(_CENT, rounding=ROUND_HALF_UP)


def convert_price(price_euro: Number, exchange_rate: Number) -> Decimal:
    """PR $ = PR € × taux de change."""
    return _non_negative("price_euro", price_euro) * validate_exchange_rate(exchange_rate)


def sell_price(converted_cost: Number, margin_rate: Number) -> Decimal:
    """PV/u = PR / (1 - marge)."""
    return _dec(converted_cost) / (_ONE - validate_margin_rate(margin_rate))


def compute_supply_item_totals(item: SupplyItem, exchange_rate: Number, margin_rate: Number) -> SupplyItem:
    """Recalcule les champs dérivés d'une ligne de fourniture."""
    quantity = _non_negative("quantity", item.quantity)
    price_dollar = convert_price(item.price_euro, exchange_rate)
    unit_price_dollar = sell_price(price_dollar, margin_rate)
    return item.model_copy(update={
        "price_dollar": price_dollar,
        "unit_price_dollar": unit_price_dollar,
        "total_price_dollar": unit_price_dollar * quantity,
    })


def compute_labor_item_totals(item: LaborItem, exchange_rate: Number, margin_rate: Number) -> LaborItem:
    """Recalcule les champs dérivés d'une ligne de main d'oeuvre."""
    nb_technicians = _non_negative("nb_technicians", item.nb_technicians)
    nb_hours = _non_negative("nb_hours", item.nb_hours)
    weekend_multiplier = _non_negative("weekend_multiplier", item.weekend_multiplier)
    price_dollar = convert_price(item.price_euro, exchange_rate)
    unit_price_dollar = sell_price(price_dollar, margin_rate)
    return item.model_copy(update={
        "price_dollar": price_dollar,
        "unit_price_dollar": unit_price_dollar,
        "total_price_dollar": unit_price_dollar * nb_technicians * nb_hours * weekend_multiplier,
    })


def compute_vat(total_ht: Number, vat_rate: Number) -> Decimal:
    return _dec(total_ht) * _non_negative("vat_rate", vat_rate)


def compute_quote_totals(
    supply_items: Iterable[SupplyItem],
    labor_items: Iterable[LaborItem],
    vat_rate: Number,
    discount_percent: Number = _ZERO,
) -> QuoteTotals:
    """
    Totaux du devis. La remise ne touche pas `tva` ni `total_ttc`: elle produit
    ses propres totaux (`total_ht_after_discount`, TVA comprise pour le TTC).
    """
    total_supplies_ht = sum((_dec(i.total_price_dollar) for i in supply_items), _ZERO)
    total_labor_ht = sum((_dec(i.total_price_dollar) for i in labor_items), _ZERO)
    total_ht = total_supplies_ht + total_labor_ht
    tva = compute_vat(total_ht, vat_rate)

    discount_amount = total_ht * validate_discount_percent(discount_percent) / _HUNDRED
    total_ht_after_discount = total_ht - discount_amount
    return QuoteTotals(
        total_supplies_ht=total_supplies_ht,
        total_labor_ht=total_labor_ht,
        total_ht=total_ht,
        tva=tva,
        total_ttc=total_ht + tva,
        discount_amount=discount_amount,
        total_ht_after_discount=total_ht_after_discount,
        total_ttc_after_discount=total_ht_after_discount + compute_vat(total_ht_after_discount, vat_rate),
    )


def recalculate_quote(quote: Quote, vat_rate: Number) -> Quote:
    """Recalcule toutes les lignes puis tous les totaux d'un devis."""
    supply_items: List[SupplyItem] = [
        compute_supply_item_totals(i, quote.supply_exchange_rate, quote.supply_margin_rate)
        for i in quote.supply_items
    ]
    labor_items: List[LaborItem] = [
        compute_labor_item_totals(i, quote.labor_exchange_rate, quote.labor_margin_rate)
        for i in quote.labor_items
    ]
    # Les taux sont validés même sans lignes: un taux invalide ne doit jamais être accepté
    validate_exchange_rate(quote.supply_exchange_rate)
    validate_exchange_rate(quote.labor_exchange_rate)
    validate_margin_rate(quote.supply_margin_rate)
    validate_margin_rate(quote.labor_margin_rate)

    totals = compute_quote_totals(supply_items, labor_items, vat_rate, quote.discount_percent)
    return quote.model_copy(update={
        "supply_items": supply_items,
        "labor_items": labor_items,
        **totals.model_dump(),
    })
