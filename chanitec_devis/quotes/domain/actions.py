"""
Actions applicables au devis courant.

Chaque champ modifiable a sa propre action typée; l'union discriminée
`QuoteAction` est aussi le corps accepté par l'API du poste de travail.
"""
from datetime import date
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from .entities import Amount, LaborItem, LaborItemCreate, SupplyItem, SupplyItemCreate


# --- Champs texte / dates ---

class SetClientName(BaseModel):
    type: Literal["set_client_name"] = "set_client_name"
    value: str


class SetSiteName(BaseModel):
    type: Literal["set_site_name"] = "set_site_name"
    value: str


class SetSubject(BaseModel):
    type: Literal["set_subject"] = "set_subject"
    value: str


class SetDate(BaseModel):
    type: Literal["set_date"] = "set_date"
    value: date


class SetSupplyDescription(BaseModel):
    type: Literal["set_supply_description"] = "set_supply_description"
    value: str


class SetLaborDescription(BaseModel):
    type: Literal["set_labor_description"] = "set_labor_description"
    value: str


class SetReminderDate(BaseModel):
    type: Literal["set_reminder_date"] = "set_reminder_date"
    value: Optional[date] = None


# --- Taux (déclenchent un recalcul complet) ---

class SetSupplyExchangeRate(BaseModel):
    type: Literal["set_supply_exchange_rate"] = "set_supply_exchange_rate"
    value: Amount


class SetSupplyMarginRate(BaseModel):
    type: Literal["set_supply_margin_rate"] = "set_supply_margin_rate"
    value: Amount


class SetLaborExchangeRate(BaseModel):
    type: Literal["set_labor_exchange_rate"] = "set_labor_exchange_rate"
    value: Amount


class SetLaborMarginRate(BaseModel):
    type: Literal["set_labor_margin_rate"] = "set_labor_margin_rate"
    value: Amount


class SetDiscountPercent(BaseModel):
    type: Literal["set_discount_percent"] = "set_discount_percent"
    value: Amount


# --- Lignes ---

class AddSupplyItem(BaseModel):
    type: Literal["add_supply_item"] = "add_supply_item"
    item: SupplyItemCreate


class UpdateSupplyItem(BaseModel):
    type: Literal["update_supply_item"] = "update_supply_item"
    item: SupplyItem


class RemoveSupplyItem(BaseModel):
    type: Literal["remove_supply_item"] = "remove_supply_item"
    item_id: str


class AddLaborItem(BaseModel):
    type: Literal["add_labor_item"] = "add_labor_item"
    item: LaborItemCreate


class UpdateLaborItem(BaseModel):
    type: Literal["update_labor_item"] = "update_labor_item"
    item: LaborItem


class RemoveLaborItem(BaseModel):
    type: Literal["remove_labor_item"] = "remove_labor_item"
    item_id: str


class RecalculateTotals(BaseModel):
    type: Literal["recalculate_totals"] = "recalculate_totals"


QuoteAction = Annotated[
    Union[
        SetClientName, SetSiteName, SetSubject, SetDate,
        SetSupplyDescription, SetLaborDescription, SetReminderDate,
        SetSupplyExchangeRate, SetSupplyMarginRate,
        SetLaborExchangeRate, SetLaborMarginRate, SetDiscountPercent,
        AddSupplyItem, UpdateSupplyItem, RemoveSupplyItem,
        AddLaborItem, UpdateLaborItem, RemoveLaborItem,
        RecalculateTotals,
    ],
    Field(discriminator="type"),
]

# Validation d'une action reçue sous forme de dict (corps JSON de l'API)
quote_action_adapter: TypeAdapter = TypeAdapter(QuoteAction)
