from datetime import date as date_type, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, field_validator
from pydantic.alias_generators import to_camel

# Entités du Domaine "Quotes"
# Le backend échange du JSON camelCase avec des montants numériques.

Amount = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


def _as_date(value):
    # Le backend renvoie parfois un datetime ISO complet pour une date
    if isinstance(value, str) and len(value) > 10:
        return value[:10]
    return value


class QuoteLifecycle(str, Enum):
    UNINITIALIZED = "uninitialized"
    DRAFT = "draft"
    PERSISTED = "persisted"
    CONFIRMED = "confirmed"


class WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        coerce_numbers_to_str=True,  # identifiants numériques côté backend
    )


class SupplyItemCreate(WireModel):
    """Saisie d'une ligne de fourniture (prix source en euros)."""
    description: str = ""
    quantity: Amount = Decimal(0)
    price_euro: Amount = Decimal(0)


class SupplyItem(SupplyItemCreate):
    id: str
    quote_id: Optional[str] = Field(None, alias="quote_id")
    # Champs dérivés, recalculés par le moteur de tarification
    price_dollar: Amount = Decimal(0)
    unit_price_dollar: Amount = Decimal(0)
    total_price_dollar: Amount = Decimal(0)

    @field_validator("price_dollar", "unit_price_dollar", "total_price_dollar", mode="before")
    @classmethod
    def _none_as_zero(cls, v):
        return 0 if v is None else v


class LaborItemCreate(WireModel):
    """Saisie d'une ligne de main d'oeuvre."""
    description: str = ""
    nb_technicians: int = 0
    nb_hours: Amount = Decimal(0)
    weekend_multiplier: Amount = Decimal(1)  # 1 ou 1.6 (week-end)
    price_euro: Amount = Decimal(0)


class LaborItem(LaborItemCreate):
    id: str
    quote_id: Optional[str] = Field(None, alias="quote_id")
    price_dollar: Amount = Decimal(0)
    unit_price_dollar: Amount = Decimal(0)
    total_price_dollar: Amount = Decimal(0)

    @field_validator("price_dollar", "unit_price_dollar", "total_price_dollar", mode="before")
    @classmethod
    def _none_as_zero(cls, v):
        return 0 if v is None else v


class QuoteTotals(BaseModel):
    total_supplies_ht: Decimal
    total_labor_ht: Decimal
    total_ht: Decimal
    tva: Decimal
    total_ttc: Decimal
    discount_amount: Decimal = Decimal(0)
    total_ht_after_discount: Decimal = Decimal(0)
    total_ttc_after_discount: Decimal = Decimal(0)


class Quote(WireModel):
    id: str
    client_name: str = ""
    site_name: str = ""
    subject: str = Field("", alias="object")
    date: date_type
    supply_description: str = ""
    labor_description: str = ""

    # Coefficients de tarification (fournitures / main d'oeuvre)
    supply_exchange_rate: Amount
    supply_margin_rate: Amount
    labor_exchange_rate: Amount
    labor_margin_rate: Amount

    supply_items: List[SupplyItem] = []
    labor_items: List[LaborItem] = []

    # Totaux calculés, jamais modifiés directement
    total_supplies_ht: Amount = Field(Decimal(0), alias="totalSuppliesHT")
    total_labor_ht: Amount = Field(Decimal(0), alias="totalLaborHT")
    total_ht: Amount = Field(Decimal(0), alias="totalHT")
    tva: Amount = Decimal(0)
    total_ttc: Amount = Field(Decimal(0), alias="totalTTC")

    # Remise commerciale en %; TVA et TTC ci-dessus restent calculés avant remise
    discount_percent: Amount = Field(Decimal(0), alias="remise")
    discount_amount: Amount = Decimal(0)
    total_ht_after_discount: Amount = Decimal(0)
    total_ttc_after_discount: Amount = Decimal(0)

    created_at: datetime
    updated_at: datetime
    version: int = 0
    parent_id: Optional[str] = None
    confirmed: bool = False
    reference_number: Optional[str] = Field(None, alias="number_chanitec")
    reminder_date: Optional[date_type] = None

    @field_validator("parent_id", mode="before")
    @classmethod
    def _normalize_parent_id(cls, v):
        # Anciennes données: "" ou "0" signifient "pas de parent"
        if v is None or str(v).strip() in ("", "0"):
            return None
        return str(v)

    @field_validator("date", "reminder_date", mode="before")
    @classmethod
    def _normalize_dates(cls, v):
        return _as_date(v)

    @field_validator("supply_items", "labor_items", mode="before")
    @classmethod
    def _none_as_empty(cls, v):
        return [] if v is None else v

    @field_validator("discount_percent", mode="before")
    @classmethod
    def _none_as_no_discount(cls, v):
        return 0 if v is None else v

    @field_validator("confirmed", mode="before")
    @classmethod
    def _none_as_false(cls, v):
        return False if v is None else v


class CatalogItem(WireModel):
    """Article du catalogue de fournitures (prix de revient en euros)."""
    id: str
    description: str = ""
    price_euro: Amount = Decimal(0)
    quantity: Amount = Decimal(0)  # stock indicatif

    def as_supply_item(self, quantity: Decimal = Decimal(1)) -> SupplyItemCreate:
        return SupplyItemCreate(description=self.description, quantity=quantity, price_euro=self.price_euro)
