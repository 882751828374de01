from datetime import date
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from chanitec_devis.quotes.domain.entities import CatalogItem, Quote, QuoteLifecycle
from chanitec_devis.quotes.domain.identifiers import format_quote_id


# --- État du poste de travail ---

class QuoteState(BaseModel):
    current_quote: Optional[Quote] = None
    is_loading: bool = False
    error: Optional[str] = None
    error_code: Optional[str] = None
    is_existing_quote: bool = False
    original_quote_id: Optional[str] = None

    @property
    def lifecycle(self) -> QuoteLifecycle:
        if self.current_quote is None:
            return QuoteLifecycle.UNINITIALIZED
        if self.current_quote.confirmed:
            return QuoteLifecycle.CONFIRMED
        if self.is_existing_quote:
            return QuoteLifecycle.PERSISTED
        return QuoteLifecycle.DRAFT


class QuoteStateResponse(BaseModel):
    lifecycle: QuoteLifecycle
    is_loading: bool
    error: Optional[str] = None
    error_code: Optional[str] = None
    is_existing_quote: bool
    original_quote_id: Optional[str] = None
    display_id: Optional[str] = Field(None, description="Identifiant affiché, avec suffixe de version")
    quote: Optional[Quote] = None

    @classmethod
    def from_state(cls, state: QuoteState) -> "QuoteStateResponse":
        quote = state.current_quote
        return cls(
            lifecycle=state.lifecycle,
            is_loading=state.is_loading,
            error=state.error,
            error_code=state.error_code,
            is_existing_quote=state.is_existing_quote,
            original_quote_id=state.original_quote_id,
            display_id=format_quote_id(quote.id, quote.version) if quote else None,
            quote=quote,
        )


class OperationResult(BaseModel):
    success: bool
    error: Optional[str] = None
    error_code: Optional[str] = None
    state: QuoteStateResponse


# --- Requêtes ---

class ConfirmRequest(BaseModel):
    reference_number: str = Field("", description="Numéro CHANitec du devis confirmé")


class ReminderRequest(BaseModel):
    days: int = Field(..., ge=1, le=3650, description="Nombre de jours avant le rappel")


class ReminderResponse(BaseModel):
    quote_id: str
    reminder_date: date


# --- Historique ---

class HistoryPeriod(str, Enum):
    ALL = "all"
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    CUSTOM = "custom"


class QuoteHistoryFilters(BaseModel):
    id: Optional[str] = Field(None, description="Fragment d'identifiant")
    client: Optional[str] = Field(None, description="Nom exact du client")
    site: Optional[str] = Field(None, description="Nom exact du site")
    period: HistoryPeriod = HistoryPeriod.ALL
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class QuoteHistoryResponse(BaseModel):
    items: List[Quote]
    total: int


# --- Catalogue ---

class CatalogResponse(BaseModel):
    items: List[CatalogItem]
    total: int


class CatalogClearResponse(BaseModel):
    deleted_count: int
