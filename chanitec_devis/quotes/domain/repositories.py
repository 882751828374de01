from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from typing import List

from .entities import CatalogItem, LaborItem, Quote, SupplyItem


class AbstractQuoteRepository(ABC):
    """Interface abstraite vers le backend de persistance des devis."""

    @abstractmethod
    async def get_quote_by_id(self, quote_id: str) -> Quote:
        """Récupère un devis complet (avec ses lignes). Lève QuoteNotFoundException."""
        raise NotImplementedError

    @abstractmethod
    async def list_quotes(self) -> List[Quote]:
        raise NotImplementedError

    @abstractmethod
    async def save_quote(self, quote: Quote) -> Quote:
        """Enregistre un devis comme nouvel enregistrement et retourne la version serveur."""
        raise NotImplementedError

    @abstractmethod
    async def create_supply_item(self, quote_id: str, item: SupplyItem) -> SupplyItem:
        raise NotImplementedError

    @abstractmethod
    async def create_labor_item(self, quote_id: str, item: LaborItem) -> LaborItem:
        raise NotImplementedError

    @abstractmethod
    async def confirm_quote(self, quote_id: str, confirmed: bool, reference_number: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def set_reminder(self, quote_id: str, reminder_date: date) -> None:
        raise NotImplementedError

    @abstractmethod
    async def delete_quote(self, quote_id: str) -> None:
        raise NotImplementedError

    # --- Catalogue de fournitures ---

    @abstractmethod
    async def list_catalog_items(self) -> List[CatalogItem]:
        raise NotImplementedError

    @abstractmethod
    async def clear_catalog_items(self) -> int:
        """Vide le catalogue et retourne le nombre d'articles supprimés."""
        raise NotImplementedError


class AbstractExchangeRateProvider(ABC):
    """Fournisseur de taux de change temps réel."""

    @abstractmethod
    async def get_exchange_rate(self, from_currency: str, to_currency: str) -> Decimal:
        """Retourne le taux; lève PersistenceFailureException si indisponible."""
        raise NotImplementedError
