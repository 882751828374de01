import logging
from typing import Iterable, List, Optional

from chanitec_devis.quotes.domain.entities import CatalogItem
from chanitec_devis.quotes.domain.repositories import AbstractQuoteRepository

logger = logging.getLogger(__name__)


def filter_catalog_items(items: Iterable[CatalogItem], search: Optional[str]) -> List[CatalogItem]:
    """Recherche insensible à la casse sur la description ou l'identifiant; vide = tout le catalogue."""
    items = list(items)
    term = (search or "").strip().lower()
    if not term:
        return items
    return [i for i in items if term in i.description.lower() or term in i.id.lower()]


class CatalogService:
    """Service applicatif du catalogue de fournitures."""

    def __init__(self, quote_repo: AbstractQuoteRepository):
        self.quote_repo = quote_repo

    async def search_items(self, search: Optional[str] = None) -> List[CatalogItem]:
        items = await self.quote_repo.list_catalog_items()
        found = filter_catalog_items(items, search)
        logger.debug(f"[CatalogService] {len(found)}/{len(items)} article(s) pour '{search or ''}'")
        return found

    async def clear_catalog(self) -> int:
        deleted = await self.quote_repo.clear_catalog_items()
        logger.info(f"[CatalogService] {deleted} article(s) supprimé(s) du catalogue.")
        return deleted
