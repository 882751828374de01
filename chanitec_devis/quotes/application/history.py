import logging
from datetime import date, timedelta
from typing import Callable, Iterable, List, Optional

from chanitec_devis.quotes.domain.entities import Quote
from chanitec_devis.quotes.domain.repositories import AbstractQuoteRepository

from .schemas import HistoryPeriod, QuoteHistoryFilters

logger = logging.getLogger(__name__)


def _period_start(period: HistoryPeriod, today: date) -> Optional[date]:
    if period == HistoryPeriod.TODAY:
        return today
    if period == HistoryPeriod.WEEK:
        return today - timedelta(days=today.weekday())  # lundi
    if period == HistoryPeriod.MONTH:
        return today.replace(day=1)
    if period == HistoryPeriod.YEAR:
        return today.replace(month=1, day=1)
    return None


def filter_quotes(quotes: Iterable[Quote], filters: QuoteHistoryFilters, today: date) -> List[Quote]:
    """
    Filtre l'historique des devis.

    - `id`: fragment d'identifiant, insensible à la casse
    - `client` / `site`: égalité stricte des noms
    - `period`: période glissante jusqu'à aujourd'hui inclus; `custom` utilise
      `start_date` / `end_date` (bornes facultatives, incluses)

    Le résultat est trié du plus récent au plus ancien (date de création).
    """
    result = list(quotes)

    if filters.id:
        fragment = filters.id.strip().lower()
        result = [q for q in result if fragment in q.id.lower()]
    if filters.client:
        result = [q for q in result if q.client_name == filters.client]
    if filters.site:
        result = [q for q in result if q.site_name == filters.site]

    if filters.period == HistoryPeriod.CUSTOM:
        if filters.start_date:
            result = [q for q in result if q.date >= filters.start_date]
        if filters.end_date:
            result = [q for q in result if q.date <= filters.end_date]
    elif filters.period != HistoryPeriod.ALL:
        start = _period_start(filters.period, today)
        result = [q for q in result if start <= q.date <= today]

    return sorted(result, key=lambda q: q.created_at, reverse=True)


def is_reminder_overdue(quote: Quote, today: date) -> bool:
    """Un rappel est dépassé lorsque sa date est strictement antérieure à aujourd'hui."""
    return quote.reminder_date is not None and quote.reminder_date < today


class QuoteHistoryService:
    """Service applicatif pour l'historique des devis enregistrés (liste et rappels)."""

    def __init__(self, quote_repo: AbstractQuoteRepository, today: Callable[[], date] = date.today):
        self.quote_repo = quote_repo
        self._today = today

    async def list_quotes(self, filters: QuoteHistoryFilters) -> List[Quote]:
        logger.debug(f"[QuoteHistoryService] Listage devis avec filtres: {filters.model_dump(exclude_defaults=True)}")
        quotes = await self.quote_repo.list_quotes()
        return filter_quotes(quotes, filters, self._today())

    async def set_reminder(self, quote_id: str, days: int) -> date:
        """Programme un rappel dans `days` jours et retourne la date retenue."""
        reminder_date = self._today() + timedelta(days=days)
        await self.quote_repo.set_reminder(quote_id, reminder_date)
        logger.info(f"[QuoteHistoryService] Rappel du devis {quote_id} fixé au {reminder_date.isoformat()}.")
        return reminder_date

    async def list_overdue_reminders(self) -> List[Quote]:
        today = self._today()
        quotes = await self.quote_repo.list_quotes()
        overdue = [q for q in quotes if is_reminder_overdue(q, today)]
        if overdue:
            logger.info(f"[QuoteHistoryService] {len(overdue)} rappel(s) dépassé(s).")
        return sorted(overdue, key=lambda q: q.reminder_date)

