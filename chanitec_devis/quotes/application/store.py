import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Callable, Optional

from pydantic import BaseModel

from chanitec_devis.config import Settings, settings as default_settings

# Repositories (Interfaces)
from chanitec_devis.quotes.domain.repositories import AbstractExchangeRateProvider, AbstractQuoteRepository

# Entités et règles du Domaine
from chanitec_devis.quotes.domain.entities import Quote
from chanitec_devis.quotes.domain.identifiers import generate_quote_id
from chanitec_devis.quotes.domain.pricing import recalculate_quote
from chanitec_devis.quotes.domain.reducer import reduce_quote

# Exceptions du Domaine
from chanitec_devis.quotes.domain.exceptions import (
    PersistenceFailureException,
    QuoteDomainException,
    QuoteNotInitializedException,
    ValidationFailureException,
)

from .schemas import QuoteState

logger = logging.getLogger(__name__)

_RATE_PRECISION = Decimal("0.001")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QuoteStore:
    """
    Poste de travail du devis courant.

    Détient un unique devis en cours d'édition et orchestre son cycle de vie:
    création (avec taux de change temps réel), édition via actions, chargement,
    enregistrement versionné et confirmation. Les opérations réseau ne lèvent
    pas: elles retournent False et renseignent `state.error`.
    """

    def __init__(self,
                 quote_repo: AbstractQuoteRepository,
                 rate_provider: Optional[AbstractExchangeRateProvider] = None,
                 settings: Settings = default_settings,
                 clock: Callable[[], datetime] = _utcnow):
        self.quote_repo = quote_repo
        self.rate_provider = rate_provider
        self.settings = settings
        self.vat_rate = settings.VAT_RATE
        self._clock = clock
        self._state = QuoteState()

    @property
    def state(self) -> QuoteState:
        return self._state

    @property
    def current_quote(self) -> Optional[Quote]:
        return self._state.current_quote

    # --- Gestion interne de l'état ---

    def _update(self, **changes) -> None:
        self._state = self._state.model_copy(update=changes)

    def _begin(self) -> None:
        self._update(is_loading=True, error=None, error_code=None)

    def _fail(self, error: QuoteDomainException, operation: str) -> bool:
        logger.warning(f"[QuoteStore] Échec {operation}: {error.message}")
        self._update(is_loading=False, error=error.message, error_code=error.code)
        return False

    # --- Édition ---

    def dispatch(self, action: BaseModel) -> Quote:
        """
        Applique une action au devis courant et recalcule ses totaux.

        Lève QuoteNotInitializedException sans devis actif, et les exceptions
        d'entrée invalide du moteur de tarification; dans ces cas l'état n'est
        pas modifié.
        """
        quote = self._state.current_quote
        if quote is None:
            raise QuoteNotInitializedException()
        updated = reduce_quote(quote, action, self.vat_rate)
        self._update(current_quote=updated)
        return updated

    async def create_new_quote(self) -> Quote:
        """Démarre un nouveau devis brouillon (taux de change temps réel si disponible)."""
        supply_rate = self.settings.DEFAULT_SUPPLY_EXCHANGE_RATE
        labor_rate = self.settings.DEFAULT_LABOR_EXCHANGE_RATE
        if self.rate_provider is not None:
            try:
                rate = await self.rate_provider.get_exchange_rate(
                    self.settings.EXCHANGE_RATE_FROM, self.settings.EXCHANGE_RATE_TO
                )
                # Hors contexte décimal (28 chiffres), quantize lève InvalidOperation
                rounded = rate.quantize(_RATE_PRECISION, rounding=ROUND_HALF_UP)
                if rounded <= 0:
                    raise PersistenceFailureException(f"taux de change inexploitable: {rate}")
                supply_rate = labor_rate = rounded
                logger.info(f"[QuoteStore] Taux de change récupéré: {supply_rate}")
            except PersistenceFailureException as e:
                logger.warning(f"[QuoteStore] Taux de change indisponible, valeurs par défaut utilisées: {e.message}")
            except InvalidOperation:
                logger.warning(f"[QuoteStore] Taux de change hors limites ({rate}), valeurs par défaut utilisées.")

        now = self._clock()
        quote = Quote(
            id=generate_quote_id(),
            date=now.date(),
            supply_exchange_rate=supply_rate,
            supply_margin_rate=self.settings.DEFAULT_SUPPLY_MARGIN_RATE,
            labor_exchange_rate=labor_rate,
            labor_margin_rate=self.settings.DEFAULT_LABOR_MARGIN_RATE,
            created_at=now,
            updated_at=now,
            version=0,
        )
        quote = recalculate_quote(quote, self.vat_rate)
        self._state = QuoteState(current_quote=quote)
        logger.info(f"[QuoteStore] Nouveau devis {quote.id} créé.")
        return quote

    def clear_quote(self) -> None:
        """Abandonne le devis courant."""
        logger.debug("[QuoteStore] Devis courant abandonné.")
        self._state = QuoteState()

    # --- Persistance ---

    async def load_quote(self, quote_id: str) -> bool:
        """Charge un devis enregistré; en cas d'échec l'état précédent est conservé."""
        logger.info(f"[QuoteStore] Chargement devis {quote_id}")
        self._begin()
        try:
            quote = await self.quote_repo.get_quote_by_id(quote_id)
            quote = recalculate_quote(quote, self.vat_rate)
        except QuoteDomainException as e:
            return self._fail(e, f"chargement devis {quote_id}")

        self._state = QuoteState(
            current_quote=quote,
            is_existing_quote=True,
            original_quote_id=quote.id,
        )
        return True

    def _validate_for_save(self, quote: Quote) -> None:
        missing = []
        if not quote.client_name.strip():
            missing.append("client")
        if not quote.site_name.strip():
            missing.append("site")
        if missing:
            raise ValidationFailureException(f"Champs requis manquants: {', '.join(missing)}.")

    async def _save_new_version(self, quote: Quote) -> Quote:
        # L'enregistrement précédent n'est jamais modifié: on crée un nouveau devis lié
        now = self._clock()
        new_id = generate_quote_id()
        new_version = quote.model_copy(update={
            "id": new_id,
            "parent_id": quote.parent_id or quote.id,
            "version": quote.version + 1,
            "created_at": now,
            "updated_at": now,
            "confirmed": False,
            "reference_number": None,
            "supply_items": [i.model_copy(update={"quote_id": new_id}) for i in quote.supply_items],
            "labor_items": [i.model_copy(update={"quote_id": new_id}) for i in quote.labor_items],
        })
        logger.info(f"[QuoteStore] Nouvelle version {new_id} (v{new_version.version}) de {new_version.parent_id}")

        header = new_version.model_copy(update={"supply_items": [], "labor_items": []})
        await self.quote_repo.save_quote(header)
        for item in new_version.supply_items:
            await self.quote_repo.create_supply_item(new_id, item)
        for item in new_version.labor_items:
            await self.quote_repo.create_labor_item(new_id, item)

        # Rechargement pour obtenir les identifiants attribués par le backend
        return await self.quote_repo.get_quote_by_id(new_id)

    async def save_quote(self) -> bool:
        """Enregistre le devis courant (création, ou nouvelle version s'il existe déjà)."""
        quote = self._state.current_quote
        if quote is None:
            return self._fail(QuoteNotInitializedException(), "enregistrement")

        self._begin()
        try:
            self._validate_for_save(quote)
            if self._state.is_existing_quote:
                saved = await self._save_new_version(quote)
            else:
                logger.info(f"[QuoteStore] Premier enregistrement du devis {quote.id}")
                saved = await self.quote_repo.save_quote(
                    quote.model_copy(update={"parent_id": None, "updated_at": self._clock()})
                )
            saved = recalculate_quote(saved, self.vat_rate)
        except QuoteDomainException as e:
            return self._fail(e, f"enregistrement devis {quote.id}")

        self._state = QuoteState(
            current_quote=saved,
            is_existing_quote=True,
            original_quote_id=saved.id,
        )
        logger.info(f"[QuoteStore] Devis {saved.id} enregistré (v{saved.version}).")
        return True

    async def confirm_quote(self, reference_number: str) -> bool:
        """Marque le devis enregistré comme confirmé avec son numéro CHANitec."""
        quote = self._state.current_quote
        reference = (reference_number or "").strip()
        try:
            if quote is None:
                raise QuoteNotInitializedException()
            if not reference:
                raise ValidationFailureException("Le numéro CHANitec est requis pour confirmer le devis.")
            if not self._state.is_existing_quote:
                raise ValidationFailureException("Le devis doit être enregistré avant sa confirmation.")
        except QuoteDomainException as e:
            return self._fail(e, "confirmation")

        self._begin()
        try:
            await self.quote_repo.confirm_quote(quote.id, True, reference)
        except QuoteDomainException as e:
            return self._fail(e, f"confirmation devis {quote.id}")

        current = self._state.current_quote
        if current is not None and current.id == quote.id:
            current = current.model_copy(update={"confirmed": True, "reference_number": reference})
        self._update(current_quote=current, is_loading=False)
        logger.info(f"[QuoteStore] Devis {quote.id} confirmé (réf. {reference}).")
        return True

    async def delete_quote(self, quote_id: str) -> bool:
        """Supprime un devis enregistré; abandonne le devis courant s'il s'agit de lui."""
        self._begin()
        try:
            await self.quote_repo.delete_quote(quote_id)
        except QuoteDomainException as e:
            return self._fail(e, f"suppression devis {quote_id}")

        current = self._state.current_quote
        if current is not None and current.id == quote_id:
            self._state = QuoteState()
        else:
            self._update(is_loading=False)
        return True
