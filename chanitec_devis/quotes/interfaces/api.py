import logging
from datetime import date
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, HTTPException, Path, Query, Response, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

# Services / poste de travail (via dépendances)
from .dependencies import CatalogServiceDep, QuoteHistoryServiceDep, QuoteStoreDep

# Schémas/DTOs
from chanitec_devis.quotes.application.schemas import (
    CatalogClearResponse, CatalogResponse, ConfirmRequest, HistoryPeriod, OperationResult,
    QuoteHistoryFilters, QuoteHistoryResponse, QuoteStateResponse, ReminderRequest, ReminderResponse,
)
from chanitec_devis.quotes.application.store import QuoteStore
from chanitec_devis.quotes.domain.actions import quote_action_adapter
from chanitec_devis.quotes.domain.entities import QuoteLifecycle

# Exceptions du Domaine (pour mapping)
from chanitec_devis.quotes.domain.exceptions import (
    InvalidInputException, PersistenceFailureException, QuoteDomainException, QuoteNotFoundException,
    QuoteItemNotFoundException, QuoteNotInitializedException,
)

logger = logging.getLogger(__name__)

# Code d'erreur du domaine -> statut HTTP
ERROR_STATUS = {
    "invalid_input": status.HTTP_400_BAD_REQUEST,
    "invalid_margin_rate": status.HTTP_400_BAD_REQUEST,
    "validation_failure": status.HTTP_400_BAD_REQUEST,
    "not_found": status.HTTP_404_NOT_FOUND,
    "not_initialized": status.HTTP_409_CONFLICT,
    "persistence_failure": status.HTTP_502_BAD_GATEWAY,
}


def _operation_result(store: QuoteStore, success: bool, response: Response) -> OperationResult:
    state = store.state
    if not success:
        response.status_code = ERROR_STATUS.get(state.error_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
    return OperationResult(
        success=success,
        error=None if success else state.error,
        error_code=None if success else state.error_code,
        state=QuoteStateResponse.from_state(state),
    )


# --- Routeur du poste de travail (devis courant) ---
workspace_router = APIRouter(
    prefix="/workspace",
    tags=["Workspace"]
)


@workspace_router.get("", response_model=QuoteStateResponse)
async def read_workspace(store: QuoteStoreDep):
    """Retourne l'état du devis en cours d'édition."""
    return QuoteStateResponse.from_state(store.state)


@workspace_router.post("/new", response_model=OperationResult, status_code=status.HTTP_201_CREATED)
async def create_new_quote(store: QuoteStoreDep, response: Response):
    """Démarre un nouveau devis (remplace le devis courant)."""
    logger.info("API create_new_quote")
    await store.create_new_quote()
    return _operation_result(store, True, response)


@workspace_router.post("/load/{quote_id}", response_model=OperationResult)
async def load_quote(
    store: QuoteStoreDep,
    response: Response,
    quote_id: str = Path(..., title="ID du devis", min_length=1),
):
    """Charge un devis enregistré dans le poste de travail."""
    logger.info(f"API load_quote: ID={quote_id}")
    success = await store.load_quote(quote_id)
    return _operation_result(store, success, response)


@workspace_router.post("/actions", response_model=QuoteStateResponse)
async def apply_action(store: QuoteStoreDep, payload: Dict[str, Any] = Body(...)):
    """
    Applique une action au devis courant (discriminée par `type`).

    Exemple: `{"type": "set_supply_margin_rate", "value": 0.25}`
    """
    try:
        action = quote_action_adapter.validate_python(payload)
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False, include_context=False))

    if store.state.lifecycle == QuoteLifecycle.CONFIRMED:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Un devis confirmé n'est plus modifiable.")

    try:
        store.dispatch(action)
        return QuoteStateResponse.from_state(store.state)
    except QuoteNotInitializedException as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    except InvalidInputException as e:
        logger.warning(f"API apply_action {action.type} refusée: {e.message}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except QuoteItemNotFoundException as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    except Exception as e:
        logger.error(f"Erreur API apply_action {action.type}: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Erreur interne application action.")


@workspace_router.post("/save", response_model=OperationResult)
async def save_quote(store: QuoteStoreDep, response: Response):
    """Enregistre le devis courant (nouvelle version s'il est déjà enregistré)."""
    logger.info("API save_quote")
    success = await store.save_quote()
    return _operation_result(store, success, response)


@workspace_router.post("/confirm", response_model=OperationResult)
async def confirm_quote(request: ConfirmRequest, store: QuoteStoreDep, response: Response):
    """Confirme le devis courant avec son numéro CHANitec."""
    logger.info("API confirm_quote")
    success = await store.confirm_quote(request.reference_number)
    return _operation_result(store, success, response)


@workspace_router.delete("", response_model=OperationResult)
async def clear_quote(store: QuoteStoreDep, response: Response):
    """Abandonne le devis courant sans l'enregistrer."""
    store.clear_quote()
    return _operation_result(store, True, response)


# --- Routeur de l'historique des devis enregistrés ---
quote_router = APIRouter(
    prefix="/quotes",
    tags=["Quotes"]
)


@quote_router.get("", response_model=QuoteHistoryResponse)
async def list_quotes(
    history_service: QuoteHistoryServiceDep,
    id: Optional[str] = Query(None, description="Fragment d'identifiant"),
    client: Optional[str] = Query(None),
    site: Optional[str] = Query(None),
    period: HistoryPeriod = Query(HistoryPeriod.ALL),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
):
    """Liste l'historique des devis, filtré et trié du plus récent au plus ancien."""
    filters = QuoteHistoryFilters(
        id=id, client=client, site=site, period=period, start_date=start_date, end_date=end_date
    )
    try:
        quotes = await history_service.list_quotes(filters)
        return QuoteHistoryResponse(items=quotes, total=len(quotes))
    except PersistenceFailureException as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)
    except Exception as e:
        logger.error(f"Erreur API list_quotes: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Erreur interne listage devis.")


@quote_router.get("/reminders/overdue", response_model=QuoteHistoryResponse)
async def list_overdue_reminders(history_service: QuoteHistoryServiceDep):
    """Devis dont la date de rappel est dépassée."""
    try:
        quotes = await history_service.list_overdue_reminders()
        return QuoteHistoryResponse(items=quotes, total=len(quotes))
    except PersistenceFailureException as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)


@quote_router.put("/{quote_id}/reminder", response_model=ReminderResponse)
async def set_quote_reminder(
    request: ReminderRequest,
    history_service: QuoteHistoryServiceDep,
    quote_id: str = Path(..., title="ID du devis", min_length=1),
):
    """Programme un rappel dans `days` jours."""
    logger.info(f"API set_quote_reminder: ID={quote_id}, dans {request.days} jour(s)")
    try:
        reminder_date = await history_service.set_reminder(quote_id, request.days)
        return ReminderResponse(quote_id=quote_id, reminder_date=reminder_date)
    except QuoteNotFoundException as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    except QuoteDomainException as e:
        raise HTTPException(status_code=ERROR_STATUS.get(e.code, status.HTTP_500_INTERNAL_SERVER_ERROR), detail=e.message)


@quote_router.delete("/{quote_id}", response_model=OperationResult)
async def delete_quote(
    store: QuoteStoreDep,
    response: Response,
    quote_id: str = Path(..., title="ID du devis", min_length=1),
):
    """Supprime un devis enregistré (et l'abandonne s'il est en cours d'édition)."""
    logger.info(f"API delete_quote: ID={quote_id}")
    success = await store.delete_quote(quote_id)
    return _operation_result(store, success, response)


# --- Routeur du catalogue de fournitures ---
catalog_router = APIRouter(
    prefix="/catalog",
    tags=["Catalog"]
)


@catalog_router.get("", response_model=CatalogResponse)
async def search_catalog(
    catalog_service: CatalogServiceDep,
    search: Optional[str] = Query(None, description="Fragment de description ou d'identifiant"),
):
    """Articles du catalogue, filtrés sur la description ou l'identifiant."""
    try:
        items = await catalog_service.search_items(search)
        return CatalogResponse(items=items, total=len(items))
    except PersistenceFailureException as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)


@catalog_router.delete("", response_model=CatalogClearResponse)
async def clear_catalog(catalog_service: CatalogServiceDep):
    """Vide le catalogue (avant un nouvel import)."""
    logger.info("API clear_catalog")
    try:
        deleted = await catalog_service.clear_catalog()
        return CatalogClearResponse(deleted_count=deleted)
    except PersistenceFailureException as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)
