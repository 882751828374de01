import logging
from decimal import Decimal
from typing import List, Optional

# Repositories (Interfaces)
from chanitec_devis.clients.domain.repositories import AbstractClientRepository

# Entités du Domaine
from chanitec_devis.clients.domain.entities import Client

# Schémas/DTOs de l'Application
from .schemas import ClientCreate

# Exceptions du Domaine
from chanitec_devis.clients.domain.exceptions import ClientCreationFailedException, ClientNotFoundException
from chanitec_devis.quotes.domain.exceptions import PersistenceFailureException
from chanitec_devis.quotes.domain.identifiers import generate_client_id
from chanitec_devis.clients.config import ClientSettings, settings as default_settings

logger = logging.getLogger(__name__)

_PERCENT = Decimal(100)


def _normalize_name(name: str) -> str:
    return (name or "").strip().lower()


class ClientService:
    """Service applicatif pour la gestion des clients, de leurs sites et splits."""

    def __init__(self, client_repo: AbstractClientRepository, settings: ClientSettings = default_settings):
        self.client_repo = client_repo
        self.settings = settings

    async def list_clients_with_sites(self) -> List[Client]:
        """Liste les clients, avec leurs sites si configuré."""
        clients = await self.client_repo.list_clients()
        if not self.settings.INCLUDE_SITES:
            return clients
        result = []
        for client in clients:
            sites = await self.client_repo.list_sites_by_client(client.id)
            result.append(client.model_copy(update={"sites": sites}))
        logger.debug(f"[ClientService] {len(result)} client(s) chargé(s) avec leurs sites.")
        return result

    async def _rollback_client(self, client_id: str, site_id: Optional[str] = None) -> None:
        # Meilleur effort: l'échec initial reste l'erreur remontée à l'appelant
        try:
            if site_id is not None:
                await self.client_repo.delete_site(site_id)
            await self.client_repo.delete_client(client_id)
            logger.info(f"[ClientService] Client {client_id} supprimé après échec de création.")
        except (PersistenceFailureException, ClientNotFoundException) as e:
            logger.error(f"[ClientService] Impossible d'annuler la création du client {client_id}: {e}", exc_info=True)

    async def create_client_with_site(self, data: ClientCreate) -> Client:
        """
        Crée un client, son premier site puis les splits de ce site.

        Les appels sont indépendants: si le site (ou un split) ne peut pas être
        créé, le client déjà créé est supprimé et ClientCreationFailedException
        est levée.
        """
        name = data.name.strip()
        site_name = data.site_name.strip()
        margin_rate = data.margin_rate if data.margin_rate is not None else self.settings.DEFAULT_MARGIN_PERCENT

        try:
            existing = await self.client_repo.list_clients()
            client_id = generate_client_id(c.id for c in existing)
            logger.info(f"[ClientService] Création du client {client_id} ({name})")
            client = await self.client_repo.create_client(client_id, name, margin_rate)
        except PersistenceFailureException as e:
            logger.error(f"[ClientService] Échec création client {name}: {e.message}")
            raise ClientCreationFailedException(f"Échec de la création du client: {e.message}") from e

        try:
            site = await self.client_repo.create_site(client.id, site_name)
        except PersistenceFailureException as e:
            logger.error(f"[ClientService] Échec création site {site_name} pour client {client.id}: {e.message}")
            await self._rollback_client(client.id)
            raise ClientCreationFailedException(f"Échec de la création du site: {e.message}") from e

        splits = []
        try:
            for split in data.splits:
                splits.append(await self.client_repo.create_split(site.id, split))
        except PersistenceFailureException as e:
            logger.error(f"[ClientService] Échec création split pour site {site.id}: {e.message}")
            await self._rollback_client(client.id, site_id=site.id)
            raise ClientCreationFailedException(f"Échec de la création des splits: {e.message}") from e

        logger.info(f"[ClientService] Client {client.id} créé avec le site {site.id} ({len(splits)} split(s)).")
        return client.model_copy(update={"sites": [site.model_copy(update={"splits": splits})]})

    async def get_client_margin_rate(self, name: str) -> Optional[Decimal]:
        """
        Taux de marge du client, converti en fraction (25 -> 0.25).

        Recherche par nom, sans tenir compte de la casse ni des espaces en
        bordure. Retourne None si le client n'a pas de taux; le taux n'est
        jamais appliqué automatiquement au devis.
        """
        wanted = _normalize_name(name)
        clients = await self.client_repo.list_clients()
        client = next((c for c in clients if _normalize_name(c.name) == wanted), None)
        if client is None:
            raise ClientNotFoundException(name)
        if client.margin_rate is None:
            return None
        return client.margin_rate / _PERCENT
