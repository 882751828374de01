import logging
from decimal import Decimal
from typing import List

from chanitec_devis.clients.domain.entities import Client, Site, Split
from chanitec_devis.clients.domain.exceptions import ClientNotFoundException
from chanitec_devis.clients.domain.repositories import AbstractClientRepository
from chanitec_devis.core.http import BackendApiClient, decode_payload

logger = logging.getLogger(__name__)


class HttpClientRepository(BackendApiClient, AbstractClientRepository):
    """Implémentation HTTP (httpx) du repository clients / sites / splits."""

    async def list_clients(self) -> List[Client]:
        data = await self._request("GET", "/clients") or []
        return [decode_payload(Client, c) for c in data]

    async def get_client_by_id(self, client_id: str) -> Client:
        data = await self._request("GET", f"/clients/{client_id}", not_found=lambda: ClientNotFoundException(client_id))
        if not data:
            raise ClientNotFoundException(client_id)
        return decode_payload(Client, data)

    async def create_client(self, client_id: str, name: str, margin_rate: Decimal) -> Client:
        payload = {"id": client_id, "name": name, "Taux_marge": float(margin_rate)}
        data = await self._request("POST", "/clients", json=payload)
        logger.info(f"[HttpClientRepository] Client {client_id} ({name}) créé.")
        return decode_payload(Client, data) if data else Client(id=client_id, name=name, margin_rate=margin_rate)

    async def delete_client(self, client_id: str) -> None:
        await self._request("DELETE", f"/clients/{client_id}", not_found=lambda: ClientNotFoundException(client_id))
        logger.info(f"[HttpClientRepository] Client {client_id} supprimé.")

    async def list_sites_by_client(self, client_id: str) -> List[Site]:
        data = await self._request("GET", "/sites/by-client", params={"clientId": client_id}) or []
        return [decode_payload(Site, s) for s in data]

    async def create_site(self, client_id: str, name: str) -> Site:
        data = await self._request("POST", "/sites", json={"name": name, "client_id": client_id})
        return decode_payload(Site, data)

    async def delete_site(self, site_id: str) -> None:
        await self._request("DELETE", f"/sites/{site_id}")

    async def create_split(self, site_id: str, split: Split) -> Split:
        payload = split.model_copy(update={"site": site_id}).model_dump(mode="json", by_alias=True)
        data = await self._request("POST", "/splits", json=payload)
        return decode_payload(Split, data) if data else split.model_copy(update={"site": site_id})
