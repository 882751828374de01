from abc import ABC, abstractmethod
from decimal import Decimal
from typing import List

from .entities import Client, Site, Split


class AbstractClientRepository(ABC):
    """Interface abstraite vers le backend pour les clients, sites et splits."""

    @abstractmethod
    async def list_clients(self) -> List[Client]:
        raise NotImplementedError

    @abstractmethod
    async def get_client_by_id(self, client_id: str) -> Client:
        """Lève ClientNotFoundException si le client n'existe pas."""
        raise NotImplementedError

    @abstractmethod
    async def create_client(self, client_id: str, name: str, margin_rate: Decimal) -> Client:
        raise NotImplementedError

    @abstractmethod
    async def delete_client(self, client_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def list_sites_by_client(self, client_id: str) -> List[Site]:
        raise NotImplementedError

    @abstractmethod
    async def create_site(self, client_id: str, name: str) -> Site:
        raise NotImplementedError

    @abstractmethod
    async def delete_site(self, site_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def create_split(self, site_id: str, split: Split) -> Split:
        raise NotImplementedError
