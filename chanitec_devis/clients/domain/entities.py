from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

# Entités du Domaine "Clients"
# Noms de champs alignés sur le backend (Taux_marge, Code, client_id).


class ClientModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True, coerce_numbers_to_str=True)


class Split(ClientModel):
    """Unité de climatisation (split) installée sur un site."""
    code: str = Field(..., alias="Code")
    name: str
    description: str = ""
    puissance: Decimal = Decimal(0)
    site: Optional[str] = None  # ID du site


class Site(ClientModel):
    id: str
    name: str
    client_id: Optional[str] = None
    splits: List[Split] = []


class Client(ClientModel):
    id: str
    name: str
    sites: List[Site] = []
    # Taux de marge négocié, en pourcentage (ex: 25 pour 25 %)
    margin_rate: Optional[Decimal] = Field(None, alias="Taux_marge")
