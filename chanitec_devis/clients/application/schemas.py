from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from chanitec_devis.clients.domain.entities import Split


class ClientCreate(BaseModel):
    """Création d'un client avec son premier site (et ses splits)."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1)
    margin_rate: Optional[Decimal] = Field(None, ge=0, lt=100, description="Taux de marge en pourcentage")
    site_name: str = Field(..., min_length=1)
    splits: List[Split] = []


class ClientMarginResponse(BaseModel):
    name: str
    # Fraction applicable au devis (25 % -> 0.25); None si le client n'a pas de taux
    margin_rate: Optional[Decimal] = None
