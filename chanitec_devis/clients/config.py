from decimal import Decimal

from pydantic_settings import BaseSettings


class ClientSettings(BaseSettings):
    """Configuration du module clients.

    Les paramètres sont chargés depuis les variables d'environnement avec le préfixe CLIENTS_.
    """
    # Charger les sites de chaque client lors du listage
    INCLUDE_SITES: bool = True
    DEFAULT_MARGIN_PERCENT: Decimal = Decimal(0)

    class Config:
        env_prefix = "CLIENTS_"
        case_sensitive = True
        env_file = ".env"
        extra = "ignore"

# Instance globale des paramètres
settings = ClientSettings()
