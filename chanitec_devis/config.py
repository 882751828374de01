import logging
from decimal import Decimal
from typing import List

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

# Charger les variables d'environnement AVANT de définir la classe Settings
load_dotenv()

# Classe de configuration utilisant Pydantic BaseSettings
class Settings(BaseSettings):
    # --- Backend REST (persistance) ---
    API_BASE_URL: str = "http://localhost:3001/api"
    HTTP_TIMEOUT_SECONDS: float = 10.0

    # --- Tarification ---
    VAT_RATE: Decimal = Decimal("0.16")
    DEFAULT_SUPPLY_EXCHANGE_RATE: Decimal = Decimal("1.2")
    DEFAULT_LABOR_EXCHANGE_RATE: Decimal = Decimal("1.2")
    # Marge exprimée en fraction du prix de vente (PV = PR / (1 - marge))
    DEFAULT_SUPPLY_MARGIN_RATE: Decimal = Decimal("0.2")
    DEFAULT_LABOR_MARGIN_RATE: Decimal = Decimal("0.2")

    # --- Taux de change temps réel ---
    EXCHANGE_RATE_FROM: str = "EUR"
    EXCHANGE_RATE_TO: str = "USD"

    # --- Application ---
    API_V1_PREFIX: str = "/api/v1"
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "app://.",  # shell Electron
    ]
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = 'utf-8'
        extra = 'ignore' # Ignorer les variables d'env non définies dans le modèle

# Instancier la classe de configuration
settings = Settings()

if not (Decimal(0) <= settings.DEFAULT_SUPPLY_MARGIN_RATE < 1 and Decimal(0) <= settings.DEFAULT_LABOR_MARGIN_RATE < 1):
    logger.critical("Les taux de marge par défaut doivent être compris dans [0, 1).")

logger.info(f"Configuration chargée: API={settings.API_BASE_URL}, TVA={settings.VAT_RATE}, change {settings.EXCHANGE_RATE_FROM}->{settings.EXCHANGE_RATE_TO}")
