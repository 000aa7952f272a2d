"""Configuration management using Pydantic Settings"""

from decimal import Decimal
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_prefix="MYLEDGER_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Database
    database_url: str = "sqlite:///./myledger.db"

    # Service
    service_name: str = "myledger-scheduler"
    log_level: str = "INFO"

    # Money: number of digits after the decimal point of the ledger currency
    money_decimal_places: int = 0

    # Hard bound on cadence stepping (date projection)
    projection_max_steps: int = 4000

    @property
    def money_quantum(self) -> Decimal:
        """Smallest representable money unit, e.g. Decimal("0.01")"""
        return Decimal(1).scaleb(-self.money_decimal_places)


settings = Settings()
