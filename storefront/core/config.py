"""Storefront Service Configuration"""

from decimal import Decimal
from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment"""

    # Application
    app_name: str = "Bengala Max Checkout"
    debug: bool = True
    host: str = "0.0.0.0"
    port: int = 8000
    environment: str = "development"

    # Store backend
    api_base_url: str = "http://localhost:3000/api"
    api_timeout: float = 30.0

    # Pricing
    currency: str = "UYU"
    locale: str = "es-UY"
    free_shipping_threshold: Decimal = Decimal("3000")
    base_shipping_cost: Decimal = Decimal("290")

    # Sessions
    session_max_age_hours: int = 24

    class Config:
        env_file = "config/.env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    @property
    def is_production(self) -> bool:
        """Production disables sandbox payment URLs and the simulation provider"""
        return self.environment.lower() == "production"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
