# app/core/config.py

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Values come from the process environment (Docker Compose passes the
    # root .env through); every field has a development default.
    model_config = SettingsConfigDict(extra="ignore")

    # The environment mode: 'local' or 'prod'
    ENV: str = "local"

    # --- Database URLs ---
    DATABASE_URL_PROD: str = "postgresql://storefront:storefront@db:5432/storefront_db"
    DATABASE_URL_LOCAL: str = "sqlite:///./storefront.db"

    # --- Security ---
    JWT_SECRET: str = "dev-secret-change-me"
    JWT_ALGORITHM: str = "HS256"
    INTERNAL_API_KEY: str = "dev-internal-key"

    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    LOG_LEVEL: str = "INFO"
    SCHEDULER_ENABLED: bool = True

    # --- Loyalty ---
    # 1 point = 1 currency unit
    LOYALTY_REDEMPTION_RATIO: float = 0.5  # max share of subtotal payable with points
    LOYALTY_EARN_RATE: float = 0.01  # points credited per unit of subtotal on completion

    # --- Order lifecycle sweeps ---
    AUTO_CONFIRM_MINUTES: int = 30
    PAYMENT_TIMEOUT_MINUTES: int = 30
    AUTO_COMPLETE_DAYS: int = 7

    @property
    def DATABASE_URL(self) -> str:
        return (
            self.DATABASE_URL_LOCAL if self.ENV == "local" else self.DATABASE_URL_PROD
        )


# Create a single instance of the settings
settings = Settings()
