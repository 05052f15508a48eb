"""
Application configuration
"""
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables (and an optional .env file)"""

    APP_NAME: str = "Bizledger API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./bizledger.db"

    # Mutations run with a bounded lock wait and a bounded total execution time
    TX_MAX_WAIT_SECONDS: float = 10.0
    TX_TIMEOUT_SECONDS: float = 15.0

    # Security
    SECRET_KEY: str = "bizledger-dev-secret"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 12

    # Reporting
    CURRENCY: str = "NGN"
    LIMITED_COMPANY_TYPES: List[str] = [
        "Limited Liability Company (Ltd)",
        "Public Limited Company (PLC)",
        "Limited by Guarantee",
        "Unlimited Company",
        "Limited Liability Partnership (LLP)",
    ]

    CORS_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def database_url(self) -> str:
        url = self.DATABASE_URL
        if url.startswith("file:"):
            return f"sqlite:///{url[5:]}"
        return url

    def includes_owner_equity(self, registration_type: str | None) -> bool:
        return (registration_type or "") in self.LIMITED_COMPANY_TYPES


settings = Settings()
