"""
Application configuration
Loaded from environment variables and an optional .env file
"""
from typing import List

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings shared by the API, services and CLI"""

    app_name: str = "SkyWings Airlines API"
    app_version: str = "1.0.0"
    environment: str = Field(
        default="production",
        description="'development' exposes diagnostic details in 500 responses.",
    )

    host: str = "0.0.0.0"
    port: int = 3000

    database_url: str = "postgresql://localhost/skywings_airlines"
    db_pool_min: int = Field(default=2, ge=1)
    db_pool_max: int = Field(default=10, ge=1)

    jwt_secret_key: SecretStr = Field(default=SecretStr("skywings-secret-key-change-in-production"))
    jwt_algorithm: str = "HS256"
    access_token_expire_days: int = Field(default=7, ge=1)

    log_level: str = "INFO"
    log_file: str = "logs/skywings.log"

    cors_origins: List[str] = ["http://localhost:5173"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"
