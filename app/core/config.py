from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    APP_ENV: str = "local"
    APP_NAME: str = "loyalty-admin"
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 0
    DB_POOL_RECYCLE_SECONDS: int = 1800

    JWT_SECRET: str
    JWT_EXPIRE: str = "7d"  # <int>[s|m|h|d]

    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:3001"

    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100
    MAX_HISTORY_PAGE_SIZE: int = 1000

    SETTLEMENT_STATUS_POLICY: str = "permissive"  # permissive | strict

    # Unset means enabled only when APP_ENV is "local".
    ADMIN_BOOTSTRAP_ENABLED: Optional[bool] = None
    ADMIN_BOOTSTRAP_EMAIL: str = "admin@slashapp.com"
    ADMIN_BOOTSTRAP_PASSWORD: str = "admin123"
    ADMIN_BOOTSTRAP_FIRST_NAME: str = "Admin"
    ADMIN_BOOTSTRAP_LAST_NAME: str = "User"

    @model_validator(mode="after")
    def _bootstrap_default(self):
        if self.ADMIN_BOOTSTRAP_ENABLED is None:
            self.ADMIN_BOOTSTRAP_ENABLED = self.APP_ENV == "local"
        return self

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

settings = Settings()
