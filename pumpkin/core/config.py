from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from pydantic import field_validator
from typing import Annotated, List, Optional


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # App Configuration
    APP_NAME: str = "Pumpkin CMS"
    ENVIRONMENT: str = "development"
    API_PREFIX: str = "/api"
    SECRET_KEY: str
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 480

    # Credentials
    BCRYPT_ROUNDS: int = 12
    API_KEY_BYTES: int = 32

    # Database
    DATABASE_PROVIDER: str = "cosmosdb"  # cosmosdb, mongodb

    COSMOS_CONNECTION_STRING: str = ""
    COSMOS_DATABASE_NAME: str = "pumpkin"
    COSMOS_MAX_RETRY_ATTEMPTS: int = 9
    COSMOS_MAX_RETRY_WAIT_SECONDS: int = 30
    COSMOS_PREFERRED_REGIONS: Annotated[List[str], NoDecode] = []

    MONGO_CONNECTION_STRING: str = "mongodb://localhost:27017"
    MONGO_DATABASE_NAME: str = "pumpkin"
    MONGO_MAX_POOL_SIZE: int = 100
    MONGO_CONNECT_TIMEOUT_MS: int = 30000
    MONGO_SERVER_SELECTION_TIMEOUT_MS: int = 30000

    # Redis
    REDIS_URL: str = "redis://localhost:6379"
    REDIS_PASSWORD: Optional[str] = None
    TENANT_CORS_CACHE_TTL: int = 1800

    # Security
    ALLOWED_HOSTS: Annotated[List[str], NoDecode] = ["*"]
    CORS_ORIGINS: Annotated[List[str], NoDecode] = ["http://localhost:3000"]

    # Monitoring
    PROMETHEUS_ENABLED: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"

    @field_validator("ALLOWED_HOSTS", "CORS_ORIGINS", "COSMOS_PREFERRED_REGIONS", mode="before")
    @classmethod
    def assemble_list(cls, v):
        if isinstance(v, str):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, list):
            return v
        raise ValueError("Expected a comma-separated string or list")

    @field_validator("DATABASE_PROVIDER")
    @classmethod
    def normalize_provider(cls, v: str) -> str:
        return v.strip().lower()


settings = Settings()
