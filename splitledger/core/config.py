from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal

class Settings(BaseSettings):
    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    PROJECT_NAME: str = "Split Ledger"
    PROJECT_VERSION: str = "0.1.0"

    # Storage
    STORE_BACKEND: Literal["memory", "mongodb"] = "memory"
    MONGODB_URL: str = "mongodb://localhost:27017"
    DATABASE_NAME: str = "splitledger"

    # Ledger limits
    MAX_ENTRIES_PER_EXPENSE: int = 64
    MAX_LABEL_LENGTH: int = 200
    MAX_NAME_LENGTH: int = 100

    # Amounts are integer base units with this many decimal places
    AMOUNT_DECIMALS: int = 18

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env"
    )

settings = Settings()
