import os
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service configuration, read from ROOMSPLIT_* environment variables or .env"""
    model_config = SettingsConfigDict(env_prefix="ROOMSPLIT_", env_file=".env", extra="ignore")

    # DATABASE_URL and SECRET_KEY are also honoured without the prefix
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./roomsplit.db")
    secret_key: str = os.getenv("SECRET_KEY", "your_secret_key")
    jwt_algorithm: str = "HS256"

    invite_code_length: int = 8
    log_level: str = "INFO"


settings = Settings()
