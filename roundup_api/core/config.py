"""
Configuration settings for the Round-Up Donation API
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # API Configuration
    APP_NAME: str = Field(default="Round-Up Donation API")
    DEBUG: bool = Field(default=False)
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=3000)
    API_PREFIX: str = Field(default="/api")
    LOG_LEVEL: str = Field(default="INFO")

    # CORS
    CORS_ORIGINS: List[str] = Field(default=["*"])

    # Database
    DATABASE_URL: str = Field(default="sqlite:///./data/roundup.db")
    DATABASE_ECHO: bool = Field(default=False)

    # Secrets
    # SECRET_KEY derives the encryption key of the secrets file; set it in production
    SECRET_KEY: str = Field(default="dev-change-this-secret")
    SECRETS_FILE: str = Field(default="./data/secrets.json")
    ADMIN_INIT_KEY: Optional[str] = Field(default=None)
    ADMIN_ORGANIZATION_NAME: str = Field(default="Admin")

    # Pagination
    DEFAULT_PAGE_SIZE: int = Field(default=10, ge=1)
    MAX_PAGE_SIZE: int = Field(default=100, ge=1)

    @validator("CORS_ORIGINS", pre=True)
    def assemble_cors_origins(cls, v: str | List[str]) -> List[str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, list):
            return v
        raise ValueError(v)

    @validator("API_PREFIX")
    def normalize_api_prefix(cls, v: str) -> str:
        v = (v or "").strip().rstrip("/")
        if v and not v.startswith("/"):
            v = "/" + v
        return v

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
