"""Environment-driven configuration for the inventory app.

Every setting the application relies on lives in ``AppSettings`` so anyone
inspecting the project can answer which variables exist and what they
control. Values are read once from the environment (and ``.env`` files) and
cached through ``get_settings``.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PACKAGE_DIR = Path(__file__).resolve().parent.parent


class AppSettings(BaseSettings):
    """Environment-driven application configuration."""

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "Inventario"
    TEMPLATES_DIR: Path = PACKAGE_DIR / "templates"
    STATIC_DIR: Path = PACKAGE_DIR / "static"
    TZ: str = "Europe/Madrid"
    LOG_LEVEL: str = "INFO"

    # ---- Backend-as-a-Service (REST tables + object storage)
    SUPABASE_URL: str = Field(
        default="",
        validation_alias=AliasChoices("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL"),
    )
    SUPABASE_ANON_KEY: str = Field(
        default="",
        validation_alias=AliasChoices("SUPABASE_ANON_KEY", "NEXT_PUBLIC_SUPABASE_ANON_KEY"),
    )
    STORAGE_BUCKET: str = "fotos"
    HTTP_TIMEOUT: float = 10.0

    # ---- Admin password gate for edit pages
    ADMIN_LOCAL_PASSWORD: str = ""
    # A bcrypt hash takes precedence over the plain password when set.
    ADMIN_PASSWORD_HASH: str = ""

    # ---- Session cookie (remembers a verified admin between page loads)
    APP_SECRET: str = "dev-insecure-secret-change-me"
    SESSION_COOKIE_NAME: str = "inv_session"
    SESSION_MAX_AGE: int = 60 * 60 * 8

    # ---- Natural-language filtering assistant
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4o-mini"
    OPENAI_CHAT_URL: str = "https://api.openai.com/v1/chat/completions"
    OPENAI_TIMEOUT: float = 60.0

    HOST: str = "0.0.0.0"
    PORT: int = 3000

    @field_validator("SUPABASE_URL", mode="after")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.strip().rstrip("/")

    @property
    def store_configured(self) -> bool:
        return bool(self.SUPABASE_URL and self.SUPABASE_ANON_KEY)


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return AppSettings()


settings = get_settings()
