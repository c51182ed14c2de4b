"""Application configuration models."""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache
from typing import Literal

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_GENRE_CACHE_SECONDS = 7 * 24 * 60 * 60


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="Pickshelf", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=3000, alias="PORT")

    tmdb_api_key: str | None = Field(default=None, alias="TMDB_API_KEY")
    tmdb_api_url: HttpUrl = Field(
        default="https://api.themoviedb.org/3", alias="TMDB_API_URL"
    )
    tmdb_language: str = Field(default="ko-KR", alias="TMDB_LANGUAGE")
    genre_cache_seconds: int = Field(
        default=DEFAULT_GENRE_CACHE_SECONDS, alias="GENRE_CACHE_TTL", ge=60
    )

    admin_password: str | None = Field(default=None, alias="ADMIN_PASSWORD")
    cookie_secret: str | None = Field(default=None, alias="COOKIE_SECRET")

    database_url: str = Field(
        default="sqlite+aiosqlite:///./pickshelf.db", alias="DATABASE_URL"
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("tmdb_api_key", "admin_password", "cookie_secret", mode="before")
    @classmethod
    def _strip_blank(cls, value: object) -> object:
        """Treat blank secrets as missing."""

        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @property
    def genre_cache_ttl(self) -> timedelta:
        return timedelta(seconds=self.genre_cache_seconds)

    @property
    def signing_secret(self) -> str:
        """Return the key used to sign the admin cookie."""

        return self.cookie_secret or self.admin_password or "secret"

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
