"""Pytest configuration and test helpers."""

from __future__ import annotations

import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest


# Ensure the application package is importable when running tests without an
# editable install. This mirrors the expected runtime layout where ``app`` sits
# at the project root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.config import Settings  # noqa: E402

TMDB_BASE_URL = "https://tmdb.example.com/3"

FILM_GENRES = [{"id": 18, "name": "Drama"}, {"id": 35, "name": "Comedy"}]
SERIES_GENRES = [{"id": 10765, "name": "Sci-Fi & Fantasy"}, {"id": 18, "name": "Drama"}]


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO tests to run on asyncio without requiring trio."""

    return "asyncio"


def build_settings(**overrides: Any) -> Settings:
    """Return a settings object with defaults suitable for tests."""

    base: dict[str, Any] = {
        "TMDB_API_KEY": "tmdb-key",
        "TMDB_API_URL": TMDB_BASE_URL,
        "ADMIN_PASSWORD": "letmein",
    }
    base.update(overrides)
    return Settings(_env_file=None, **base)  # type: ignore[arg-type]


class FakeClock:
    """Manually advanced clock for cache expiry tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


def genre_handler(
    requests: list[httpx.Request],
    *,
    film: Any = None,
    series: Any = None,
    film_status: int = 200,
    series_status: int = 200,
) -> Callable[[httpx.Request], httpx.Response]:
    """Return a MockTransport handler serving TMDB genre lists."""

    film_payload = {"genres": FILM_GENRES} if film is None else film
    series_payload = {"genres": SERIES_GENRES} if series is None else series

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.url.path.endswith("/genre/movie/list"):
            return httpx.Response(film_status, json=film_payload)
        if request.url.path.endswith("/genre/tv/list"):
            return httpx.Response(series_status, json=series_payload)
        return httpx.Response(404, json={"status_message": "not found"})

    return handler
