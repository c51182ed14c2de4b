"""Client for The Movie Database (TMDB) search and genre endpoints."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..config import Settings
from ..models import MediaKind, TMDBSearchResult
from ..utils import coerce_bool, coerce_float, coerce_int, extract_year

logger = logging.getLogger(__name__)

POSTER_BASE_URL = "https://image.tmdb.org/t/p/w500"


class TMDBError(Exception):
    """Base class for failures talking to TMDB."""


class MissingCredentialError(TMDBError):
    """Raised when no TMDB API key is configured."""

    def __init__(self) -> None:
        super().__init__(
            "TMDB_API_KEY is not configured; set it in the environment or .env file."
        )


class ProviderUnavailableError(TMDBError):
    """Raised on transport failures, timeouts and non-2xx TMDB responses."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        provider_message: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.provider_message = provider_message


class MalformedResponseError(TMDBError):
    """Raised when a TMDB response does not have the expected shape."""


class TMDBClient:
    """Thin wrapper around the TMDB v3 endpoints used by the catalog."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client

    @property
    def has_credentials(self) -> bool:
        return bool(self._settings.tmdb_api_key)

    async def search(self, query: str, *, page: int = 1) -> list[TMDBSearchResult]:
        """Return normalized multi-search results for the supplied text."""

        payload = await self._get(
            "/search/multi",
            {
                "query": query,
                "include_adult": "false",
                "page": page,
            },
        )
        raw_results = payload.get("results") if isinstance(payload, dict) else None
        if raw_results is None:
            raw_results = []
        if not isinstance(raw_results, list):
            raise MalformedResponseError("TMDB search response has no result list")

        results: list[TMDBSearchResult] = []
        for candidate in raw_results:
            result = self._parse_search_result(candidate)
            if result is not None:
                results.append(result)
        return results

    async def fetch_genres(self, kind: MediaKind) -> dict[int, str]:
        """Return the genre id to name mapping TMDB publishes for a media kind."""

        payload = await self._get(f"/genre/{kind.tmdb_segment}/list", {})
        if isinstance(payload, dict):
            entries = payload.get("genres")
        else:
            entries = payload
        if not isinstance(entries, list):
            raise MalformedResponseError(
                f"TMDB genre list for {kind.value} has no genre array"
            )

        mapping: dict[int, str] = {}
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            genre_id = entry.get("id")
            name = entry.get("name")
            if isinstance(genre_id, bool) or not isinstance(genre_id, int):
                continue
            if not isinstance(name, str) or not name.strip():
                continue
            mapping[genre_id] = name.strip()
        return mapping

    async def _get(self, path: str, params: dict[str, Any]) -> Any:
        api_key = self._settings.tmdb_api_key
        if not api_key:
            raise MissingCredentialError()

        request_params = {
            "api_key": api_key,
            "language": self._settings.tmdb_language,
            **params,
        }
        try:
            response = await self._client.get(path, params=request_params)
        except httpx.HTTPError as exc:
            raise ProviderUnavailableError(
                f"TMDB request to {path} failed: {exc.__class__.__name__}"
            ) from exc

        if response.status_code >= 400:
            provider_message = self._error_message(response)
            logger.warning(
                "TMDB request to %s failed with %s: %s",
                path,
                response.status_code,
                provider_message or response.text,
            )
            raise ProviderUnavailableError(
                f"TMDB request to {path} returned HTTP {response.status_code}",
                status_code=response.status_code,
                provider_message=provider_message,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise MalformedResponseError(f"TMDB returned invalid JSON for {path}") from exc

    @staticmethod
    def _error_message(response: httpx.Response) -> str | None:
        try:
            data = response.json()
        except ValueError:
            return None
        if not isinstance(data, dict):
            return None
        message = data.get("status_message") or data.get("errors")
        if isinstance(message, list):
            message = "; ".join(str(part) for part in message)
        return str(message) if message else None

    @classmethod
    def _parse_search_result(cls, candidate: object) -> TMDBSearchResult | None:
        if not isinstance(candidate, dict):
            return None
        media_type = candidate.get("media_type")
        if media_type == "person":
            return None
        tmdb_id = coerce_int(candidate.get("id"))
        if tmdb_id is None:
            return None

        title = candidate.get("title") or candidate.get("name") or ""
        if not isinstance(title, str):
            return None
        release_date = cls._text(candidate.get("release_date"))
        first_air_date = cls._text(candidate.get("first_air_date"))
        poster_path = cls._text(candidate.get("poster_path"))
        raw_genres = candidate.get("genre_ids")
        genre_ids = [
            value
            for value in (raw_genres if isinstance(raw_genres, list) else [])
            if isinstance(value, int) and not isinstance(value, bool)
        ]
        media_type_text = cls._text(media_type)

        return TMDBSearchResult(
            tmdb_id=str(tmdb_id),
            title=title,
            name=cls._text(candidate.get("name")),
            overview=cls._text(candidate.get("overview")),
            release_date=release_date,
            first_air_date=first_air_date,
            poster_path=poster_path,
            poster_url=cls._build_image_url(poster_path, POSTER_BASE_URL),
            backdrop_path=cls._text(candidate.get("backdrop_path")),
            genre_ids=genre_ids,
            popularity=coerce_float(candidate.get("popularity")),
            vote_average=coerce_float(candidate.get("vote_average")),
            vote_count=coerce_int(candidate.get("vote_count")),
            adult=coerce_bool(candidate.get("adult")),
            media_type=media_type_text,
            year=extract_year(release_date or first_air_date),
            type=media_type_text,
        )

    @staticmethod
    def _text(value: object) -> str:
        return value if isinstance(value, str) else ""

    @staticmethod
    def _build_image_url(path: str, base_url: str) -> str:
        if not path:
            return ""
        if path.startswith("http"):
            return path
        return f"{base_url}{path}"
