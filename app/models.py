"""Pydantic models describing catalog payloads and submitted forms."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .utils import (
    coerce_bool,
    coerce_float,
    coerce_int,
    extract_year,
    parse_genre_ids,
    parse_tags,
)


class MediaKind(str, Enum):
    """Discriminates film and series entries; selects the genre namespace."""

    FILM = "film"
    SERIES = "series"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: object) -> "MediaKind":
        if isinstance(value, MediaKind):
            return value
        if not isinstance(value, str):
            return cls.UNKNOWN
        lowered = value.strip().lower()
        if lowered in {"movie", "film"}:
            return cls.FILM
        if lowered in {"tv", "series", "show"}:
            return cls.SERIES
        return cls.UNKNOWN

    @property
    def tmdb_segment(self) -> str:
        """Return the path segment TMDB uses for this kind."""

        if self is MediaKind.FILM:
            return "movie"
        if self is MediaKind.SERIES:
            return "tv"
        raise ValueError("Unknown media kind has no TMDB endpoint")


SortKey = Literal["latest", "oldest", "rating", "title", "year", "popularity"]


class CamelModel(BaseModel):
    """Base model exposing camelCase aliases for form and JSON payloads."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TMDBSearchResult(CamelModel):
    """Normalized view of a TMDB multi-search result."""

    tmdb_id: str
    title: str
    name: str = ""
    overview: str = ""
    release_date: str = ""
    first_air_date: str = ""
    poster_path: str = ""
    poster_url: str = ""
    backdrop_path: str = ""
    genre_ids: list[int] = Field(default_factory=list)
    popularity: float | None = None
    vote_average: float | None = None
    vote_count: int | None = None
    adult: bool | None = None
    media_type: str = ""
    year: str = ""
    type: str = ""


def _blank_to_empty(value: object) -> object:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    return value


class ContentForm(CamelModel):
    """Fields submitted by the administrator when curating an entry."""

    tmdb_id: str = Field(min_length=1, max_length=64)
    title: str = Field(min_length=1, max_length=255)
    my_note: str = Field(min_length=1)
    my_rating: float = Field(ge=0, le=10)

    name: str = ""
    overview: str = ""
    release_date: str = ""
    first_air_date: str = ""
    poster_path: str = ""
    poster_url: str = ""
    backdrop_path: str = ""
    genre_ids: list[int] = Field(default_factory=list)
    popularity: float | None = None
    vote_average: float | None = None
    vote_count: int | None = None
    adult: bool | None = None
    media_type: str = ""
    year: str = ""
    type: str = ""
    tags: list[str] = Field(default_factory=list)

    @field_validator(
        "tmdb_id",
        "title",
        "my_note",
        "name",
        "overview",
        "release_date",
        "first_air_date",
        "poster_path",
        "poster_url",
        "backdrop_path",
        "media_type",
        "year",
        "type",
        mode="before",
    )
    @classmethod
    def _strip_text(cls, value: object) -> object:
        return _blank_to_empty(value)

    @field_validator("my_rating", mode="before")
    @classmethod
    def _parse_rating(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("genre_ids", mode="before")
    @classmethod
    def _parse_genre_ids(cls, value: object) -> list[int]:
        return parse_genre_ids(value)

    @field_validator("tags", mode="before")
    @classmethod
    def _parse_tags(cls, value: object) -> list[str]:
        return parse_tags(value)

    @field_validator("popularity", "vote_average", mode="before")
    @classmethod
    def _parse_optional_float(cls, value: object) -> float | None:
        return coerce_float(value)

    @field_validator("vote_count", mode="before")
    @classmethod
    def _parse_optional_int(cls, value: object) -> int | None:
        return coerce_int(value)

    @field_validator("adult", mode="before")
    @classmethod
    def _parse_optional_bool(cls, value: object) -> bool | None:
        return coerce_bool(value)

    @classmethod
    def from_form(cls, data: Mapping[str, Any]) -> "ContentForm":
        """Validate a submitted form, deriving the year when it was left blank."""

        payload = {key: value for key, value in data.items()}
        if not str(payload.get("year") or "").strip():
            payload["year"] = extract_year(
                payload.get("releaseDate") or payload.get("firstAirDate")
            )
        if not str(payload.get("type") or "").strip() and payload.get("mediaType"):
            payload["type"] = payload["mediaType"]
        return cls.model_validate(payload)

    @property
    def media_kind(self) -> MediaKind:
        return MediaKind.parse(self.media_type or self.type)


class CommentForm(BaseModel):
    """A visitor comment attached to a catalog entry."""

    nickname: str = Field(min_length=1, max_length=60)
    text: str = Field(min_length=1, max_length=2_000)

    @field_validator("nickname", "text", mode="before")
    @classmethod
    def _strip_text(cls, value: object) -> object:
        return _blank_to_empty(value)


class CatalogQuery(BaseModel):
    """Filter and sort options applied to the browsable catalog."""

    q: str | None = None
    media_kind: MediaKind | None = None
    tag: str | None = None
    genre_id: int | None = None
    min_rating: float | None = Field(default=None, ge=0, le=10)
    sort: SortKey = "latest"

    @field_validator("q", "tag", mode="before")
    @classmethod
    def _strip_blank(cls, value: object) -> object:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("media_kind", mode="before")
    @classmethod
    def _parse_media_kind(cls, value: object) -> MediaKind | None:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        kind = MediaKind.parse(value)
        return None if kind is MediaKind.UNKNOWN else kind

    @field_validator("genre_id", "min_rating", mode="before")
    @classmethod
    def _blank_number(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("sort", mode="before")
    @classmethod
    def _default_sort(cls, value: object) -> object:
        if value is None or (isinstance(value, str) and not value.strip()):
            return "latest"
        return value

    @classmethod
    def from_query(cls, params: Mapping[str, str]) -> "CatalogQuery":
        return cls.model_validate(
            {
                "q": params.get("q"),
                "media_kind": params.get("type"),
                "tag": params.get("tag"),
                "genre_id": params.get("genre"),
                "min_rating": params.get("minRating"),
                "sort": params.get("sort"),
            }
        )


class CommentView(CamelModel):
    id: str
    content_id: str
    nickname: str
    text: str
    created_at: datetime


class ContentView(CamelModel):
    """A stored entry annotated with resolved genre names."""

    id: str
    tmdb_id: str
    title: str
    name: str = ""
    overview: str = ""
    release_date: str = ""
    first_air_date: str = ""
    poster_path: str = ""
    poster_url: str = ""
    backdrop_path: str = ""
    genre_ids: list[int] = Field(default_factory=list)
    genres: list[str] = Field(default_factory=list)
    popularity: float | None = None
    vote_average: float | None = None
    vote_count: int | None = None
    adult: bool | None = None
    media_type: str = ""
    year: str = ""
    type: str = ""
    my_note: str
    my_rating: float
    tags: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    @property
    def media_kind(self) -> MediaKind:
        return MediaKind.parse(self.media_type or self.type)

    def display_title(self) -> str:
        """Return a human-friendly title for cards."""

        return (self.title or self.name or "").strip() or f"TMDB {self.tmdb_id}"
