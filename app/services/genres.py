"""Genre id to name resolution backed by a periodically refreshed snapshot."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from types import MappingProxyType
from typing import Callable, Mapping, Sequence

from ..config import DEFAULT_GENRE_CACHE_SECONDS
from ..models import MediaKind
from .tmdb import TMDBClient, TMDBError

logger = logging.getLogger(__name__)

DEFAULT_GENRE_TTL = timedelta(seconds=DEFAULT_GENRE_CACHE_SECONDS)


@dataclass(frozen=True, slots=True)
class GenreSnapshot:
    """Immutable pair of genre mappings and the time they were fetched.

    ``None`` mappings mean the snapshot was never populated. An empty mapping
    is a valid result from TMDB and does not count as missing.
    """

    fetched_at: datetime | None = None
    film: Mapping[int, str] | None = None
    series: Mapping[int, str] | None = None

    @property
    def is_populated(self) -> bool:
        return (
            self.fetched_at is not None
            and self.film is not None
            and self.series is not None
        )

    def is_fresh(self, now: datetime, ttl: timedelta) -> bool:
        if not self.is_populated or self.fetched_at is None:
            return False
        return now - self.fetched_at < ttl

    def mapping_for(self, kind: MediaKind) -> Mapping[int, str]:
        if kind is MediaKind.FILM:
            return self.film or {}
        if kind is MediaKind.SERIES:
            return self.series or {}
        return {}


@dataclass(frozen=True, slots=True)
class GenreResolution:
    """Outcome of a resolution attempt; ``error`` is set when it degraded."""

    names: list[str]
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class GenreResolver:
    """Resolve TMDB genre ids for a media kind into display names.

    One instance is created per process and shared by request handlers. The
    snapshot is refreshed on demand once it is older than ``ttl``; both media
    kinds are fetched together and committed as a single object so readers
    never observe one kind updated without the other.
    """

    def __init__(
        self,
        client: TMDBClient,
        *,
        ttl: timedelta = DEFAULT_GENRE_TTL,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self._client = client
        self._ttl = ttl
        self._clock = clock
        self._snapshot = GenreSnapshot()
        self._refresh_task: asyncio.Task[GenreSnapshot] | None = None

    @property
    def snapshot(self) -> GenreSnapshot:
        return self._snapshot

    async def resolve_names(
        self, genre_ids: Sequence[int], media_kind: MediaKind | str
    ) -> list[str]:
        """Return genre names for ``genre_ids``; never raises."""

        resolution = await self.try_resolve(genre_ids, media_kind)
        if not resolution.ok:
            logger.warning(
                "Genre resolution degraded to no genres: %s", resolution.error
            )
        return resolution.names

    async def try_resolve(
        self, genre_ids: Sequence[int], media_kind: MediaKind | str
    ) -> GenreResolution:
        kind = MediaKind.parse(media_kind)
        if not genre_ids or kind is MediaKind.UNKNOWN:
            return GenreResolution(names=[])
        try:
            await self.ensure_fresh()
        except TMDBError as exc:
            return GenreResolution(names=[], error=exc)
        except Exception as exc:
            logger.exception("Unexpected failure refreshing TMDB genres")
            return GenreResolution(names=[], error=exc)
        return GenreResolution(names=self.lookup(genre_ids, kind))

    def lookup(
        self, genre_ids: Sequence[int], media_kind: MediaKind | str
    ) -> list[str]:
        """Map ids against the current snapshot without refreshing it."""

        mapping = self._snapshot.mapping_for(MediaKind.parse(media_kind))
        return [mapping[genre_id] for genre_id in genre_ids if genre_id in mapping]

    async def ensure_fresh(self) -> GenreSnapshot:
        """Return a fresh snapshot, refreshing it from TMDB when stale.

        Concurrent callers share one in-flight refresh. A failed refresh
        leaves the previous snapshot in place and raises to every waiter.
        """

        snapshot = self._snapshot
        if snapshot.is_fresh(self._clock(), self._ttl):
            return snapshot
        task = self._refresh_task
        if task is None or task.done():
            task = asyncio.create_task(self._refresh())
            self._refresh_task = task
        return await asyncio.shield(task)

    async def _refresh(self) -> GenreSnapshot:
        started_at = self._clock()
        fetches = (
            asyncio.create_task(self._client.fetch_genres(MediaKind.FILM)),
            asyncio.create_task(self._client.fetch_genres(MediaKind.SERIES)),
        )
        try:
            film, series = await asyncio.gather(*fetches)
        except BaseException:
            # Cancel the sibling fetch and reap both outcomes.
            for fetch in fetches:
                fetch.cancel()
            await asyncio.gather(*fetches, return_exceptions=True)
            raise
        snapshot = GenreSnapshot(
            fetched_at=started_at,
            film=MappingProxyType(dict(film)),
            series=MappingProxyType(dict(series)),
        )
        self._snapshot = snapshot
        logger.info(
            "Refreshed TMDB genres: %d film, %d series", len(film), len(series)
        )
        return snapshot
