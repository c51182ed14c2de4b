"""Behaviour of the cached genre resolver."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import httpx
import pytest

from app.models import MediaKind
from app.services.genres import GenreResolver, GenreSnapshot
from app.services.tmdb import MissingCredentialError, ProviderUnavailableError, TMDBClient
from conftest import TMDB_BASE_URL, FakeClock, build_settings, genre_handler


def build_resolver(
    handler, *, clock: FakeClock | None = None, **settings_overrides
) -> tuple[GenreResolver, httpx.AsyncClient]:
    http_client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url=TMDB_BASE_URL
    )
    client = TMDBClient(build_settings(**settings_overrides), http_client)
    resolver = GenreResolver(
        client, ttl=timedelta(days=7), clock=clock or FakeClock()
    )
    return resolver, http_client


@pytest.mark.anyio("asyncio")
async def test_empty_ids_skip_network() -> None:
    requests: list[httpx.Request] = []
    resolver, http_client = build_resolver(genre_handler(requests))
    async with http_client:
        assert await resolver.resolve_names([], MediaKind.FILM) == []

    assert requests == []
    assert resolver.snapshot == GenreSnapshot()


@pytest.mark.anyio("asyncio")
async def test_unknown_kind_returns_nothing() -> None:
    requests: list[httpx.Request] = []
    resolver, http_client = build_resolver(genre_handler(requests))
    async with http_client:
        assert await resolver.resolve_names([18, 35], MediaKind.UNKNOWN) == []
        assert await resolver.resolve_names([18], "person") == []

    assert requests == []


@pytest.mark.anyio("asyncio")
async def test_resolves_in_input_order_and_drops_unknown_ids() -> None:
    requests: list[httpx.Request] = []
    resolver, http_client = build_resolver(genre_handler(requests))
    async with http_client:
        names = await resolver.resolve_names([35, 99, 18], MediaKind.FILM)
        again = await resolver.resolve_names([18, 99, 35], "movie")

    assert names == ["Comedy", "Drama"]
    assert again == ["Drama", "Comedy"]


@pytest.mark.anyio("asyncio")
async def test_first_call_refreshes_once_then_serves_from_cache() -> None:
    requests: list[httpx.Request] = []
    clock = FakeClock()
    resolver, http_client = build_resolver(genre_handler(requests), clock=clock)
    async with http_client:
        first = await resolver.resolve_names([10765], MediaKind.SERIES)
        assert len(requests) == 2
        clock.advance(days=6)
        second = await resolver.resolve_names([10765], "tv")

    assert first == second == ["Sci-Fi & Fantasy"]
    assert len(requests) == 2
    assert {request.url.path for request in requests} == {
        "/3/genre/movie/list",
        "/3/genre/tv/list",
    }
    assert all(request.url.params["api_key"] == "tmdb-key" for request in requests)
    assert all(request.url.params["language"] == "ko-KR" for request in requests)
    snapshot = resolver.snapshot
    assert snapshot.fetched_at == clock.now - timedelta(days=6)
    assert dict(snapshot.film or {}) == {18: "Drama", 35: "Comedy"}


@pytest.mark.anyio("asyncio")
async def test_empty_series_mapping_is_not_refetched() -> None:
    requests: list[httpx.Request] = []
    resolver, http_client = build_resolver(
        genre_handler(requests, series={"genres": []})
    )
    async with http_client:
        assert await resolver.resolve_names([18], MediaKind.SERIES) == []
        assert await resolver.resolve_names([18], MediaKind.SERIES) == []
        assert await resolver.resolve_names([18], MediaKind.FILM) == ["Drama"]

    assert len(requests) == 2
    assert resolver.snapshot.series == {}


@pytest.mark.anyio("asyncio")
async def test_partial_refresh_failure_keeps_previous_snapshot() -> None:
    requests: list[httpx.Request] = []
    resolver, http_client = build_resolver(
        genre_handler(requests, series_status=503)
    )
    async with http_client:
        names = await resolver.resolve_names([18], MediaKind.FILM)
        resolution = await resolver.try_resolve([18], MediaKind.FILM)

    assert names == []
    assert resolution.names == []
    assert isinstance(resolution.error, ProviderUnavailableError)
    assert resolver.snapshot == GenreSnapshot()
    assert resolver.snapshot.fetched_at is None


@pytest.mark.anyio("asyncio")
async def test_failed_refresh_of_stale_snapshot_keeps_old_mappings() -> None:
    requests: list[httpx.Request] = []
    state = {"fail": False}
    base_handler = genre_handler(requests)

    def handler(request: httpx.Request) -> httpx.Response:
        if state["fail"] and request.url.path.endswith("/genre/tv/list"):
            requests.append(request)
            return httpx.Response(500, json={"status_message": "boom"})
        return base_handler(request)

    clock = FakeClock()
    resolver, http_client = build_resolver(handler, clock=clock)
    async with http_client:
        await resolver.resolve_names([18], MediaKind.FILM)
        fetched_at = resolver.snapshot.fetched_at
        state["fail"] = True
        clock.advance(days=8)
        names = await resolver.resolve_names([18], MediaKind.FILM)

    assert names == []
    assert resolver.snapshot.fetched_at == fetched_at
    assert resolver.lookup([18], MediaKind.FILM) == ["Drama"]


@pytest.mark.anyio("asyncio")
async def test_expired_snapshot_triggers_one_new_pair_of_fetches() -> None:
    requests: list[httpx.Request] = []
    clock = FakeClock()
    resolver, http_client = build_resolver(genre_handler(requests), clock=clock)
    async with http_client:
        await resolver.resolve_names([18], MediaKind.FILM)
        clock.advance(days=7)
        names = await resolver.resolve_names([18], MediaKind.FILM)
        await resolver.resolve_names([35], MediaKind.FILM)

    assert names == ["Drama"]
    assert len(requests) == 4
    assert resolver.snapshot.fetched_at == clock.now


@pytest.mark.anyio("asyncio")
async def test_missing_credential_degrades_without_network() -> None:
    requests: list[httpx.Request] = []
    resolver, http_client = build_resolver(genre_handler(requests), TMDB_API_KEY="")
    async with http_client:
        resolution = await resolver.try_resolve([18], MediaKind.FILM)
        names = await resolver.resolve_names([18], MediaKind.FILM)

    assert names == []
    assert isinstance(resolution.error, MissingCredentialError)
    assert requests == []


@pytest.mark.anyio("asyncio")
async def test_malformed_genre_records_are_skipped() -> None:
    requests: list[httpx.Request] = []
    film = {
        "genres": [
            {"id": 18, "name": "Drama"},
            {"id": "35", "name": "Comedy"},
            {"id": 27},
            {"name": "Nameless"},
            "junk",
            {"id": 28, "name": "Action"},
        ]
    }
    resolver, http_client = build_resolver(genre_handler(requests, film=film))
    async with http_client:
        names = await resolver.resolve_names([18, 35, 27, 28], MediaKind.FILM)

    assert names == ["Drama", "Action"]


@pytest.mark.anyio("asyncio")
async def test_concurrent_callers_share_one_refresh() -> None:
    requests: list[httpx.Request] = []
    resolver, http_client = build_resolver(genre_handler(requests))
    async with http_client:
        results = await asyncio.gather(
            *(resolver.resolve_names([18, 35], MediaKind.FILM) for _ in range(5))
        )

    assert results == [["Drama", "Comedy"]] * 5
    assert len(requests) == 2


@pytest.mark.anyio("asyncio")
async def test_repeated_reads_are_identical() -> None:
    requests: list[httpx.Request] = []
    resolver, http_client = build_resolver(genre_handler(requests))
    async with http_client:
        first = await resolver.resolve_names([10765, 18], MediaKind.SERIES)
        second = await resolver.resolve_names([10765, 18], MediaKind.SERIES)

    assert first == second == ["Sci-Fi & Fantasy", "Drama"]
    assert len(requests) == 2


@pytest.mark.anyio("asyncio")
async def test_failed_fetch_cancels_the_other_kind() -> None:
    cancelled: list[str] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/genre/movie/list"):
            return httpx.Response(500, json={"status_message": "boom"})
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            cancelled.append(request.url.path)
            raise
        return httpx.Response(200, json={"genres": []})

    resolver, http_client = build_resolver(handler)
    async with http_client:
        resolution = await resolver.try_resolve([18], MediaKind.FILM)

    assert isinstance(resolution.error, ProviderUnavailableError)
    assert resolution.error.status_code == 500
    assert cancelled == ["/3/genre/tv/list"]
    assert resolver.snapshot == GenreSnapshot()
