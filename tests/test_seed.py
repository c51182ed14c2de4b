from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

import pytest
from sqlalchemy import select

from app.database import Database
from app.db_models import Comment, ContentRecord
from app.seed import (
    DEMO_CONTENT_ID,
    content_from_legacy,
    import_legacy_json,
    seed_demo_content,
)


@pytest.mark.anyio("asyncio")
async def test_seed_is_idempotent(tmp_path: Path) -> None:
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'seed.db'}")
    await database.create_all()
    try:
        assert await seed_demo_content(database.session_factory) is True
        assert await seed_demo_content(database.session_factory) is False
        async with database.session() as session:
            contents = (await session.execute(select(ContentRecord))).scalars().all()
            comments = (await session.execute(select(Comment))).scalars().all()
    finally:
        await database.dispose()

    assert [content.id for content in contents] == [DEMO_CONTENT_ID]
    assert [comment.content_id for comment in comments] == [DEMO_CONTENT_ID]


def test_legacy_entry_requires_identity_and_rating() -> None:
    assert content_from_legacy({"tmdbId": "1", "myRating": 4}) is None
    assert content_from_legacy({"id": "a", "myRating": 4}) is None
    assert content_from_legacy({"id": "a", "tmdbId": "1", "myRating": "n/a"}) is None


def test_legacy_entry_fills_missing_metadata() -> None:
    record = content_from_legacy(
        {
            "id": "abc",
            "tmdbId": 1399,
            "name": "Game of Thrones",
            "mediaType": "tv",
            "genreIds": [10765, "18", "junk"],
            "myRating": "4",
            "tags": "epic, Epic, dragons",
            "createdAt": "2023-05-01T10:00:00.000Z",
        }
    )

    assert record is not None
    assert record.tmdb_id == "1399"
    assert record.title == "Game of Thrones"
    assert record.genre_ids == [10765, 18]
    assert record.tags == ["epic", "dragons"]
    assert record.my_rating == 4.0
    assert record.popularity is None
    assert record.created_at == datetime(2023, 5, 1, 10, 0)
    assert record.updated_at == record.created_at


@pytest.mark.anyio("asyncio")
async def test_import_skips_invalid_duplicate_and_orphaned_entries(
    tmp_path: Path,
) -> None:
    source = tmp_path / "db.json"
    source.write_text(
        json.dumps(
            {
                "contents": [
                    {"id": "c1", "tmdbId": "603", "title": "The Matrix", "myRating": 5},
                    {"id": "c1", "tmdbId": "603", "title": "Duplicate", "myRating": 1},
                    {"id": "c2", "title": "No TMDB id", "myRating": 3},
                ],
                "comments": [
                    {"id": "m1", "contentId": "c1", "nickname": "Mina", "text": "Yes"},
                    {"id": "m2", "contentId": "c2", "nickname": "Joon", "text": "Lost"},
                    {"id": "m3", "contentId": "c1", "nickname": "", "text": "Anon"},
                ],
            }
        ),
        encoding="utf-8",
    )
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'import.db'}")
    await database.create_all()
    try:
        first = await import_legacy_json(database.session_factory, source)
        second = await import_legacy_json(database.session_factory, source)
        async with database.session() as session:
            stored = await session.get(ContentRecord, "c1")
            title = stored.title if stored else None
    finally:
        await database.dispose()

    assert (first.contents, first.comments, first.skipped) == (1, 1, 4)
    assert (second.contents, second.comments, second.skipped) == (0, 0, 6)
    assert title == "The Matrix"


@pytest.mark.anyio("asyncio")
async def test_import_rejects_non_object_document(tmp_path: Path) -> None:
    source = tmp_path / "db.json"
    source.write_text("[]", encoding="utf-8")
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'import.db'}")
    await database.create_all()
    try:
        with pytest.raises(ValueError):
            await import_legacy_json(database.session_factory, source)
    finally:
        await database.dispose()
