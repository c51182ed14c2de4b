"""Helpers that populate the catalog database outside the web flow."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .db_models import Comment, ContentRecord
from .utils import coerce_float, coerce_int, parse_genre_ids, parse_tags

logger = logging.getLogger(__name__)

DEMO_CONTENT_ID = "seed-content-1"
DEMO_COMMENT_ID = "seed-comment-1"


@dataclass(slots=True)
class ImportSummary:
    contents: int = 0
    comments: int = 0
    skipped: int = 0


async def seed_demo_content(
    session_factory: async_sessionmaker[AsyncSession],
) -> bool:
    """Insert a demo entry and comment unless they already exist."""

    async with session_factory() as session:
        if await session.get(ContentRecord, DEMO_CONTENT_ID) is not None:
            return False
        now = datetime.utcnow()
        session.add(
            ContentRecord(
                id=DEMO_CONTENT_ID,
                tmdb_id="demo-1",
                title="Sample Recommendation",
                overview="Seed data for local development.",
                release_date="2024-01-01",
                genre_ids=[18],
                popularity=1.0,
                vote_average=7.5,
                vote_count=10,
                adult=False,
                media_type="movie",
                year="2024",
                type="movie",
                my_note="Great starter content.",
                my_rating=4.5,
                tags=["seed", "demo"],
                created_at=now,
                updated_at=now,
            )
        )
        session.add(
            Comment(
                id=DEMO_COMMENT_ID,
                content_id=DEMO_CONTENT_ID,
                nickname="Seeder",
                text="Looks good!",
                created_at=now,
            )
        )
        await session.commit()
    logger.info("Seeded demo content %s", DEMO_CONTENT_ID)
    return True


def _text(entry: Mapping[str, Any], key: str) -> str:
    value = entry.get(key)
    return value.strip() if isinstance(value, str) else ""


def _timestamp(value: object) -> datetime:
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            pass
        else:
            return parsed.replace(tzinfo=None)
    return datetime.utcnow()


def content_from_legacy(entry: Mapping[str, Any]) -> ContentRecord | None:
    """Build a record from a camelCase document, filling in missing metadata."""

    content_id = entry.get("id")
    tmdb_id = entry.get("tmdbId")
    rating = coerce_float(entry.get("myRating"))
    if content_id in (None, "") or tmdb_id in (None, "") or rating is None:
        return None
    created_at = _timestamp(entry.get("createdAt"))
    raw_genres = entry.get("genreIds")
    return ContentRecord(
        id=str(content_id),
        tmdb_id=str(tmdb_id),
        title=_text(entry, "title") or _text(entry, "name"),
        name=_text(entry, "name"),
        overview=_text(entry, "overview"),
        release_date=_text(entry, "releaseDate"),
        first_air_date=_text(entry, "firstAirDate"),
        poster_path=_text(entry, "posterPath"),
        poster_url=_text(entry, "posterUrl"),
        backdrop_path=_text(entry, "backdropPath"),
        genre_ids=parse_genre_ids(raw_genres) if isinstance(raw_genres, list) else [],
        popularity=coerce_float(entry.get("popularity")),
        vote_average=coerce_float(entry.get("voteAverage")),
        vote_count=coerce_int(entry.get("voteCount")),
        adult=entry.get("adult") if isinstance(entry.get("adult"), bool) else None,
        media_type=_text(entry, "mediaType"),
        year=_text(entry, "year"),
        type=_text(entry, "type"),
        my_note=_text(entry, "myNote"),
        my_rating=rating,
        tags=parse_tags(entry.get("tags")),
        created_at=created_at,
        updated_at=_timestamp(entry.get("updatedAt") or entry.get("createdAt")),
    )


async def import_legacy_json(
    session_factory: async_sessionmaker[AsyncSession], path: Path
) -> ImportSummary:
    """Import a ``{"contents": [...], "comments": [...]}`` document store file.

    Entries whose id already exists are skipped, as are comments pointing at
    entries that are neither imported nor stored.
    """

    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{path} does not contain a JSON object")
    raw_contents = data.get("contents") if isinstance(data.get("contents"), list) else []
    raw_comments = data.get("comments") if isinstance(data.get("comments"), list) else []

    summary = ImportSummary()
    async with session_factory() as session:
        known_ids: set[str] = set()
        for entry in raw_contents:
            record = content_from_legacy(entry) if isinstance(entry, dict) else None
            if (
                record is None
                or record.id in known_ids
                or await session.get(ContentRecord, record.id) is not None
            ):
                summary.skipped += 1
                continue
            session.add(record)
            known_ids.add(record.id)
            summary.contents += 1

        for entry in raw_comments:
            if not isinstance(entry, dict):
                summary.skipped += 1
                continue
            comment_id = str(entry.get("id") or "")
            content_id = str(entry.get("contentId") or "")
            nickname = _text(entry, "nickname")
            text = _text(entry, "text")
            if not (comment_id and content_id and nickname and text):
                summary.skipped += 1
                continue
            if content_id not in known_ids and (
                await session.get(ContentRecord, content_id) is None
            ):
                summary.skipped += 1
                continue
            if await session.get(Comment, comment_id) is not None:
                summary.skipped += 1
                continue
            session.add(
                Comment(
                    id=comment_id,
                    content_id=content_id,
                    nickname=nickname[:60],
                    text=text,
                    created_at=_timestamp(entry.get("createdAt")),
                )
            )
            summary.comments += 1
        await session.commit()

    logger.info(
        "Imported %d contents and %d comments from %s (%d skipped)",
        summary.contents,
        summary.comments,
        path,
        summary.skipped,
    )
    return summary
