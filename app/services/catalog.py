"""Catalog storage, browsing and comment handling."""

from __future__ import annotations

import asyncio
import logging
import secrets
from datetime import datetime
from typing import Iterable, Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db_models import Comment, ContentRecord
from ..models import (
    CatalogQuery,
    CommentForm,
    CommentView,
    ContentForm,
    ContentView,
    MediaKind,
)
from .genres import GenreResolver

logger = logging.getLogger(__name__)


def new_record_id() -> str:
    return secrets.token_hex(8)


def apply_catalog_query(
    records: Iterable[ContentRecord], query: CatalogQuery
) -> list[ContentRecord]:
    """Filter and sort stored records according to ``query``.

    Filters combine with AND. Sorting is stable on top of newest-first order,
    and records lacking the sort key are placed last.
    """

    selected = sorted(records, key=lambda record: record.created_at, reverse=True)

    if query.q:
        needle = query.q.casefold()
        selected = [record for record in selected if _matches_text(record, needle)]
    if query.media_kind is not None:
        selected = [
            record
            for record in selected
            if MediaKind.parse(record.media_type or record.type) is query.media_kind
        ]
    if query.tag:
        wanted = query.tag.casefold()
        selected = [
            record
            for record in selected
            if any(tag.casefold() == wanted for tag in record.tags or [])
        ]
    if query.genre_id is not None:
        selected = [
            record for record in selected if query.genre_id in (record.genre_ids or [])
        ]
    if query.min_rating is not None:
        selected = [
            record for record in selected if record.my_rating >= query.min_rating
        ]

    if query.sort == "oldest":
        selected.reverse()
    elif query.sort == "rating":
        selected.sort(key=lambda record: -record.my_rating)
    elif query.sort == "title":
        selected.sort(key=lambda record: (record.title or record.name or "").casefold())
    elif query.sort == "year":
        selected.sort(key=lambda record: _descending_year(record.year))
    elif query.sort == "popularity":
        selected.sort(
            key=lambda record: (
                record.popularity is None,
                -(record.popularity or 0.0),
            )
        )
    return selected


def _matches_text(record: ContentRecord, needle: str) -> bool:
    haystacks: list[str] = [
        record.title or "",
        record.name or "",
        record.my_note or "",
        record.overview or "",
        *(record.tags or []),
    ]
    return any(needle in value.casefold() for value in haystacks)


def _descending_year(value: str | None) -> tuple[bool, int]:
    # Missing years sort last; otherwise newest first.
    if not value or not value.isdigit():
        return True, 0
    return False, -int(value)


class CatalogService:
    """Persists curated entries and annotates them with genre names."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        genre_resolver: GenreResolver,
    ):
        self._session_factory = session_factory
        self._genres = genre_resolver

    async def list_contents(self, query: CatalogQuery | None = None) -> list[ContentView]:
        async with self._session_factory() as session:
            result = await session.execute(select(ContentRecord))
            records = list(result.scalars().all())
        selected = apply_catalog_query(records, query or CatalogQuery())
        return await self._annotate(selected)

    async def get_content(self, content_id: str) -> ContentView | None:
        async with self._session_factory() as session:
            record = await session.get(ContentRecord, content_id)
        if record is None:
            return None
        views = await self._annotate([record])
        return views[0]

    async def available_tags(self) -> list[str]:
        async with self._session_factory() as session:
            result = await session.execute(select(ContentRecord.tags))
            tag_lists = result.scalars().all()
        tags: dict[str, str] = {}
        for tag_list in tag_lists:
            for tag in tag_list or []:
                tags.setdefault(tag.casefold(), tag)
        return sorted(tags.values(), key=str.casefold)

    async def create_content(self, form: ContentForm) -> ContentView:
        now = datetime.utcnow()
        record = ContentRecord(
            id=new_record_id(),
            created_at=now,
            updated_at=now,
            **self._form_values(form),
        )
        async with self._session_factory() as session:
            session.add(record)
            await session.commit()
        logger.info("Added %s %s (tmdb %s)", record.type or "entry", record.id, record.tmdb_id)
        views = await self._annotate([record])
        return views[0]

    async def update_content(
        self, content_id: str, form: ContentForm
    ) -> ContentView | None:
        async with self._session_factory() as session:
            record = await session.get(ContentRecord, content_id)
            if record is None:
                return None
            for key, value in self._form_values(form).items():
                setattr(record, key, value)
            record.updated_at = datetime.utcnow()
            await session.commit()
        views = await self._annotate([record])
        return views[0]

    async def delete_content(self, content_id: str) -> bool:
        async with self._session_factory() as session:
            await session.execute(delete(Comment).where(Comment.content_id == content_id))
            result = await session.execute(
                delete(ContentRecord).where(ContentRecord.id == content_id)
            )
            await session.commit()
        deleted = bool(result.rowcount)
        if deleted:
            logger.info("Deleted entry %s", content_id)
        return deleted

    async def list_comments(self, content_id: str) -> list[CommentView]:
        async with self._session_factory() as session:
            stmt = (
                select(Comment)
                .where(Comment.content_id == content_id)
                .order_by(Comment.created_at, Comment.id)
            )
            result = await session.execute(stmt)
            comments = result.scalars().all()
        return [self._comment_view(comment) for comment in comments]

    async def add_comment(self, content_id: str, form: CommentForm) -> CommentView:
        async with self._session_factory() as session:
            if await session.get(ContentRecord, content_id) is None:
                raise KeyError(f"Content {content_id} not found")
            comment = Comment(
                id=new_record_id(),
                content_id=content_id,
                nickname=form.nickname,
                text=form.text,
                created_at=datetime.utcnow(),
            )
            session.add(comment)
            await session.commit()
        return self._comment_view(comment)

    async def delete_comment(self, comment_id: str) -> str | None:
        """Delete a comment, returning the id of the entry it belonged to."""

        async with self._session_factory() as session:
            comment = await session.get(Comment, comment_id)
            if comment is None:
                return None
            content_id = comment.content_id
            await session.execute(delete(Comment).where(Comment.id == comment_id))
            await session.commit()
        return content_id

    async def _annotate(self, records: Sequence[ContentRecord]) -> list[ContentView]:
        genre_lists = await asyncio.gather(
            *(
                self._genres.resolve_names(
                    record.genre_ids or [], record.media_type or record.type
                )
                for record in records
            )
        )
        return [
            self._content_view(record, genres)
            for record, genres in zip(records, genre_lists)
        ]

    @staticmethod
    def _form_values(form: ContentForm) -> dict[str, object]:
        return form.model_dump(by_alias=False)

    @staticmethod
    def _content_view(record: ContentRecord, genres: list[str]) -> ContentView:
        return ContentView(
            id=record.id,
            tmdb_id=record.tmdb_id,
            title=record.title,
            name=record.name or "",
            overview=record.overview or "",
            release_date=record.release_date or "",
            first_air_date=record.first_air_date or "",
            poster_path=record.poster_path or "",
            poster_url=record.poster_url or "",
            backdrop_path=record.backdrop_path or "",
            genre_ids=list(record.genre_ids or []),
            genres=genres,
            popularity=record.popularity,
            vote_average=record.vote_average,
            vote_count=record.vote_count,
            adult=record.adult,
            media_type=record.media_type or "",
            year=record.year or "",
            type=record.type or "",
            my_note=record.my_note,
            my_rating=record.my_rating,
            tags=list(record.tags or []),
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

    @staticmethod
    def _comment_view(comment: Comment) -> CommentView:
        return CommentView(
            id=comment.id,
            content_id=comment.content_id,
            nickname=comment.nickname,
            text=comment.text,
            created_at=comment.created_at,
        )
