"""SQLAlchemy ORM models backing the persistent state."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .database import Base


class ContentRecord(Base):
    """A curated film or series with the administrator's annotations."""

    __tablename__ = "contents"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    tmdb_id: Mapped[str] = mapped_column(String(64))
    title: Mapped[str] = mapped_column(String(255))
    name: Mapped[str] = mapped_column(String(255), default="")
    overview: Mapped[str] = mapped_column(Text, default="")
    release_date: Mapped[str] = mapped_column(String(16), default="")
    first_air_date: Mapped[str] = mapped_column(String(16), default="")
    poster_path: Mapped[str] = mapped_column(String(255), default="")
    poster_url: Mapped[str] = mapped_column(String(512), default="")
    backdrop_path: Mapped[str] = mapped_column(String(255), default="")
    genre_ids: Mapped[list[int]] = mapped_column(JSON, default=list)
    popularity: Mapped[float | None] = mapped_column(Float, nullable=True)
    vote_average: Mapped[float | None] = mapped_column(Float, nullable=True)
    vote_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    adult: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    media_type: Mapped[str] = mapped_column(String(16), default="")
    year: Mapped[str] = mapped_column(String(8), default="")
    type: Mapped[str] = mapped_column(String(16), default="")
    my_note: Mapped[str] = mapped_column(Text)
    my_rating: Mapped[float] = mapped_column(Float)
    tags: Mapped[list[str]] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    comments: Mapped[list["Comment"]] = relationship(
        back_populates="content",
        cascade="all, delete-orphan",
        order_by="Comment.created_at",
    )


class Comment(Base):
    """A visitor comment on a content record."""

    __tablename__ = "comments"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    content_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("contents.id", ondelete="CASCADE"), index=True
    )
    nickname: Mapped[str] = mapped_column(String(60))
    text: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )

    content: Mapped[ContentRecord] = relationship(back_populates="comments")
