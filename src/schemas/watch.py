# src/schemas/watch.py
from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from .user import UserBasicOut


class MovieIn(BaseModel):
    tmdb_id: int
    title: str = Field(..., min_length=1, max_length=255)
    year: Optional[int] = None
    poster_path: Optional[str] = None


class MovieOut(BaseModel):
    id: int
    tmdb_id: int
    title: str
    year: Optional[int] = None
    poster_path: Optional[str] = None

    class Config:
        from_attributes = True


class WatchCreate(BaseModel):
    movie: MovieIn
    watched_date: date
    rating: Optional[int] = Field(None, ge=1, le=10)
    notes: Optional[str] = None
    watch_location: Optional[str] = Field(None, max_length=50)
    watched_with: Optional[str] = Field(None, max_length=255)
    is_rewatch: bool = False
    is_private: bool = False
    group_ids: List[int] = Field(default_factory=list, description="Сразу расшарить в эти группы")


class WatchShareRequest(BaseModel):
    group_ids: List[int] = Field(..., min_length=1)


class WatchOut(BaseModel):
    id: int
    user_id: int
    watched_date: date
    rating: Optional[int] = None
    notes: Optional[str] = None
    watch_location: Optional[str] = None
    watched_with: Optional[str] = None
    is_rewatch: bool
    is_private: bool
    created_at: datetime
    movie: MovieOut
    group_ids: List[int] = Field(default_factory=list)

    class Config:
        from_attributes = True


class FeedWatchOut(BaseModel):
    """Просмотр в ленте группы (с учётом настроек приватности автора)."""
    id: int
    watched_date: date
    rating: Optional[int] = None
    notes: Optional[str] = None
    movie: MovieOut
    user: UserBasicOut
