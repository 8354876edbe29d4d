# src/schemas/watchlist.py
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from .watch import MovieIn, MovieOut


class WatchlistAddRequest(BaseModel):
    movie: MovieIn
    notes: Optional[str] = None


class WatchlistUpdateRequest(BaseModel):
    notes: Optional[str] = None
    priority: Optional[int] = Field(None, ge=1, description="Новая позиция; остальные сдвигаются")


class WatchlistItemOut(BaseModel):
    id: int
    movie_id: int
    movie: MovieOut
    notes: Optional[str] = None
    priority: int
    added_at: datetime

    class Config:
        from_attributes = True


class WatchlistPage(BaseModel):
    items: List[WatchlistItemOut] = Field(default_factory=list)
    total_count: int
    page: int
    page_size: int
    total_pages: int
    has_more: bool


class WatchlistCountOut(BaseModel):
    count: int
