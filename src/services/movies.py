# src/services/movies.py
# Локальный каталог фильмов (ключ: tmdb_id). Без commit.

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.models.movie import Movie
from src.schemas.watch import MovieIn


def get_or_create_movie(db: Session, data: MovieIn) -> Movie:
    movie = db.scalar(select(Movie).where(Movie.tmdb_id == data.tmdb_id))
    if movie:
        # фильм мог быть скрыт: повторное добавление возвращает его в каталог
        if movie.is_deleted:
            movie.is_deleted = False
            movie.deleted_at = None
        return movie
    movie = Movie(tmdb_id=data.tmdb_id, title=data.title, year=data.year, poster_path=data.poster_path)
    db.add(movie)
    db.flush()
    return movie
