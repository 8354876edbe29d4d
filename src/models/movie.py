# src/models/movie.py

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, func
from src.db import Base


class Movie(Base):
    """Фильм из TMDb, сохранённый локально при первом просмотре."""
    __tablename__ = "movies"

    id = Column(Integer, primary_key=True, index=True)
    tmdb_id = Column(Integer, unique=True, nullable=False, index=True)
    title = Column(String(255), nullable=False)
    year = Column(Integer, nullable=True)
    poster_path = Column(String(255), nullable=True)
    synopsis = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=func.now())
    is_deleted = Column(Boolean, default=False, nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<Movie(id={self.id}, tmdb_id={self.tmdb_id}, title={self.title!r})>"
