"""Test configuration for the SceneStack backend."""

from __future__ import annotations

import os

# до импорта src: движок приложения не должен смотреть в настоящую БД
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("CREATOR_AFTER_TRANSFER", "admin")

from collections.abc import Iterator, Sequence

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src.db import Base, get_db
from src.main import app
from src.models.group import Group
from src.models.group_member import GroupRole
from src.models.user import User
from src.services.group_membership import add_member
from src.utils.security import create_access_token, hash_password

PASSWORD = "secret123"


@pytest.fixture()
def session_factory() -> Iterator[sessionmaker]:
    """Fresh in-memory database per test, shared across threads."""

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    try:
        yield factory
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture()
def db(session_factory: sessionmaker) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(session_factory: sessionmaker) -> Iterator[TestClient]:
    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_db, None)


@pytest.fixture()
def make_user(db: Session):
    counter = {"n": 0}

    def _make(
        username: str | None = None,
        *,
        premium: bool = False,
        deactivated: bool = False,
        password: str = PASSWORD,
    ) -> User:
        counter["n"] += 1
        name = username or f"user{counter['n']}"
        user = User(
            username=name,
            email=f"{name}@example.com",
            password_hash=hash_password(password),
            is_premium=premium,
            is_deactivated=deactivated,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture()
def make_group(db: Session):
    """Creates a group owned by ``owner`` with the given extra members."""

    def _make(
        owner: User,
        members: Sequence[User | tuple[User, GroupRole]] = (),
        *,
        name: str = "Movie Night",
    ) -> Group:
        group = Group(name=name, created_by_id=owner.id)
        db.add(group)
        db.flush()
        add_member(db, group.id, owner.id, role=GroupRole.creator, actor_id=owner.id)
        for entry in members:
            user, role = entry if isinstance(entry, tuple) else (entry, GroupRole.member)
            add_member(db, group.id, user.id, role=role, actor_id=owner.id)
        db.commit()
        db.refresh(group)
        return group

    return _make


@pytest.fixture()
def auth_headers():
    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _headers
