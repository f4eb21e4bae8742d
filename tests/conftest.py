# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from itertools import count
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("LOG_LEVEL", "WARNING")

from huddle.core.settings import settings
from huddle.db.session import Base
from huddle.api.v1.dependencies import get_session_factory
from huddle.db.session import get_db as app_get_session
from huddle.main import app as fastapi_app
from huddle.models import Notification, Post, User
from huddle.services.presence import PresenceRegistry, get_presence_registry

TEST_DB_URL = "sqlite://"

_USER_COUNTER = count(1)


class RecordingChannel:
    """Channel that keeps every pushed event in memory."""

    def __init__(self, name: str = "channel") -> None:
        self.name = name
        self.events: list[tuple[str, dict[str, Any]]] = []

    async def deliver(self, event: str, payload: dict[str, Any]) -> None:
        self.events.append((event, payload))

    def payloads(self, event: str = "receive_message") -> list[dict[str, Any]]:
        return [payload for name, payload in self.events if name == event]

    def __repr__(self) -> str:
        return f"RecordingChannel({self.name})"


class BrokenChannel:
    """Channel whose peer has gone away."""

    async def deliver(self, event: str, payload: dict[str, Any]) -> None:
        raise ConnectionError("socket closed")


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture(autouse=True)
def override_session_factory(app: FastAPI, engine: Engine) -> Iterator[None]:
    """Point per-frame chat sessions at the test database."""
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    app.dependency_overrides[get_session_factory] = lambda: factory
    try:
        yield
    finally:
        app.dependency_overrides.pop(get_session_factory, None)


@pytest.fixture(autouse=True)
def presence() -> Iterator[PresenceRegistry]:
    """Give every test an empty process-wide presence registry."""
    registry = get_presence_registry()
    registry.clear()
    try:
        yield registry
    finally:
        registry.clear()


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., User]:
    """Return a factory persisting users with unique names."""

    def _make_user(username: str | None = None, **fields: Any) -> User:
        number = next(_USER_COUNTER)
        user = User(
            username=username or f"user{number}",
            email=fields.pop("email", f"user{number}@example.com"),
            profile_picture=fields.pop("profile_picture", None),
            **fields,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def alice(make_user: Callable[..., User]) -> User:
    return make_user("alice", profile_picture="https://img.example.com/alice.png")


@pytest.fixture()
def bob(make_user: Callable[..., User]) -> User:
    return make_user("bob")


@pytest.fixture()
def carol(make_user: Callable[..., User]) -> User:
    return make_user("carol")


def token_for(user: User) -> str:
    """Mint a token the way the identity service does."""
    return jwt.encode({"sub": str(user.id)}, settings.secret_key, algorithm=settings.jwt_algorithm)


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {token_for(user)}"}


@pytest.fixture()
def alice_headers(alice: User) -> dict[str, str]:
    return auth_headers(alice)


@pytest.fixture()
def bob_headers(bob: User) -> dict[str, str]:
    return auth_headers(bob)


@pytest.fixture()
def alice_post(db_session: Session, alice: User) -> Post:
    """A post written by alice."""
    post = Post(author_id=alice.id, content="hello from alice")
    db_session.add(post)
    db_session.commit()
    db_session.refresh(post)
    return post


@pytest.fixture()
def failing_notification_writes(db_session: Session) -> Iterator[None]:
    """Make every flush that contains a new notification fail."""

    def _reject(session: Session, flush_context: Any, instances: Any) -> None:
        if any(isinstance(obj, Notification) for obj in session.new):
            raise OperationalError("INSERT INTO notification", {}, Exception("disk I/O error"))

    event.listen(db_session, "before_flush", _reject)
    try:
        yield
    finally:
        event.remove(db_session, "before_flush", _reject)


@pytest.fixture()
def file_engine(tmp_path) -> Iterator[Engine]:
    """File-backed SQLite engine with a real connection pool.

    Needed where several connections must see each other's commits.
    """
    engine = create_engine(
        f"sqlite:///{tmp_path / 'huddle.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
        pool_size=2,
        max_overflow=0,
        pool_timeout=2,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture()
def file_sessions(file_engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=file_engine, autocommit=False, autoflush=False)


def seed_users(sessions: sessionmaker[Session], *usernames: str) -> list[User]:
    """Insert users through ``sessions`` and return them detached but loaded."""
    with sessions() as db:
        users = [User(username=name, email=f"{name}@example.com") for name in usernames]
        db.add_all(users)
        db.commit()
        for user in users:
            db.refresh(user)
    return users
