from typing import List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from requestdesk import config as config_module
from requestdesk.api.dependencies import get_tmdb_service
from requestdesk.config import Config
from requestdesk.core.permissions import Permission
from requestdesk.db.database import get_db
from requestdesk.db.models import Base, User
from requestdesk.main import create_app
from requestdesk.services.tmdb import (
    TmdbError,
    TmdbExternalIds,
    TmdbMovieDetails,
    TmdbSeason,
    TmdbTvDetails,
)


class FakeTmdb:
    """Stands in for TmdbService; records every lookup."""

    def __init__(self):
        self.calls: List[tuple] = []
        self.fail_with: Optional[str] = None
        self.tvdb_ids = {}

    async def get_movie(self, movie_id: int) -> TmdbMovieDetails:
        self.calls.append(("movie", movie_id))
        if self.fail_with:
            raise TmdbError(self.fail_with)
        return TmdbMovieDetails(
            id=movie_id,
            title=f"Movie {movie_id}",
            external_ids=TmdbExternalIds(imdb_id=f"tt{movie_id:07d}"),
        )

    async def get_tv_show(self, tv_id: int) -> TmdbTvDetails:
        self.calls.append(("tv", tv_id))
        if self.fail_with:
            raise TmdbError(self.fail_with)
        return TmdbTvDetails(
            id=tv_id,
            name=f"Show {tv_id}",
            number_of_seasons=5,
            seasons=[TmdbSeason(season_number=n) for n in range(1, 6)],
            external_ids=TmdbExternalIds(tvdb_id=self.tvdb_ids.get(tv_id, 70000 + tv_id)),
        )

    async def ping(self) -> bool:
        if self.fail_with:
            raise TmdbError(self.fail_with)
        return True


@pytest.fixture(autouse=True)
def app_config(monkeypatch):
    """Default config for every test (no YAML file)."""
    cfg = Config(tmdb=None)
    monkeypatch.setattr(config_module, "config", cfg)
    return cfg


@pytest.fixture
def db_session():
    """Create in-memory database for testing"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = SessionLocal()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def make_user(db_session):
    counter = {"n": 0}

    def _make_user(*permissions: Permission, name: Optional[str] = None) -> User:
        counter["n"] += 1
        name = name or f"user{counter['n']}"
        mask = Permission.NONE
        for permission in permissions:
            mask |= permission
        user = User(
            email=f"{name}@example.com",
            username=name,
            api_key=f"key-{name}",
            permissions=int(mask),
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make_user


@pytest.fixture
def fake_tmdb():
    return FakeTmdb()


@pytest.fixture
def client(db_session, fake_tmdb):
    app = create_app(use_lifespan=False)

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_tmdb_service] = lambda: fake_tmdb
    return TestClient(app)
