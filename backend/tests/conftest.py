import os
import sys
import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))


@pytest.fixture(scope="session")
def session_loop():
    """Single event loop for all sync fixtures that need to run async DB code."""

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    yield loop
    loop.close()

# Ensure all SQLAlchemy models are registered with the declarative Base so
# metadata.create_all creates every table when the test database is initialised.
from groupladder import db, models  # noqa: F401
from groupladder.cache import stats_cache
from groupladder.models import FriendGroup, Player, Season

# main.py refuses to import without explicit CORS origins.
os.environ.setdefault("ALLOWED_ORIGINS", "http://testserver")
os.environ.setdefault("ALLOW_CREDENTIALS", "false")
# Honour any externally provided DATABASE_URL (e.g. CI may set a file-backed DB)
# but fall back to an in-memory SQLite database so local runs remain isolated.
DEFAULT_DB_URL = os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")


@pytest.fixture(autouse=True, scope="session")
def ensure_database(session_loop):
    """Ensure the test database starts clean and honours DATABASE_URL."""

    mp = pytest.MonkeyPatch()
    desired_url = os.getenv("DATABASE_URL") or DEFAULT_DB_URL
    mp.setenv("DATABASE_URL", desired_url)

    if desired_url.startswith("sqlite") and ":memory:" not in desired_url:
        path = desired_url.split("///")[-1]
        if os.path.exists(path):
            os.remove(path)

    db.engine = None
    db.AsyncSessionLocal = None
    yield
    if db.engine is not None:
        session_loop.run_until_complete(db.engine.dispose())
        db.engine = None

    if db.AsyncSessionLocal is not None:
        db.AsyncSessionLocal = None
    mp.undo()


async def _reset_schema(engine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(db.Base.metadata.drop_all)
        await conn.run_sync(db.Base.metadata.create_all)


@pytest.fixture(autouse=True)
def reset_schema(request, session_loop):
    """Reset the schema before each test unless preserved via marker."""

    if request.node.get_closest_marker("preserve_schema"):
        yield
        return

    engine = db.engine or db.get_engine()
    session_loop.run_until_complete(_reset_schema(engine))
    yield


@pytest.fixture(autouse=True)
def clear_stats_cache(session_loop):
    """Cache keys are only unique per database, so every test starts empty."""

    session_loop.run_until_complete(stats_cache.clear())
    yield
    session_loop.run_until_complete(stats_cache.clear())


LADDER_START = datetime(2024, 5, 1, 18, 0, tzinfo=timezone.utc)


async def _seed_ladder(session_maker) -> None:
    async with session_maker() as session:
        session.add_all(
            [
                FriendGroup(
                    id="g1",
                    name="Office",
                    sport_type="foosball",
                    supported_match_types=["1v1", "2v2"],
                ),
                FriendGroup(
                    id="g2",
                    name="Chess club",
                    sport_type="chess",
                    supported_match_types=["1v1"],
                ),
            ]
        )
        session.add_all(
            [
                Season(
                    id="s0",
                    group_id="g1",
                    name="Season 0",
                    season_number=0,
                    is_active=False,
                    start_date=LADDER_START - timedelta(days=90),
                    end_date=LADDER_START - timedelta(days=1),
                ),
                Season(
                    id="s1",
                    group_id="g1",
                    name="Season 1",
                    season_number=1,
                    is_active=True,
                    start_date=LADDER_START,
                ),
                Season(
                    id="s2",
                    group_id="g2",
                    name="Season 1",
                    season_number=1,
                    is_active=True,
                    start_date=LADDER_START,
                ),
            ]
        )
        session.add_all(
            [
                Player(id=pid, group_id="g1", name=pid.title())
                for pid in ("alice", "bob", "carol", "dave")
            ]
            + [
                Player(id="kasparov", group_id="g2", name="Garry"),
                Player(id="karpov", group_id="g2", name="Anatoly"),
            ]
        )
        await session.commit()


@pytest.fixture()
def ladder():
    """Isolated database with two friend groups.

    ``g1`` plays 1v1 and 2v2 with players alice, bob, carol and dave; ``s0``
    is its archived season and ``s1`` the active one. ``g2`` only plays 1v1
    (season ``s2``, players kasparov and karpov).
    """

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async_session_maker = sessionmaker(
        engine, expire_on_commit=False, class_=AsyncSession
    )

    async def init_models():
        async with engine.begin() as conn:
            await conn.run_sync(db.Base.metadata.create_all)
        await _seed_ladder(async_session_maker)

    asyncio.run(init_models())
    try:
        yield async_session_maker
    finally:
        asyncio.run(engine.dispose())


@pytest.fixture()
def api_client(ladder):
    """TestClient for the full app with sessions bound to the ``ladder`` database."""

    from groupladder.main import app

    async def override_get_session():
        async with ladder() as session:
            yield session

    app.dependency_overrides[db.get_session] = override_get_session
    try:
        with TestClient(app) as client:
            yield client
    finally:
        app.dependency_overrides.pop(db.get_session, None)
