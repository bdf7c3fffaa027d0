from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from main import app
from f1companion import models  # noqa: F401
from f1companion.database import enable_sqlite_foreign_keys, get_session
from f1companion.dependencies import get_clock
from f1companion.models import League, Team, User
from f1companion.schemas import CreateLeagueRequest
from f1companion.services.auth import create_session
from f1companion.services.leagues import create_league

# Create in-memory database for testing
TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_foreign_keys(engine)

START = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FixedClock:
    """Clock pinned to a single instant; advance() moves it forward."""

    def __init__(self, instant: datetime):
        self.instant = instant

    def now(self) -> datetime:
        return self.instant

    def advance(self, delta: timedelta) -> datetime:
        self.instant = self.instant + delta
        return self.instant


@pytest.fixture(name="session")
def session_fixture():
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="clock")
def clock_fixture():
    return FixedClock(START)


@pytest.fixture(name="client")
def client_fixture(session: Session, clock: FixedClock):
    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    app.dependency_overrides[get_clock] = lambda: clock
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="make_user")
def make_user_fixture(session: Session):
    counter = {"n": 0}

    def _make_user(first_name: str = "Test", last_name: str = "User", email: str = None) -> User:
        counter["n"] += 1
        user = User(
            email=email or f"user{counter['n']}@example.com",
            password_hash="hashed_secret",
            first_name=first_name,
            last_name=last_name,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _make_user


@pytest.fixture(name="make_team")
def make_team_fixture(session: Session):
    def _make_team(user: User, name: str = None) -> Team:
        team = Team(name=name or f"{user.first_name} Racing", user_id=user.id)
        session.add(team)
        session.commit()
        session.refresh(team)
        return team

    return _make_team


@pytest.fixture(name="make_league")
def make_league_fixture(session: Session, clock: FixedClock):
    """Create a league through the service so the owner's team is enrolled."""
    def _make_league(owner: User, name: str = "Sunday League", max_teams: int = 10, is_private: bool = False) -> League:
        response = create_league(
            session,
            CreateLeagueRequest(name=name, max_teams=max_teams, is_private=is_private),
            owner.id,
            clock,
        )
        return session.get(League, response.id)

    return _make_league


@pytest.fixture(name="auth_headers")
def auth_headers_fixture(session: Session):
    def _auth_headers(user: User) -> dict:
        token = create_session(session, user.id)
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers
