"""
Shared fixtures: a file-backed SQLite ledger, a frozen clock and a team of three.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./splitledger-test.db")

import pytest
from datetime import datetime
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from splitledger.core.cache import MemoryCache
from splitledger.core.clock import FixedClock
from splitledger.db.base import Base
import splitledger.models  # noqa: F401
from splitledger.services import team_service


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'ledger.db'}",
        connect_args={"check_same_thread": False}
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    return FixedClock(datetime(2026, 1, 15, 9, 30))


@pytest.fixture
def cache():
    return MemoryCache()


@pytest.fixture
def make_user(db):
    def _make_user(name):
        return team_service.create_user(db, name, f"{name.lower()}@example.com")
    return _make_user


@pytest.fixture
def members(make_user):
    """Ana, Ben and Cai, created in that order so ids ascend."""
    return make_user("Ana"), make_user("Ben"), make_user("Cai")


@pytest.fixture
def team(db, members, clock):
    ana, ben, cai = members
    team = team_service.create_team(db, "Thesis Group", ana.id, clock=clock)
    team_service.add_member(db, team.id, ben.id)
    team_service.add_member(db, team.id, cai.id)
    return team
