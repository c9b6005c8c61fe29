"""
Shared fixtures for the GP rules test suite.
"""

import os

# The API module builds its engine at import time; keep it in memory.
os.environ.setdefault("GP_DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from gp_rules import AllGp, Between, GreaterThan, LessThan
from rule_store import RuleStore, init_schema


@pytest.fixture
def engine():
    """In-memory SQLite engine shared across threads."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False)


@pytest.fixture
def store(session_factory):
    return RuleStore(session_factory, cache_ttl=60)


@pytest.fixture
def tiered_rules():
    """Under £13 at 75%, £13-£20 sliding 75% -> 72%, £20 and up at 72%."""
    return [
        LessThan(max=13, gp=75),
        Between(min=13, max=20, start_gp=75, end_gp=72),
        GreaterThan(min=20, gp=72),
    ]


@pytest.fixture
def gapped_rules():
    return [LessThan(max=10, gp=80), GreaterThan(min=15, gp=60)]


@pytest.fixture
def universal_rules():
    return [AllGp(gp=70)]
