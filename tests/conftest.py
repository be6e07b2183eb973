"""Pytest configuration and shared fixtures."""

import pytest

from groupacl.core.rbac.catalog import StaticCatalogSource
from groupacl.core.rbac.engine import PolicyEngine, reset_engine
from groupacl.core.rbac.membership import StaticMembershipResolver
from groupacl.core.rbac.sources import InMemoryGroupStore, InMemoryRuleStore
from groupacl.db.session import init_db, make_engine, make_session_factory


# Group tree used by most tests:
#
#   1 root
#   +-- 2 editor
#   |   +-- 4 author
#   +-- 3 guest
SAMPLE_GROUPS = [
    {"id": 1, "parent_id": 0, "title": "root"},
    {"id": 2, "parent_id": 1, "title": "editor"},
    {"id": 4, "parent_id": 2, "title": "author"},
    {"id": 3, "parent_id": 1, "title": "guest"},
]

SAMPLE_CATALOG = {
    "app": ["admin", "login"],
    "blog": ["view", "publish"],
    "forum": ["post", "delete"],
}

SAMPLE_RULES = {
    "app": {"admin": ["1"], "login": ["1", "2", "4"]},
    "blog": {"view": ["1", "2", "3", "4"], "publish": ["2"]},
}

SAMPLE_MEMBERSHIPS = {
    "alice": [2],
    "bob": [3],
    "carol": [1, 3],
    "dave": [4, 2, 2],
}


@pytest.fixture
def sample_groups():
    return [dict(g) for g in SAMPLE_GROUPS]


@pytest.fixture
def sample_catalog():
    return StaticCatalogSource(SAMPLE_CATALOG)


@pytest.fixture
def engine_factory():
    """Factory for in-memory policy engines; every argument has a sample default."""

    def factory(
        groups=None,
        rules=None,
        catalog=None,
        memberships=None,
        resolver=None,
        guest_role_id=3,
        **kwargs,
    ) -> PolicyEngine:
        if resolver is None:
            resolver = StaticMembershipResolver(
                SAMPLE_MEMBERSHIPS if memberships is None else memberships
            )
        return PolicyEngine(
            InMemoryGroupStore(SAMPLE_GROUPS if groups is None else groups),
            InMemoryRuleStore(SAMPLE_RULES if rules is None else rules),
            StaticCatalogSource(SAMPLE_CATALOG if catalog is None else catalog),
            resolver,
            guest_role_id=guest_role_id,
            **kwargs,
        )

    return factory


@pytest.fixture
def policy_engine(engine_factory):
    return engine_factory()


@pytest.fixture(autouse=True)
def _reset_process_engine():
    yield
    reset_engine()


# ---------------------------------------------------------------------------
# Database fixtures (in-memory SQLite)
# ---------------------------------------------------------------------------


@pytest.fixture
def db_engine():
    engine = make_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return make_session_factory(db_engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()
