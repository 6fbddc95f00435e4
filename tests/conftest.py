"""
Shared pytest fixtures for the compliance tests.

CRITICAL: Database patching must occur at module-import time so SQLite
engine creation (without pool_size/max_overflow params) happens before
api.database is imported anywhere. The _patched_create_engine wrapper
strips pool params that are invalid for SQLite.
"""

import os
import sys
from decimal import Decimal
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

# ---------------------------------------------------------------------------
# Section 1: Environment setup (before ANY api.* imports)
# ---------------------------------------------------------------------------
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("DB_ECHO", "false")
os.environ.setdefault("SEED_ON_STARTUP", "false")
os.environ.setdefault("LEDGER_SCOPE_BY_YEAR", "false")

# ---------------------------------------------------------------------------
# Section 2: Patch SQLAlchemy engine creation for SQLite compatibility
# ---------------------------------------------------------------------------
from sqlalchemy import create_engine as _real_create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool


def _patched_create_engine(url, **kwargs):
    """Create engine, stripping pool params invalid for SQLite.

    Uses StaticPool so all connections share the same in-memory database.
    """
    if str(url).startswith("sqlite"):
        kwargs.pop("pool_size", None)
        kwargs.pop("max_overflow", None)
        kwargs.pop("pool_pre_ping", None)
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        kwargs["poolclass"] = StaticPool
    return _real_create_engine(url, **kwargs)


# Apply patch before api.database is imported
_patcher = patch("sqlalchemy.create_engine", _patched_create_engine)
_patcher.start()

# Clear any cached api.database imports so patch takes effect
for _mod in list(sys.modules.keys()):
    if _mod.startswith("api.database"):
        del sys.modules[_mod]

from api.database import Base, get_db, engine as test_engine  # noqa: E402
import api.models  # noqa: E402,F401 ensure all ORM models are registered

TestingSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=test_engine
)

# ---------------------------------------------------------------------------
# Section 3: Core database + client fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def db():
    """Fresh schema per test.

    The service commits and rolls back its own transactions, so isolation
    comes from recreating the tables rather than an outer transaction.
    """
    Base.metadata.create_all(bind=test_engine)
    session = TestingSessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def client(db):
    """Create a FastAPI TestClient with database dependency override."""
    from api.main import app

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def reset_metrics():
    """Operation counters are process-global."""
    from api.middleware import metrics_collector
    from src.metrics import metrics

    metrics.reset()
    metrics_collector.reset()
    yield


# ---------------------------------------------------------------------------
# Section 4: Compliance fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def seeded_db(db):
    """Session with the five reference routes loaded."""
    from api.seed import seed_routes

    seed_routes(db)
    return db


@pytest.fixture
def service(seeded_db):
    """ComplianceService over the seeded session, ledger netted across years."""
    from api.repositories import SqlAlchemyUnitOfWork
    from src.compliance.service import ComplianceService

    return ComplianceService(SqlAlchemyUnitOfWork(seeded_db))


@pytest.fixture
def add_route(db):
    """Factory for extra route rows."""
    from api.repositories import RouteRepository

    def _add(route_id, year, ghg_intensity, fuel_consumption="1000",
             vessel_type="Container", fuel_type="HFO"):
        route = RouteRepository(db).add(
            route_id=route_id,
            vessel_type=vessel_type,
            fuel_type=fuel_type,
            year=year,
            ghg_intensity=Decimal(str(ghg_intensity)),
            fuel_consumption=Decimal(str(fuel_consumption)),
            distance=Decimal("1000"),
            total_emissions=Decimal("1000"),
            is_baseline=False,
        )
        db.commit()
        return route

    return _add
