from typing import Dict

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from innkeeper.cluster.application import ICoordinatorProbe
from innkeeper.cluster.domain import CoordinatorProbeResult
from innkeeper.cluster.infrastructure import ClusterConfigManager
from innkeeper.cluster.infrastructure import models as _cluster_models  # noqa: F401
from innkeeper.cluster.interfaces.controllers import get_cluster_config, get_coordinator_probe
from innkeeper.core import PeerUnreachableException
from innkeeper.infrastructure.database import Base, get_session
from innkeeper.main import app
from innkeeper.reservations.infrastructure import models as _reservation_models  # noqa: F401

# Tue, 14 Nov 2023 22:13:20 UTC
T0 = 1_700_000_000


class FixedClock:
    """Settable clock returning whole Unix seconds."""

    def __init__(self, now: int = T0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


class FakeProbe(ICoordinatorProbe):
    """In-memory probe: address -> True/False, or unreachable when absent."""

    def __init__(self, answers: Dict[str, bool] = None):
        self.answers = answers or {}
        self.calls = []

    async def query_coordinator_flag(self, address: str) -> CoordinatorProbeResult:
        self.calls.append(address)
        if address not in self.answers:
            raise PeerUnreachableException(address, "connection refused")
        return CoordinatorProbeResult(reachable=True, is_coordinator=self.answers[address])


@pytest.fixture
def clock():
    return FixedClock()


@pytest_asyncio.fixture
async def db_session():
    """In-memory SQLite session with all tables created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def cluster_config():
    """Config manager that was never loaded; reports its default flag."""
    return ClusterConfigManager(default_coordinator=True)


@pytest.fixture
def fake_probe():
    return FakeProbe()


@pytest_asyncio.fixture
async def client(db_session, cluster_config, fake_probe):
    """HTTP client with test database"""

    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_cluster_config] = lambda: cluster_config
    app.dependency_overrides[get_coordinator_probe] = lambda: fake_probe

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
