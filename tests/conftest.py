"""Shared fixtures: in-memory database, fake gateway, API client."""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.core.immutability import register_immutability_enforcement
from app.core.security import create_access_token
from app.database import Base, get_db
from app.gateways.base import (
    GatewayEvent,
    GatewayType,
    InitializeResult,
    PaymentGateway,
    ReportedStatus,
    VerifyResult,
)
from app.main import app as fastapi_app
from app.schemas.trip import TripCreate
from app.services.gateway_service import gateway_service
from app.services.trip_service import trip_service


class FakeGateway(PaymentGateway):
    """In-memory gateway: initialize succeeds, verify answers from a table."""

    def __init__(self):
        self.initialized: list[dict] = []
        self.verify_results: dict[str, VerifyResult] = {}
        self.verify_calls: list[str] = []
        self.initialize_error: Exception | None = None
        self.verify_error: Exception | None = None
        self.decline_initialize = False

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.PAYSTACK

    async def initialize_payment(
        self,
        amount: int,
        currency: str,
        reference: str,
        email: str,
        callback_url: str,
        metadata: dict | None = None,
    ) -> InitializeResult:
        if self.initialize_error:
            raise self.initialize_error
        if self.decline_initialize:
            return InitializeResult(success=False, reference=reference, error_message="Declined")
        self.initialized.append({"amount": amount, "reference": reference, "email": email})
        return InitializeResult(
            success=True,
            reference=reference,
            authorization_url=f"https://checkout.test/{reference}",
        )

    async def verify_payment(self, reference: str) -> VerifyResult:
        self.verify_calls.append(reference)
        if self.verify_error:
            raise self.verify_error
        return self.verify_results.get(
            reference, VerifyResult(status=ReportedStatus.PENDING, reference=reference)
        )

    def report(self, reference: str, status: ReportedStatus, amount: int | None, **kwargs) -> None:
        self.verify_results[reference] = VerifyResult(
            status=status, reference=reference, amount=amount, **kwargs
        )

    def verify_webhook(self, payload: bytes, signature: str | None) -> dict | None:
        return None

    def parse_event(self, data: dict) -> GatewayEvent | None:
        return None


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # pysqlite/aiosqlite need explicit BEGIN for SAVEPOINT to behave
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest.fixture
async def db(engine) -> AsyncGenerator[AsyncSession, None]:
    register_immutability_enforcement()
    session_maker = async_sessionmaker(engine, expire_on_commit=False)
    async with session_maker() as session:
        yield session


@pytest.fixture(autouse=True)
def fake_gateway() -> FakeGateway:
    gateway = FakeGateway()
    gateway_service.register(gateway)
    yield gateway
    gateway_service.reset()


@pytest.fixture
async def client(db: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """API client sharing the test session."""

    async def override_get_db():
        try:
            yield db
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    fastapi_app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=fastapi_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    fastapi_app.dependency_overrides.clear()


def auth_headers(user_id: str = "user-1", role: str = "customer", email: str = "rider@example.com") -> dict:
    token = create_access_token({"sub": user_id, "email": email, "role": role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers() -> dict:
    return auth_headers(user_id="admin-1", role="admin", email="ops@example.com")


@pytest.fixture
async def trip(db: AsyncSession):
    """Trip T1: four seats A1, B1, B2, B3 at 2500 per seat, departing in three days."""
    trip = await trip_service.create_trip(
        db,
        TripCreate(
            origin="Lagos",
            destination="Ibadan",
            departure_time=datetime.now(UTC) + timedelta(days=3),
            arrival_time=datetime.now(UTC) + timedelta(days=3, hours=2),
            price=2500,
            max_passengers=4,
            seat_layout="front_row",
        ),
    )
    await db.commit()
    return trip
