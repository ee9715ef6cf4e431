"""
Shared fixtures for the Property Desk test suite.

Every test gets a fresh SQLite database (through aiosqlite) built from the
same metadata as production, so the partial unique index and the unique
constraints are enforced for real. The Tahseeel gateway is never contacted:
clients are built on top of ``httpx.MockTransport``.
"""

from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import httpx
import pytest
import pytest_asyncio

from core.get_db import Database
from fintechs.tahseeel import TahseeelClient
from models.enums import UnitStatus, UserRole
from models.models import Building, Tenancy, Unit, User
from services.notification_service import NotificationEmitter

GATEWAY_URL = "https://lounge.tahseeel.test/api/"
CALLBACK_URL = "https://desk.test/v1/payments/tahseeel/callback"


# ---------------------------------------------------------------------------
# Storage fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def database(tmp_path):
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'propertydesk.db'}").connect()
    await db.create_all()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def session(database):
    async with database.session() as s:
        yield s


@pytest_asyncio.fixture
async def seed(database):
    """Three roles, two buildings with different owners, four units."""
    async with database.session() as s:
        admin = User(
            id=1, email="admin@desk.test", first_name="Ada", last_name="Admin",
            role=UserRole.ADMIN,
        )
        owner = User(
            id=2, email="owner@desk.test", first_name="Omar", last_name="Owner",
            role=UserRole.OWNER,
        )
        tenant = User(
            id=3, email="tenant@desk.test", first_name="Tala", last_name="Tenant",
            phone="55512345", role=UserRole.TENANT,
        )
        other_tenant = User(
            id=4, email="second@desk.test", first_name="Sami", last_name="Second",
            role=UserRole.TENANT,
        )
        other_owner = User(
            id=5, email="rival@desk.test", first_name="Rana", last_name="Rival",
            role=UserRole.OWNER,
        )
        s.add_all([admin, owner, tenant, other_tenant, other_owner])
        await s.flush()

        building = Building(
            id=1, owner_id=owner.id, name="Salmiya Towers",
            address="Block 10, Street 5", city="Salmiya", country="Kuwait",
        )
        other_building = Building(
            id=2, owner_id=other_owner.id, name="Hawally Court",
            address="Block 2, Street 1", city="Hawally", country="Kuwait",
        )
        s.add_all([building, other_building])
        await s.flush()

        units = [
            Unit(id=1, building_id=1, unit_number="101", floor=1, rent_amount=Decimal("1500.000")),
            Unit(id=2, building_id=1, unit_number="102", floor=1, rent_amount=Decimal("1200.000")),
            Unit(id=3, building_id=1, unit_number="201", floor=2, rent_amount=Decimal("1750.500")),
            Unit(id=4, building_id=2, unit_number="A1", floor=0, rent_amount=Decimal("900.000")),
        ]
        for unit in units:
            unit.status = UnitStatus.AVAILABLE
        s.add_all(units)
        await s.commit()

    return SimpleNamespace(
        admin=admin,
        owner=owner,
        tenant=tenant,
        other_tenant=other_tenant,
        other_owner=other_owner,
        building=building,
        other_building=other_building,
        units=units,
    )


@pytest.fixture
def add_tenancy(database):
    """Insert a tenancy directly and mirror it on the unit, bypassing the ledger."""

    async def _add(
        unit_id,
        tenant_id,
        start=date(2024, 1, 1),
        end=date(2024, 12, 31),
        rent=Decimal("1500.000"),
        is_active=True,
        tenancy_id=None,
    ):
        async with database.session() as s:
            tenancy = Tenancy(
                id=tenancy_id,
                unit_id=unit_id,
                tenant_id=tenant_id,
                start_date=start,
                end_date=end,
                monthly_rent=rent,
                deposit_amount=Decimal("0"),
                is_active=is_active,
            )
            s.add(tenancy)
            if is_active:
                unit = await s.get(Unit, unit_id)
                unit.status = UnitStatus.RENTED
            await s.commit()
            return tenancy

    return _add


# ---------------------------------------------------------------------------
# Collaborator fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def notifier(database):
    return NotificationEmitter(database.session)


@pytest.fixture
def make_gateway():
    """Build a configured Tahseeel client whose HTTP calls hit ``handler``."""

    def _make(handler, **overrides):
        kwargs = {
            "uid": "merchant_uid",
            "pwd": "merchant_pwd",
            "secret": "merchant_secret",
            "api_url": GATEWAY_URL,
            "callback_url": CALLBACK_URL,
            "timeout": 2.0,
            "transport": httpx.MockTransport(handler),
        }
        kwargs.update(overrides)
        return TahseeelClient(**kwargs)

    return _make


@pytest.fixture
def gateway_link_handler():
    """Gateway that answers every order with a link carrying hash H123 / id INV9."""
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(
            200,
            json={
                "error": False,
                "msg": "Order created",
                "link": "https://pay.example/x?hash=H123&id=INV9",
            },
        )

    handler.calls = calls
    return handler
