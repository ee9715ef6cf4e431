"""Tests for tenant maintenance requests and their workflow."""

import pytest
from sqlalchemy import select

from core.exceptions import ForbiddenError, InvalidInputError, NotFoundError
from models.enums import (
    MaintenanceCategory,
    MaintenancePriority,
    MaintenanceStatus,
    NotificationType,
)
from models.models import MaintenanceRequest, Notification
from schemas.schema import MaintenanceCreate, MaintenanceUpdate
from services.maintenance_service import MaintenanceService


def _leak(**overrides):
    kwargs = {
        "title": "Kitchen sink leaking",
        "description": "Water drips from the pipe under the kitchen sink all day.",
        "category": MaintenanceCategory.PLUMBING,
        "priority": MaintenancePriority.HIGH,
    }
    kwargs.update(overrides)
    return MaintenanceCreate(**kwargs)


async def _inbox(database, user_id):
    async with database.session() as s:
        return (
            await s.execute(select(Notification).where(Notification.user_id == user_id))
        ).scalars().all()


@pytest.fixture
def service(session, notifier):
    return MaintenanceService(session, notifier=notifier)


@pytest.fixture
def open_request(seed, add_tenancy, service):
    """A pending request by the tenant of unit 101."""

    async def _open(**overrides):
        await add_tenancy(unit_id=1, tenant_id=3)
        return await service.create_request(_leak(**overrides), seed.tenant)

    return _open


class TestCreateRequest:
    @pytest.mark.asyncio
    async def test_tenant_opens_request_for_rented_unit(self, service, seed, add_tenancy):
        await add_tenancy(unit_id=1, tenant_id=3)

        result = await service.create_request(_leak(unit_id=1), seed.tenant)

        assert result["status"] == "PENDING"
        assert result["category"] == "PLUMBING"
        assert result["priority"] == "HIGH"
        assert result["unit_number"] == "101"
        assert result["building_name"] == "Salmiya Towers"
        assert result["tenant_id"] == seed.tenant.id

    @pytest.mark.asyncio
    async def test_unit_defaults_to_active_tenancy(self, service, seed, add_tenancy):
        await add_tenancy(unit_id=2, tenant_id=3)

        result = await service.create_request(_leak(), seed.tenant)

        assert result["unit_id"] == 2

    @pytest.mark.asyncio
    async def test_defaults_for_category_and_priority(self, service, seed, add_tenancy):
        await add_tenancy(unit_id=1, tenant_id=3)

        result = await service.create_request(
            MaintenanceCreate(
                title="Door handle loose",
                description="The front door handle wobbles and may come off soon.",
            ),
            seed.tenant,
        )

        assert result["category"] == "OTHER"
        assert result["priority"] == "MEDIUM"

    @pytest.mark.asyncio
    async def test_unit_without_own_tenancy_is_rejected(
        self, service, database, seed, add_tenancy
    ):
        await add_tenancy(unit_id=1, tenant_id=4)

        with pytest.raises(InvalidInputError) as exc:
            await service.create_request(_leak(unit_id=1), seed.tenant)
        assert exc.value.message == "You do not have an active tenancy for this unit"

        async with database.session() as s:
            assert (await s.execute(select(MaintenanceRequest))).scalars().all() == []

    @pytest.mark.asyncio
    async def test_tenant_without_tenancy_is_rejected(self, service, seed):
        with pytest.raises(InvalidInputError) as exc:
            await service.create_request(_leak(), seed.tenant)
        assert exc.value.message == "You do not have an active tenancy"

    @pytest.mark.asyncio
    async def test_ended_tenancy_does_not_count(self, service, seed, add_tenancy):
        await add_tenancy(unit_id=1, tenant_id=3, is_active=False)

        with pytest.raises(InvalidInputError):
            await service.create_request(_leak(unit_id=1), seed.tenant)

    @pytest.mark.asyncio
    async def test_only_tenants_open_requests(self, service, seed):
        with pytest.raises(ForbiddenError):
            await service.create_request(_leak(unit_id=1), seed.admin)


class TestReadRequests:
    @pytest.mark.asyncio
    async def test_listing_is_scoped_by_role(self, service, seed, open_request):
        await open_request()

        assert (await service.list_requests(seed.admin))["pagination"]["total_items"] == 1
        assert (await service.list_requests(seed.owner))["pagination"]["total_items"] == 1
        assert (await service.list_requests(seed.tenant))["pagination"]["total_items"] == 1
        assert (await service.list_requests(seed.other_owner))["items"] == []
        assert (await service.list_requests(seed.other_tenant))["items"] == []

    @pytest.mark.asyncio
    async def test_status_filter(self, service, seed, open_request):
        await open_request()

        pending = await service.list_requests(seed.admin, status=MaintenanceStatus.PENDING)
        done = await service.list_requests(seed.admin, status=MaintenanceStatus.COMPLETED)

        assert len(pending["items"]) == 1
        assert done["items"] == []

    @pytest.mark.asyncio
    async def test_other_tenant_cannot_read(self, service, seed, open_request):
        created = await open_request()

        with pytest.raises(ForbiddenError):
            await service.get_request(created["id"], seed.other_tenant)

    @pytest.mark.asyncio
    async def test_other_owner_cannot_read(self, service, seed, open_request):
        created = await open_request()

        with pytest.raises(ForbiddenError):
            await service.get_request(created["id"], seed.other_owner)

    @pytest.mark.asyncio
    async def test_missing(self, service, seed):
        with pytest.raises(NotFoundError):
            await service.get_request(99, seed.admin)


class TestUpdateRequest:
    @pytest.mark.asyncio
    async def test_owner_moves_request_along_and_tenant_is_told(
        self, service, database, seed, open_request
    ):
        created = await open_request()

        result = await service.update_request(
            created["id"],
            MaintenanceUpdate(status=MaintenanceStatus.IN_PROGRESS),
            seed.owner,
        )

        assert result["status"] == "IN_PROGRESS"
        assert result["resolved_at"] is None
        (note,) = await _inbox(database, seed.tenant.id)
        assert note.type == NotificationType.MAINTENANCE
        assert note.link == f"/maintenance/{created['id']}"
        assert note.message == (
            'Your maintenance request "Kitchen sink leaking" for Unit 101, '
            "Salmiya Towers is now in progress."
        )
        assert note.extra["status"] == "IN_PROGRESS"

    @pytest.mark.asyncio
    async def test_completion_records_resolver(self, service, seed, open_request):
        created = await open_request()

        result = await service.update_request(
            created["id"],
            MaintenanceUpdate(
                status=MaintenanceStatus.COMPLETED, resolution_notes="Replaced the seal."
            ),
            seed.admin,
        )

        assert result["status"] == "COMPLETED"
        assert result["resolved_by"] == seed.admin.id
        assert result["resolved_at"] is not None
        assert result["resolution_notes"] == "Replaced the seal."

    @pytest.mark.asyncio
    async def test_priority_change_sends_nothing(self, service, database, seed, open_request):
        created = await open_request()

        result = await service.update_request(
            created["id"], MaintenanceUpdate(priority=MaintenancePriority.URGENT), seed.admin
        )

        assert result["priority"] == "URGENT"
        assert await _inbox(database, seed.tenant.id) == []

    @pytest.mark.asyncio
    async def test_tenant_cancels_own_pending_request(
        self, service, database, seed, open_request
    ):
        created = await open_request()

        result = await service.update_request(
            created["id"], MaintenanceUpdate(status=MaintenanceStatus.CANCELLED), seed.tenant
        )

        assert result["status"] == "CANCELLED"
        assert await _inbox(database, seed.tenant.id) == []

    @pytest.mark.asyncio
    async def test_tenant_can_only_cancel(self, service, seed, open_request):
        created = await open_request()

        with pytest.raises(InvalidInputError) as exc:
            await service.update_request(
                created["id"], MaintenanceUpdate(status=MaintenanceStatus.COMPLETED), seed.tenant
            )
        assert exc.value.message == "You can only cancel pending requests"

    @pytest.mark.asyncio
    async def test_tenant_cannot_cancel_after_work_started(self, service, seed, open_request):
        created = await open_request()
        await service.update_request(
            created["id"], MaintenanceUpdate(status=MaintenanceStatus.IN_PROGRESS), seed.admin
        )

        with pytest.raises(InvalidInputError):
            await service.update_request(
                created["id"], MaintenanceUpdate(status=MaintenanceStatus.CANCELLED), seed.tenant
            )

    @pytest.mark.asyncio
    async def test_other_owner_is_forbidden(self, service, seed, open_request):
        created = await open_request()

        with pytest.raises(ForbiddenError):
            await service.update_request(
                created["id"],
                MaintenanceUpdate(status=MaintenanceStatus.IN_PROGRESS),
                seed.other_owner,
            )

    @pytest.mark.asyncio
    async def test_empty_update_is_rejected(self, service, seed, open_request):
        created = await open_request()

        with pytest.raises(InvalidInputError):
            await service.update_request(created["id"], MaintenanceUpdate(), seed.admin)

    @pytest.mark.asyncio
    async def test_null_status_is_invalid_input(self, service, seed, open_request):
        created = await open_request()

        with pytest.raises(InvalidInputError) as exc:
            await service.update_request(
                created["id"], MaintenanceUpdate(status=None), seed.admin
            )
        assert exc.value.message == "status cannot be null"


class TestDeleteRequest:
    @pytest.mark.asyncio
    async def test_admin_deletes(self, service, database, seed, open_request):
        created = await open_request()

        result = await service.delete_request(created["id"], seed.admin)

        assert result == {"message": "Maintenance request deleted"}
        async with database.session() as s:
            assert await s.get(MaintenanceRequest, created["id"]) is None

    @pytest.mark.asyncio
    async def test_owner_cannot_delete(self, service, seed, open_request):
        created = await open_request()

        with pytest.raises(ForbiddenError):
            await service.delete_request(created["id"], seed.owner)
