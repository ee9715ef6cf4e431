import logging
from datetime import datetime, timezone

from core.check_permission import CheckRolePermission
from core.exceptions import ForbiddenError, InvalidInputError, NotFoundError
from core.paginate import PaginatePage
from models.enums import MaintenancePriority, MaintenanceStatus, UserRole
from models.models import MaintenanceRequest
from repos.maintenance_repo import MaintenanceRecord, MaintenanceRepo
from repos.tenancy_repo import TenancyRepo
from schemas.schema import MaintenanceCreate, MaintenanceOut, MaintenanceUpdate
from services.notification_service import NotificationEmitter, emit_quietly

logger = logging.getLogger(__name__)


class MaintenanceService:
    """Maintenance requests raised by tenants against the units they rent.

    Tenants open requests and may cancel their own while still pending.
    Admins and building owners move them through the workflow; each status
    change they make is announced to the tenant.
    """

    def __init__(self, db, notifier: NotificationEmitter | None = None):
        self.db = db
        self.repo: MaintenanceRepo = MaintenanceRepo(db)
        self.tenancy_repo: TenancyRepo = TenancyRepo(db)
        self.notifier: NotificationEmitter = notifier or NotificationEmitter()
        self.permission: CheckRolePermission = CheckRolePermission()
        self.paginate: PaginatePage = PaginatePage()

    async def _get_with_access(self, request_id: int, current_user) -> MaintenanceRecord:
        record = await self.repo.get_detail(request_id)
        if not record:
            raise NotFoundError("Maintenance request not found")
        if current_user.role == UserRole.TENANT:
            if record.request.tenant_id != current_user.id:
                raise ForbiddenError()
        else:
            await self.permission.check_building_access(current_user, record.building)
        return record

    async def _detail_out(self, request_id: int) -> dict:
        record = await self.repo.get_detail(request_id)
        return MaintenanceOut.from_record(record).model_dump(mode="json")

    async def create_request(self, data: MaintenanceCreate, current_user):
        if current_user.role != UserRole.TENANT:
            raise ForbiddenError("Only tenants can open maintenance requests")

        tenancy = await self.tenancy_repo.find_active_for_tenant(
            current_user.id, data.unit_id
        )
        if not tenancy:
            if data.unit_id is not None:
                raise InvalidInputError("You do not have an active tenancy for this unit")
            raise InvalidInputError("You do not have an active tenancy")

        request = await self.repo.create(
            MaintenanceRequest(
                tenant_id=current_user.id,
                unit_id=tenancy.unit_id,
                title=data.title,
                description=data.description,
                category=data.category,
                priority=data.priority,
                status=MaintenanceStatus.PENDING,
            )
        )
        await self.repo.db_commit()

        logger.info(
            "Maintenance request %s opened by tenant %s for unit %s",
            request.id,
            current_user.id,
            tenancy.unit_id,
        )
        return await self._detail_out(request.id)

    async def list_requests(
        self,
        current_user,
        page: int = 1,
        limit: int = 20,
        building_id: int | None = None,
        status: MaintenanceStatus | None = None,
        priority: MaintenancePriority | None = None,
    ):
        await self.permission.check_authenticated(current_user)
        filters = {
            "building_id": building_id,
            "status": status,
            "priority": priority,
            **self.permission.scope_filters(current_user),
        }
        records = await self.repo.find_all(
            limit, self.paginate.offset(page, limit), **filters
        )
        total = await self.repo.count(**filters)
        return self.paginate.envelope(
            self.paginate.get_list_json_dumps(MaintenanceOut.from_record(r) for r in records),
            page,
            limit,
            total,
        )

    async def get_request(self, request_id: int, current_user):
        record = await self._get_with_access(request_id, current_user)
        return MaintenanceOut.from_record(record).model_dump(mode="json")

    async def update_request(self, request_id: int, data: MaintenanceUpdate, current_user):
        record = await self._get_with_access(request_id, current_user)
        request = record.request
        previous_status = request.status

        values = data.changes()
        if not values:
            raise InvalidInputError("At least one field must be provided for update")

        if current_user.role == UserRole.TENANT and (
            previous_status != MaintenanceStatus.PENDING
            or values != {"status": MaintenanceStatus.CANCELLED}
        ):
            raise InvalidInputError("You can only cancel pending requests")

        new_status = values.get("status")
        if new_status == MaintenanceStatus.COMPLETED:
            values["resolved_by"] = current_user.id
            values["resolved_at"] = datetime.now(timezone.utc)

        await self.repo.update(request_id, values)
        await self.repo.db_commit()
        logger.info(
            "Maintenance request %s updated by user %s: %s",
            request_id,
            current_user.id,
            sorted(values),
        )

        if (
            new_status is not None
            and new_status != previous_status
            and current_user.id != request.tenant_id
        ):
            await emit_quietly(
                self.notifier.send_maintenance_update,
                user_id=request.tenant_id,
                request_id=request_id,
                title=request.title,
                status=new_status,
                unit_number=record.unit.unit_number,
                building_name=record.building.name,
            )
        return await self._detail_out(request_id)

    async def delete_request(self, request_id: int, current_user):
        await self.permission.check_admin(current_user)
        if not await self.repo.get_detail(request_id):
            raise NotFoundError("Maintenance request not found")

        await self.repo.delete(request_id)
        await self.repo.db_commit()

        logger.info("Maintenance request %s deleted", request_id)
        return {"message": "Maintenance request deleted"}
