import logging

from sqlalchemy.exc import IntegrityError

from core.check_permission import CheckRolePermission
from core.exceptions import ConflictError, InvalidInputError, NotFoundError
from core.paginate import PaginatePage
from models.enums import UnitStatus
from models.models import Unit
from repos.building_repo import BuildingRepo
from repos.tenancy_repo import TenancyRepo
from repos.unit_repo import UnitRepo
from schemas.schema import UnitCreate, UnitOut, UnitUpdate

logger = logging.getLogger(__name__)


class UnitService:
    def __init__(self, db):
        self.db = db
        self.repo: UnitRepo = UnitRepo(db)
        self.building_repo: BuildingRepo = BuildingRepo(db)
        self.tenancy_repo: TenancyRepo = TenancyRepo(db)
        self.permission: CheckRolePermission = CheckRolePermission()
        self.paginate: PaginatePage = PaginatePage()

    async def _get_with_access(self, unit_id: int, current_user):
        row = await self.repo.get_with_building(unit_id)
        if not row:
            raise NotFoundError("Unit not found")
        unit, building = row
        await self.permission.check_building_access(current_user, building)
        return unit

    async def create_unit(self, data: UnitCreate, current_user):
        await self.permission.check_admin(current_user)
        if not await self.building_repo.get_by_id(data.building_id):
            raise NotFoundError("Building not found")

        # New units are never RENTED; only the tenancy ledger sets that.
        unit = Unit(**data.model_dump(), status=UnitStatus.AVAILABLE)
        try:
            await self.repo.create(unit)
            await self.repo.db_commit()
        except IntegrityError:
            await self.repo.db_rollback()
            raise ConflictError("Unit number already exists in this building")

        logger.info("Unit %s created in building %s", unit.id, data.building_id)
        return UnitOut.model_validate(unit).model_dump(mode="json")

    async def list_units(
        self,
        current_user,
        page: int = 1,
        limit: int = 20,
        building_id: int | None = None,
        status: UnitStatus | None = None,
    ):
        await self.permission.check_admin_or_owner(current_user)
        filters = {
            "building_id": building_id,
            "status": status,
            **self.permission.scope_filters(current_user),
        }
        units = await self.repo.find_all(limit, self.paginate.offset(page, limit), **filters)
        total = await self.repo.count(**filters)
        return self.paginate.envelope(
            self.paginate.get_list_json_dumps(UnitOut.model_validate(u) for u in units),
            page,
            limit,
            total,
        )

    async def get_unit(self, unit_id: int, current_user):
        unit = await self._get_with_access(unit_id, current_user)
        return UnitOut.model_validate(unit).model_dump(mode="json")

    async def update_unit(self, unit_id: int, data: UnitUpdate, current_user):
        await self.permission.check_admin_or_owner(current_user)
        unit = await self._get_with_access(unit_id, current_user)

        values = data.changes()
        new_status = values.get("status")
        if new_status == UnitStatus.RENTED:
            raise InvalidInputError(
                "Unit status RENTED can only be set through tenancy management"
            )
        if new_status is not None and unit.status == UnitStatus.RENTED:
            raise ConflictError(
                "Cannot change status of a rented unit. End or delete the tenancy first."
            )

        try:
            await self.repo.update(unit_id, values)
            await self.repo.db_commit()
        except IntegrityError:
            await self.repo.db_rollback()
            raise ConflictError("Unit number already exists in this building")

        logger.info("Unit %s updated: %s", unit_id, sorted(values))
        unit = await self.repo.get_by_id(unit_id)
        return UnitOut.model_validate(unit).model_dump(mode="json")

    async def delete_unit(self, unit_id: int, current_user):
        await self.permission.check_admin(current_user)
        if not await self.repo.get_by_id(unit_id):
            raise NotFoundError("Unit not found")
        if await self.tenancy_repo.find_active_by_unit(unit_id):
            raise ConflictError("Cannot delete unit with an active tenancy")

        try:
            await self.repo.delete(unit_id)
            await self.repo.db_commit()
        except IntegrityError:
            await self.repo.db_rollback()
            raise ConflictError("Cannot delete unit with tenancy history")

        logger.info("Unit %s deleted", unit_id)
        return {"message": "Unit deleted successfully"}
