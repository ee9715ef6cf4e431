import logging

from core.check_permission import CheckRolePermission
from core.exceptions import ConflictError, ForbiddenError, InvalidInputError, NotFoundError
from core.paginate import PaginatePage
from models.enums import UserRole
from models.models import Building
from repos.building_repo import BuildingRepo
from repos.user_repo import UserRepo
from schemas.schema import BuildingCreate, BuildingOut, BuildingUpdate

logger = logging.getLogger(__name__)


class BuildingService:
    def __init__(self, db):
        self.db = db
        self.repo: BuildingRepo = BuildingRepo(db)
        self.user_repo: UserRepo = UserRepo(db)
        self.permission: CheckRolePermission = CheckRolePermission()
        self.paginate: PaginatePage = PaginatePage()

    async def _check_owner(self, owner_id: int):
        owner = await self.user_repo.get_by_id(owner_id)
        if not owner:
            raise InvalidInputError("Owner not found")
        if owner.role != UserRole.OWNER:
            raise InvalidInputError("Specified user is not an Owner")

    async def _get_with_access(self, building_id: int, current_user) -> Building:
        building = await self.repo.get_by_id(building_id)
        if not building:
            raise NotFoundError("Building not found")
        await self.permission.check_building_access(current_user, building)
        return building

    async def _detail_out(self, building_id: int) -> dict:
        building, total_units = await self.repo.get_with_unit_count(building_id)
        return BuildingOut.from_row(building, total_units).model_dump(mode="json")

    async def create_building(self, data: BuildingCreate, current_user):
        await self.permission.check_admin(current_user)
        await self._check_owner(data.owner_id)

        building = await self.repo.create(Building(**data.model_dump()))
        await self.repo.db_commit()

        logger.info("Building %s created for owner %s", building.id, data.owner_id)
        return await self._detail_out(building.id)

    async def list_buildings(
        self, current_user, page: int = 1, limit: int = 20, city: str | None = None
    ):
        await self.permission.check_admin_or_owner(current_user)
        filters = {"city": city, **self.permission.scope_filters(current_user)}
        rows = await self.repo.find_all(limit, self.paginate.offset(page, limit), **filters)
        total = await self.repo.count(**filters)
        return self.paginate.envelope(
            self.paginate.get_list_json_dumps(
                BuildingOut.from_row(building, total_units) for building, total_units in rows
            ),
            page,
            limit,
            total,
        )

    async def get_building(self, building_id: int, current_user):
        await self.permission.check_admin_or_owner(current_user)
        await self._get_with_access(building_id, current_user)
        return await self._detail_out(building_id)

    async def update_building(self, building_id: int, data: BuildingUpdate, current_user):
        await self.permission.check_admin_or_owner(current_user)
        await self._get_with_access(building_id, current_user)

        values = data.changes()
        if "owner_id" in values:
            if current_user.role != UserRole.ADMIN:
                raise ForbiddenError("Only Admin can change building owner")
            await self._check_owner(values["owner_id"])

        await self.repo.update(building_id, values)
        await self.repo.db_commit()

        logger.info("Building %s updated: %s", building_id, sorted(values))
        return await self._detail_out(building_id)

    async def delete_building(self, building_id: int, current_user):
        await self.permission.check_admin(current_user)
        if not await self.repo.get_by_id(building_id):
            raise NotFoundError("Building not found")
        if await self.repo.has_units(building_id):
            raise ConflictError("Cannot delete building with existing units")

        await self.repo.delete(building_id)
        await self.repo.db_commit()

        logger.info("Building %s deleted", building_id)
        return {"message": "Building deleted successfully"}
