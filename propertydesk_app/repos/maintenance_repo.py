from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError

from models.enums import MaintenancePriority, MaintenanceStatus
from models.models import Building, MaintenanceRequest, Unit, User


@dataclass
class MaintenanceRecord:
    request: MaintenanceRequest
    unit: Unit
    building: Building
    tenant: User


class MaintenanceRepo:
    def __init__(self, db):
        self.db = db

    def _detail_stmt(self):
        return (
            select(MaintenanceRequest, Unit, Building, User)
            .join(Unit, Unit.id == MaintenanceRequest.unit_id)
            .join(Building, Building.id == Unit.building_id)
            .join(User, User.id == MaintenanceRequest.tenant_id)
            .execution_options(populate_existing=True)
        )

    def _filtered(
        self,
        stmt,
        *,
        owner_id: int | None = None,
        tenant_id: int | None = None,
        building_id: int | None = None,
        unit_id: int | None = None,
        status: MaintenanceStatus | None = None,
        priority: MaintenancePriority | None = None,
    ):
        if owner_id is not None:
            stmt = stmt.where(Building.owner_id == owner_id)
        if tenant_id is not None:
            stmt = stmt.where(MaintenanceRequest.tenant_id == tenant_id)
        if building_id is not None:
            stmt = stmt.where(Unit.building_id == building_id)
        if unit_id is not None:
            stmt = stmt.where(MaintenanceRequest.unit_id == unit_id)
        if status is not None:
            stmt = stmt.where(MaintenanceRequest.status == status)
        if priority is not None:
            stmt = stmt.where(MaintenanceRequest.priority == priority)
        return stmt

    async def create(self, request: MaintenanceRequest) -> MaintenanceRequest:
        self.db.add(request)
        await self.db.flush()
        return request

    async def get_detail(self, request_id: int) -> Optional[MaintenanceRecord]:
        result = await self.db.execute(
            self._detail_stmt().where(MaintenanceRequest.id == request_id)
        )
        row = result.one_or_none()
        return MaintenanceRecord(*row) if row else None

    async def find_all(self, limit: int, offset: int, **filters) -> List[MaintenanceRecord]:
        stmt = (
            self._filtered(self._detail_stmt(), **filters)
            .order_by(MaintenanceRequest.created_at.desc(), MaintenanceRequest.id.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return [MaintenanceRecord(*row) for row in result.all()]

    async def count(self, **filters) -> int:
        stmt = self._filtered(
            select(func.count(MaintenanceRequest.id))
            .select_from(MaintenanceRequest)
            .join(Unit, Unit.id == MaintenanceRequest.unit_id)
            .join(Building, Building.id == Unit.building_id),
            **filters,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one()

    async def update(self, request_id: int, values: dict) -> bool:
        if not values:
            return False
        stmt = (
            update(MaintenanceRequest)
            .where(MaintenanceRequest.id == request_id)
            .values(**values)
        )
        result = await self.db.execute(stmt)
        return result.rowcount > 0

    async def delete(self, request_id: int) -> bool:
        result = await self.db.execute(
            delete(MaintenanceRequest).where(MaintenanceRequest.id == request_id)
        )
        return result.rowcount > 0

    async def db_commit(self):
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def db_rollback(self):
        await self.db.rollback()
