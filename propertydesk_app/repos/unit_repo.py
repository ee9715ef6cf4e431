from typing import List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError

from models.enums import UnitStatus
from models.models import Building, Unit


class UnitRepo:
    def __init__(self, db):
        self.db = db

    def _filtered(
        self,
        stmt,
        *,
        owner_id: int | None = None,
        building_id: int | None = None,
        status: UnitStatus | None = None,
    ):
        if owner_id is not None:
            stmt = stmt.where(Building.owner_id == owner_id)
        if building_id is not None:
            stmt = stmt.where(Unit.building_id == building_id)
        if status is not None:
            stmt = stmt.where(Unit.status == status)
        return stmt

    async def create(self, unit: Unit) -> Unit:
        self.db.add(unit)
        await self.db.flush()
        return unit

    async def get_by_id(self, unit_id: int) -> Optional[Unit]:
        stmt = (
            select(Unit)
            .where(Unit.id == unit_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def lock_by_id(self, unit_id: int) -> Optional[Unit]:
        stmt = (
            select(Unit)
            .where(Unit.id == unit_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_with_building(self, unit_id: int) -> Optional[tuple[Unit, Building]]:
        stmt = (
            select(Unit, Building)
            .join(Building, Building.id == Unit.building_id)
            .where(Unit.id == unit_id)
        )
        result = await self.db.execute(stmt)
        return result.one_or_none()

    async def update_status(self, unit_id: int, status: UnitStatus) -> bool:
        stmt = update(Unit).where(Unit.id == unit_id).values(status=status)
        result = await self.db.execute(stmt)
        return result.rowcount > 0

    async def update(self, unit_id: int, values: dict) -> bool:
        if not values:
            return False
        stmt = update(Unit).where(Unit.id == unit_id).values(**values)
        result = await self.db.execute(stmt)
        return result.rowcount > 0

    async def find_all(self, limit: int, offset: int, **filters) -> List[Unit]:
        stmt = (
            self._filtered(
                select(Unit).join(Building, Building.id == Unit.building_id), **filters
            )
            .order_by(Unit.building_id, Unit.unit_number)
            .offset(offset)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def count(self, **filters) -> int:
        stmt = self._filtered(
            select(func.count(Unit.id))
            .select_from(Unit)
            .join(Building, Building.id == Unit.building_id),
            **filters,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one()

    async def delete(self, unit_id: int) -> bool:
        result = await self.db.execute(delete(Unit).where(Unit.id == unit_id))
        return result.rowcount > 0

    async def db_commit(self):
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def db_rollback(self):
        await self.db.rollback()
