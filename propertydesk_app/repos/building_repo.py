from typing import List, Optional

from sqlalchemy import delete, exists, func, select, update
from sqlalchemy.exc import SQLAlchemyError

from models.models import Building, Unit


class BuildingRepo:
    def __init__(self, db):
        self.db = db

    def _with_unit_count(self):
        unit_count = (
            select(func.count(Unit.id))
            .where(Unit.building_id == Building.id)
            .correlate(Building)
            .scalar_subquery()
        )
        return select(Building, unit_count.label("total_units")).execution_options(
            populate_existing=True
        )

    def _filtered(self, stmt, *, owner_id: int | None = None, city: str | None = None):
        if owner_id is not None:
            stmt = stmt.where(Building.owner_id == owner_id)
        if city is not None:
            stmt = stmt.where(Building.city == city)
        return stmt

    async def create(self, building: Building) -> Building:
        self.db.add(building)
        await self.db.flush()
        return building

    async def get_by_id(self, building_id: int) -> Optional[Building]:
        result = await self.db.execute(
            select(Building)
            .where(Building.id == building_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_with_unit_count(self, building_id: int) -> Optional[tuple[Building, int]]:
        result = await self.db.execute(
            self._with_unit_count().where(Building.id == building_id)
        )
        return result.one_or_none()

    async def find_all(self, limit: int, offset: int, **filters) -> List[tuple[Building, int]]:
        stmt = (
            self._filtered(self._with_unit_count(), **filters)
            .order_by(Building.name, Building.id)
            .offset(offset)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return result.all()

    async def count(self, **filters) -> int:
        stmt = self._filtered(select(func.count(Building.id)), **filters)
        result = await self.db.execute(stmt)
        return result.scalar_one()

    async def has_units(self, building_id: int) -> bool:
        result = await self.db.execute(
            select(exists().where(Unit.building_id == building_id))
        )
        return result.scalar()

    async def update(self, building_id: int, values: dict) -> bool:
        if not values:
            return False
        stmt = update(Building).where(Building.id == building_id).values(**values)
        result = await self.db.execute(stmt)
        return result.rowcount > 0

    async def delete(self, building_id: int) -> bool:
        result = await self.db.execute(delete(Building).where(Building.id == building_id))
        return result.rowcount > 0

    async def db_commit(self):
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def db_rollback(self):
        await self.db.rollback()
