from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError

from models.models import Building, Payment, Tenancy, Unit, User


@dataclass
class TenancyRecord:
    tenancy: Tenancy
    unit: Unit
    building: Building
    tenant: User


class TenancyRepo:
    def __init__(self, db):
        self.db = db

    def _detail_stmt(self):
        return (
            select(Tenancy, Unit, Building, User)
            .join(Unit, Unit.id == Tenancy.unit_id)
            .join(Building, Building.id == Unit.building_id)
            .join(User, User.id == Tenancy.tenant_id)
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
        is_active: bool | None = None,
    ):
        if owner_id is not None:
            stmt = stmt.where(Building.owner_id == owner_id)
        if tenant_id is not None:
            stmt = stmt.where(Tenancy.tenant_id == tenant_id)
        if building_id is not None:
            stmt = stmt.where(Unit.building_id == building_id)
        if unit_id is not None:
            stmt = stmt.where(Tenancy.unit_id == unit_id)
        if is_active is not None:
            stmt = stmt.where(Tenancy.is_active == is_active)
        return stmt

    async def create(self, tenancy: Tenancy) -> Tenancy:
        self.db.add(tenancy)
        await self.db.flush()
        return tenancy

    async def get_by_id(self, tenancy_id: int) -> Optional[Tenancy]:
        result = await self.db.execute(
            select(Tenancy)
            .where(Tenancy.id == tenancy_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_detail(self, tenancy_id: int) -> Optional[TenancyRecord]:
        result = await self.db.execute(
            self._detail_stmt().where(Tenancy.id == tenancy_id)
        )
        row = result.one_or_none()
        return TenancyRecord(*row) if row else None

    async def find_active_by_unit(self, unit_id: int) -> Optional[Tenancy]:
        stmt = select(Tenancy).where(
            Tenancy.unit_id == unit_id, Tenancy.is_active.is_(True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def find_active_for_tenant(
        self, tenant_id: int, unit_id: int | None = None
    ) -> Optional[Tenancy]:
        stmt = select(Tenancy).where(
            Tenancy.tenant_id == tenant_id, Tenancy.is_active.is_(True)
        )
        if unit_id is not None:
            stmt = stmt.where(Tenancy.unit_id == unit_id)
        result = await self.db.execute(stmt.order_by(Tenancy.start_date, Tenancy.id))
        return result.scalars().first()

    async def update(self, tenancy_id: int, values: dict) -> bool:
        if not values:
            return False
        stmt = update(Tenancy).where(Tenancy.id == tenancy_id).values(**values)
        result = await self.db.execute(stmt)
        return result.rowcount > 0

    async def end(self, tenancy_id: int) -> bool:
        stmt = (
            update(Tenancy)
            .where(Tenancy.id == tenancy_id, Tenancy.is_active.is_(True))
            .values(is_active=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount > 0

    async def delete(self, tenancy_id: int) -> bool:
        await self.db.execute(delete(Payment).where(Payment.tenancy_id == tenancy_id))
        result = await self.db.execute(delete(Tenancy).where(Tenancy.id == tenancy_id))
        return result.rowcount > 0

    async def find_all(self, limit: int, offset: int, **filters) -> List[TenancyRecord]:
        stmt = (
            self._filtered(self._detail_stmt(), **filters)
            .order_by(Tenancy.created_at.desc(), Tenancy.id.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return [TenancyRecord(*row) for row in result.all()]

    async def count(self, **filters) -> int:
        stmt = self._filtered(
            select(func.count(Tenancy.id))
            .select_from(Tenancy)
            .join(Unit, Unit.id == Tenancy.unit_id)
            .join(Building, Building.id == Unit.building_id),
            **filters,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one()

    async def find_by_tenant(self, tenant_id: int) -> List[TenancyRecord]:
        stmt = (
            self._detail_stmt()
            .where(Tenancy.tenant_id == tenant_id)
            .order_by(Tenancy.is_active.desc(), Tenancy.start_date.desc())
        )
        result = await self.db.execute(stmt)
        return [TenancyRecord(*row) for row in result.all()]

    async def db_commit(self):
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def db_rollback(self):
        await self.db.rollback()
