from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional, Sequence

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError

from models.enums import PaymentStatus
from models.models import Building, Payment, Tenancy, Unit, User

_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


@dataclass
class PaymentRecord:
    payment: Payment
    tenancy: Tenancy
    unit: Unit
    building: Building
    tenant: User


@dataclass
class BuildingSummaryRow:
    tenancy: Tenancy
    unit: Unit
    tenant: User
    payment: Optional[Payment]


class PaymentRepo:
    def __init__(self, db):
        self.db = db

    def _detail_stmt(self):
        return (
            select(Payment, Tenancy, Unit, Building, User)
            .join(Tenancy, Tenancy.id == Payment.tenancy_id)
            .join(Unit, Unit.id == Tenancy.unit_id)
            .join(Building, Building.id == Unit.building_id)
            .join(User, User.id == Tenancy.tenant_id)
            .execution_options(populate_existing=True)
        )

    def _filtered(
        self,
        stmt,
        *,
        tenancy_id: int | None = None,
        month: int | None = None,
        year: int | None = None,
        status: PaymentStatus | None = None,
        tenant_id: int | None = None,
        owner_id: int | None = None,
        building_id: int | None = None,
    ):
        if tenancy_id is not None:
            stmt = stmt.where(Payment.tenancy_id == tenancy_id)
        if month is not None:
            stmt = stmt.where(Payment.month == month)
        if year is not None:
            stmt = stmt.where(Payment.year == year)
        if status is not None:
            stmt = stmt.where(Payment.status == status)
        if tenant_id is not None:
            stmt = stmt.where(Tenancy.tenant_id == tenant_id)
        if owner_id is not None:
            stmt = stmt.where(Building.owner_id == owner_id)
        if building_id is not None:
            stmt = stmt.where(Unit.building_id == building_id)
        return stmt

    async def get_by_id(self, payment_id: int) -> Optional[Payment]:
        result = await self.db.execute(
            select(Payment)
            .where(Payment.id == payment_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_detail(self, payment_id: int) -> Optional[PaymentRecord]:
        result = await self.db.execute(
            self._detail_stmt().where(Payment.id == payment_id)
        )
        row = result.one_or_none()
        return PaymentRecord(*row) if row else None

    async def get_details(self, payment_ids: Sequence[int]) -> List[PaymentRecord]:
        if not payment_ids:
            return []
        result = await self.db.execute(
            self._detail_stmt().where(Payment.id.in_(payment_ids)).order_by(Payment.id)
        )
        return [PaymentRecord(*row) for row in result.all()]

    async def get_by_hash(self, tahseeel_hash: str) -> Optional[Payment]:
        stmt = (
            select(Payment)
            .where(Payment.tahseeel_hash == tahseeel_hash)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def find_all(self, limit: int, offset: int, **filters) -> List[PaymentRecord]:
        stmt = (
            self._filtered(self._detail_stmt(), **filters)
            .order_by(Payment.year.desc(), Payment.month.desc(), Payment.id.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return [PaymentRecord(*row) for row in result.all()]

    async def count(self, **filters) -> int:
        stmt = self._filtered(
            select(func.count(Payment.id))
            .select_from(Payment)
            .join(Tenancy, Tenancy.id == Payment.tenancy_id)
            .join(Unit, Unit.id == Tenancy.unit_id)
            .join(Building, Building.id == Unit.building_id),
            **filters,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one()

    async def update(self, payment_id: int, values: dict) -> bool:
        if not values:
            return False
        stmt = update(Payment).where(Payment.id == payment_id).values(**values)
        result = await self.db.execute(stmt)
        return result.rowcount > 0

    async def mark_paid(self, payment_id: int, paid_at: datetime) -> bool:
        """Flip to PAID unless already there; ``False`` means nothing changed."""
        stmt = (
            update(Payment)
            .where(Payment.id == payment_id, Payment.status != PaymentStatus.PAID)
            .values(status=PaymentStatus.PAID, paid_at=paid_at)
        )
        result = await self.db.execute(stmt)
        return result.rowcount > 0

    async def delete(self, payment_id: int) -> bool:
        result = await self.db.execute(delete(Payment).where(Payment.id == payment_id))
        return result.rowcount > 0

    async def mark_overdue_payments(self, today: date) -> int:
        stmt = (
            update(Payment)
            .where(
                Payment.status == PaymentStatus.PENDING,
                or_(
                    Payment.year < today.year,
                    and_(Payment.year == today.year, Payment.month < today.month),
                ),
            )
            .values(status=PaymentStatus.OVERDUE)
        )
        result = await self.db.execute(stmt)
        return result.rowcount

    async def find_billable_tenancies(
        self, first_day: date, last_day: date
    ) -> List[Tenancy]:
        stmt = select(Tenancy).where(
            Tenancy.is_active.is_(True),
            Tenancy.start_date <= last_day,
            or_(Tenancy.end_date.is_(None), Tenancy.end_date >= first_day),
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def insert_ignoring_duplicates(self, records: List[dict]) -> List[int]:
        """Insert payment rows, skipping any (tenancy, month, year) already present.

        Returns the ids of the rows actually created.
        """
        if not records:
            return []

        dialect = self.db.get_bind().dialect.name
        insert = _UPSERT_INSERTS.get(dialect)
        if insert is None:
            raise RuntimeError(f"Idempotent insert not supported on {dialect}")

        stmt = (
            insert(Payment)
            .values(records)
            .on_conflict_do_nothing(index_elements=["tenancy_id", "month", "year"])
            .returning(Payment.id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def building_summary(
        self, building_id: int, month: int, year: int
    ) -> List[BuildingSummaryRow]:
        stmt = (
            select(Tenancy, Unit, User, Payment)
            .join(Unit, Unit.id == Tenancy.unit_id)
            .join(User, User.id == Tenancy.tenant_id)
            .outerjoin(
                Payment,
                and_(
                    Payment.tenancy_id == Tenancy.id,
                    Payment.month == month,
                    Payment.year == year,
                ),
            )
            .where(Unit.building_id == building_id, Tenancy.is_active.is_(True))
            .order_by(Unit.unit_number)
        )
        result = await self.db.execute(stmt)
        return [BuildingSummaryRow(*row) for row in result.all()]

    async def db_commit(self):
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def db_rollback(self):
        await self.db.rollback()
