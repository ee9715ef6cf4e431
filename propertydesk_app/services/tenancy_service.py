import logging

from sqlalchemy.exc import IntegrityError

from core.check_permission import CheckRolePermission
from core.exceptions import (
    ActiveTenancyExistsError,
    InvalidDateRangeError,
    InvalidInputError,
    NotFoundError,
    TenancyAlreadyEndedError,
    UnitNotAvailableError,
)
from core.paginate import PaginatePage
from models.enums import UnitStatus, UserRole
from models.models import Tenancy
from repos.tenancy_repo import TenancyRepo
from repos.unit_repo import UnitRepo
from repos.user_repo import UserRepo
from schemas.schema import TenancyCreate, TenancyOut, TenancyUpdate

logger = logging.getLogger(__name__)


class TenancyService:
    """Tenancy ledger.

    A unit is RENTED exactly when it has an active tenancy. Every write here
    changes the tenancy and the unit status in the same transaction; the
    partial unique index on ``tenancies(unit_id) WHERE is_active`` is the
    final word when two requests race for the same unit.
    """

    def __init__(self, db):
        self.db = db
        self.repo: TenancyRepo = TenancyRepo(db)
        self.unit_repo: UnitRepo = UnitRepo(db)
        self.user_repo: UserRepo = UserRepo(db)
        self.permission: CheckRolePermission = CheckRolePermission()
        self.paginate: PaginatePage = PaginatePage()

    async def _get_or_404(self, tenancy_id: int) -> Tenancy:
        tenancy = await self.repo.get_by_id(tenancy_id)
        if not tenancy:
            raise NotFoundError("Tenancy not found")
        return tenancy

    async def _detail_out(self, tenancy_id: int) -> dict:
        record = await self.repo.get_detail(tenancy_id)
        return TenancyOut.from_record(record).model_dump(mode="json")

    async def create_tenancy(self, data: TenancyCreate, current_user):
        await self.permission.check_admin(current_user)

        if data.end_date is not None and data.end_date <= data.start_date:
            raise InvalidDateRangeError()

        tenant = await self.user_repo.get_by_id(data.tenant_id)
        if not tenant:
            raise NotFoundError("Tenant not found")
        if tenant.role != UserRole.TENANT:
            raise InvalidInputError("User is not a tenant")

        try:
            unit = await self.unit_repo.lock_by_id(data.unit_id)
            if not unit:
                raise NotFoundError("Unit not found")
            if unit.status != UnitStatus.AVAILABLE:
                raise UnitNotAvailableError()
            if await self.repo.find_active_by_unit(unit.id):
                raise ActiveTenancyExistsError()

            tenancy = await self.repo.create(
                Tenancy(
                    unit_id=unit.id,
                    tenant_id=tenant.id,
                    start_date=data.start_date,
                    end_date=data.end_date,
                    monthly_rent=data.monthly_rent,
                    deposit_amount=data.deposit_amount,
                    is_active=True,
                )
            )
            await self.unit_repo.update_status(unit.id, UnitStatus.RENTED)
            await self.repo.db_commit()
        except IntegrityError:
            await self.repo.db_rollback()
            logger.warning("Concurrent tenancy insert rejected for unit %s", data.unit_id)
            raise ActiveTenancyExistsError()
        except Exception:
            await self.repo.db_rollback()
            raise

        logger.info(
            "Tenancy %s created for unit %s (tenant %s)", tenancy.id, unit.id, tenant.id
        )
        return await self._detail_out(tenancy.id)

    async def update_tenancy(self, tenancy_id: int, data: TenancyUpdate, current_user):
        await self.permission.check_admin(current_user)
        tenancy = await self._get_or_404(tenancy_id)

        values = data.changes()
        start_date = values.get("start_date") or tenancy.start_date
        end_date = values.get("end_date", tenancy.end_date)
        if ("start_date" in values or "end_date" in values) and end_date is not None:
            if end_date <= start_date:
                raise InvalidDateRangeError()

        was_active = tenancy.is_active
        becomes_active = values.get("is_active", was_active)
        reactivating = becomes_active and not was_active

        try:
            if reactivating:
                unit = await self.unit_repo.lock_by_id(tenancy.unit_id)
                if await self.repo.find_active_by_unit(tenancy.unit_id):
                    raise ActiveTenancyExistsError()
                if unit.status != UnitStatus.AVAILABLE:
                    raise UnitNotAvailableError()

            await self.repo.update(tenancy_id, values)

            if becomes_active != was_active:
                status = UnitStatus.RENTED if becomes_active else UnitStatus.AVAILABLE
                await self.unit_repo.update_status(tenancy.unit_id, status)
                logger.info(
                    "Unit %s status -> %s via tenancy %s update",
                    tenancy.unit_id,
                    status.value,
                    tenancy_id,
                )
            await self.repo.db_commit()
        except IntegrityError:
            await self.repo.db_rollback()
            if reactivating:
                raise ActiveTenancyExistsError()
            raise
        except Exception:
            await self.repo.db_rollback()
            raise

        return await self._detail_out(tenancy_id)

    async def end_tenancy(self, tenancy_id: int, current_user):
        await self.permission.check_admin(current_user)
        tenancy = await self._get_or_404(tenancy_id)
        if not tenancy.is_active:
            raise TenancyAlreadyEndedError()

        try:
            # Conditional update: a concurrent end loses here instead of
            # releasing the unit twice.
            if not await self.repo.end(tenancy_id):
                raise TenancyAlreadyEndedError()
            await self.unit_repo.update_status(tenancy.unit_id, UnitStatus.AVAILABLE)
            await self.repo.db_commit()
        except Exception:
            await self.repo.db_rollback()
            raise

        logger.info("Tenancy %s ended, unit %s released", tenancy_id, tenancy.unit_id)
        return await self._detail_out(tenancy_id)

    async def delete_tenancy(self, tenancy_id: int, current_user):
        await self.permission.check_admin(current_user)
        tenancy = await self._get_or_404(tenancy_id)
        unit_id, was_active = tenancy.unit_id, tenancy.is_active

        try:
            if was_active:
                await self.unit_repo.update_status(unit_id, UnitStatus.AVAILABLE)
            await self.repo.delete(tenancy_id)
            await self.repo.db_commit()
        except Exception:
            await self.repo.db_rollback()
            raise

        logger.info(
            "Tenancy %s deleted%s", tenancy_id, f", unit {unit_id} released" if was_active else ""
        )
        return {"message": "Tenancy deleted successfully"}

    async def get_tenancy(self, tenancy_id: int, current_user):
        await self.permission.check_authenticated(current_user)
        record = await self.repo.get_detail(tenancy_id)
        if not record:
            raise NotFoundError("Tenancy not found")
        await self.permission.check_tenancy_access(
            current_user, record.building, record.tenancy
        )
        return TenancyOut.from_record(record).model_dump(mode="json")

    async def list_tenancies(
        self,
        current_user,
        page: int = 1,
        limit: int = 20,
        building_id: int | None = None,
        unit_id: int | None = None,
        is_active: bool | None = None,
    ):
        await self.permission.check_authenticated(current_user)
        filters = {
            "building_id": building_id,
            "unit_id": unit_id,
            "is_active": is_active,
            **self.permission.scope_filters(current_user),
        }
        records = await self.repo.find_all(
            limit, self.paginate.offset(page, limit), **filters
        )
        total = await self.repo.count(**filters)
        return self.paginate.envelope(
            self.paginate.get_list_json_dumps(TenancyOut.from_record(r) for r in records),
            page,
            limit,
            total,
        )

    async def my_tenancies(self, current_user):
        if current_user.role != UserRole.TENANT:
            raise InvalidInputError("Only tenants have tenancies")
        records = await self.repo.find_by_tenant(current_user.id)
        return self.paginate.get_list_json_dumps(
            TenancyOut.from_record(r) for r in records
        )
