import logging
import time
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Callable

from sqlalchemy.exc import IntegrityError

from core.check_permission import CheckRolePermission
from core.date_helper import month_bounds
from core.exceptions import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    PaymentAlreadyPaidError,
)
from core.paginate import PaginatePage
from core.settings import settings
from fintechs.tahseeel import TahseeelClient
from models.enums import MONTH_NAMES, PaymentMethod, PaymentStatus
from repos.building_repo import BuildingRepo
from repos.payment_repo import PaymentRepo
from schemas.schema import (
    BuildingSummaryOut,
    BuildingSummaryRowOut,
    CreateLinkOut,
    GeneratePaymentsIn,
    GeneratePaymentsOut,
    PaymentOut,
    PaymentUpdate,
)
from services.notification_service import NotificationEmitter, emit_quietly

logger = logging.getLogger(__name__)


def validate_period(month: int, year: int):
    if not 1 <= month <= 12:
        raise InvalidInputError("Month must be between 1 and 12")
    if not 2000 <= year <= 2100:
        raise InvalidInputError("Year must be between 2000 and 2100")


class PaymentService:
    def __init__(
        self,
        db,
        gateway: TahseeelClient | None = None,
        notifier: NotificationEmitter | None = None,
        today: Callable[[], date] | None = None,
    ):
        self.db = db
        self.repo: PaymentRepo = PaymentRepo(db)
        self.building_repo: BuildingRepo = BuildingRepo(db)
        self.gateway: TahseeelClient = gateway or TahseeelClient()
        self.notifier: NotificationEmitter = notifier or NotificationEmitter()
        self.today = today or date.today
        self.permission: CheckRolePermission = CheckRolePermission()
        self.paginate: PaginatePage = PaginatePage()

    async def _get_record_with_access(self, payment_id: int, current_user):
        record = await self.repo.get_detail(payment_id)
        if not record:
            raise NotFoundError("Payment not found")
        await self.permission.check_tenancy_access(
            current_user, record.building, record.tenancy
        )
        return record

    async def generate_monthly_payments(self, data: GeneratePaymentsIn, current_user):
        """Create one PENDING payment per billable tenancy for the period.

        Stale PENDING payments from earlier months are swept to OVERDUE first.
        Rows that already exist for (tenancy, month, year) are skipped by the
        database, so repeated or concurrent runs never duplicate.
        """
        await self.permission.check_admin(current_user)
        validate_period(data.month, data.year)

        first_day, last_day = month_bounds(data.year, data.month)
        try:
            overdue_marked = await self.repo.mark_overdue_payments(self.today())
            tenancies = await self.repo.find_billable_tenancies(first_day, last_day)
            created_ids = await self.repo.insert_ignoring_duplicates(
                [
                    {
                        "tenancy_id": t.id,
                        "month": data.month,
                        "year": data.year,
                        "amount": t.monthly_rent,
                        "status": PaymentStatus.PENDING,
                        "created_by": current_user.id,
                    }
                    for t in tenancies
                ]
            )
            await self.repo.db_commit()
        except Exception:
            await self.repo.db_rollback()
            raise

        logger.info(
            "Generated %s payments for %s/%s (%s billable, %s marked overdue)",
            len(created_ids),
            data.month,
            data.year,
            len(tenancies),
            overdue_marked,
        )

        for record in await self.repo.get_details(created_ids):
            await emit_quietly(
                self.notifier.send_payment_reminder,
                user_id=record.tenant.id,
                amount=record.payment.amount,
                month=record.payment.month,
                year=record.payment.year,
                unit_number=record.unit.unit_number,
                building_name=record.building.name,
            )

        return GeneratePaymentsOut(
            message=(
                f"Generated {len(created_ids)} payment records for "
                f"{data.month}/{data.year}"
            ),
            created=len(created_ids),
            overdue_marked=overdue_marked,
        ).model_dump()

    async def update_payment(self, payment_id: int, data: PaymentUpdate, current_user):
        """Manual edit by an admin or the building owner, e.g. cash received."""
        await self.permission.check_admin_or_owner(current_user)
        record = await self._get_record_with_access(payment_id, current_user)
        payment = record.payment

        values = data.changes()
        new_status = values.get("status")
        if (
            payment.status == PaymentStatus.PAID
            and new_status is not None
            and new_status != PaymentStatus.PAID
        ):
            raise PaymentAlreadyPaidError()

        becomes_paid = (
            new_status == PaymentStatus.PAID and payment.status != PaymentStatus.PAID
        )
        if becomes_paid and not values.get("paid_at"):
            values["paid_at"] = datetime.now(timezone.utc)

        try:
            await self.repo.update(payment_id, values)
            await self.repo.db_commit()
        except Exception:
            await self.repo.db_rollback()
            raise

        if becomes_paid:
            logger.info("Payment %s marked as PAID manually by %s", payment_id, current_user.id)
            await emit_quietly(
                self.notifier.send_payment_confirmation,
                user_id=record.tenant.id,
                amount=values.get("amount", payment.amount),
                month=payment.month,
                year=payment.year,
                unit_number=record.unit.unit_number,
                building_name=record.building.name,
            )

        updated = await self.repo.get_detail(payment_id)
        return PaymentOut.from_record(updated).model_dump(mode="json")

    async def create_payment_link(self, payment_id: int, current_user):
        await self.permission.check_admin_or_owner(current_user)
        record = await self._get_record_with_access(payment_id, current_user)
        payment, tenant = record.payment, record.tenant

        if payment.status == PaymentStatus.PAID:
            raise PaymentAlreadyPaidError()

        order_no = f"PAY-{payment.id}-{int(time.time() * 1000)}"
        order = await self.gateway.create_order(
            order_no=order_no,
            amount=payment.amount,
            customer_name=tenant.full_name,
            customer_email=tenant.email,
            customer_mobile=tenant.phone,
            phone_code=settings.TAHSEEEL_PHONE_CODE if tenant.phone else None,
            remarks=(
                f"Rent for {MONTH_NAMES[payment.month]} {payment.year} - "
                f"Unit {record.unit.unit_number}, {record.building.name}"
            ),
        )
        tahseeel_hash, inv_id = self.gateway.extract_link_params(order.link)

        try:
            await self.repo.update(
                payment_id,
                {
                    "tahseeel_order_no": order_no,
                    "tahseeel_hash": tahseeel_hash,
                    "tahseeel_inv_id": inv_id,
                    "tahseeel_payment_link": order.link,
                    "payment_method": PaymentMethod.TAHSEEEL,
                },
            )
            await self.repo.db_commit()
        except IntegrityError:
            await self.repo.db_rollback()
            logger.error("Tahseeel hash %s already belongs to another payment", tahseeel_hash)
            raise ConflictError("Payment gateway returned a reference already in use")
        except Exception:
            await self.repo.db_rollback()
            raise

        logger.info("Payment link created for payment %s: %s", payment_id, order_no)
        await emit_quietly(
            self.notifier.send_payment_link_notification,
            user_id=tenant.id,
            amount=payment.amount,
            month=payment.month,
            year=payment.year,
            unit_number=record.unit.unit_number,
            building_name=record.building.name,
            payment_link=order.link,
        )

        return CreateLinkOut(
            payment_id=payment_id, link=order.link, order_no=order_no
        ).model_dump()

    async def get_payment(self, payment_id: int, current_user):
        await self.permission.check_authenticated(current_user)
        record = await self._get_record_with_access(payment_id, current_user)
        return PaymentOut.from_record(record).model_dump(mode="json")

    async def list_payments(
        self,
        current_user,
        page: int = 1,
        limit: int = 20,
        tenancy_id: int | None = None,
        building_id: int | None = None,
        month: int | None = None,
        year: int | None = None,
        status: PaymentStatus | None = None,
    ):
        await self.permission.check_authenticated(current_user)
        filters = {
            "tenancy_id": tenancy_id,
            "building_id": building_id,
            "month": month,
            "year": year,
            "status": status,
            **self.permission.scope_filters(current_user),
        }
        records = await self.repo.find_all(
            limit, self.paginate.offset(page, limit), **filters
        )
        total = await self.repo.count(**filters)
        return self.paginate.envelope(
            self.paginate.get_list_json_dumps(PaymentOut.from_record(r) for r in records),
            page,
            limit,
            total,
        )

    async def delete_payment(self, payment_id: int, current_user):
        await self.permission.check_admin(current_user)
        try:
            deleted = await self.repo.delete(payment_id)
            if not deleted:
                raise NotFoundError("Payment not found")
            await self.repo.db_commit()
        except Exception:
            await self.repo.db_rollback()
            raise
        logger.info("Payment %s deleted by %s", payment_id, current_user.id)
        return {"message": "Payment deleted successfully"}

    async def get_building_payment_summary(
        self, building_id: int, month: int, year: int, current_user
    ):
        await self.permission.check_admin_or_owner(current_user)
        validate_period(month, year)
        building = await self.building_repo.get_by_id(building_id)
        if not building:
            raise NotFoundError("Building not found")
        await self.permission.check_building_access(current_user, building)

        rows = await self.repo.building_summary(building_id, month, year)

        total_expected = sum((r.tenancy.monthly_rent for r in rows), Decimal("0"))
        paid = [r for r in rows if r.payment and r.payment.status == PaymentStatus.PAID]
        total_paid = sum((r.payment.amount for r in paid), Decimal("0"))
        total_pending = sum(
            1 for r in rows if r.payment is None or r.payment.status == PaymentStatus.PENDING
        )
        total_overdue = sum(
            1 for r in rows if r.payment and r.payment.status == PaymentStatus.OVERDUE
        )

        return BuildingSummaryOut(
            building_id=building.id,
            building_name=building.name,
            month=month,
            year=year,
            total_tenants=len(rows),
            total_expected=total_expected,
            total_paid=total_paid,
            total_pending=total_pending,
            total_overdue=total_overdue,
            paid_count=len(paid),
            rows=[
                BuildingSummaryRowOut(
                    tenancy_id=r.tenancy.id,
                    unit_id=r.unit.id,
                    unit_number=r.unit.unit_number,
                    tenant_id=r.tenant.id,
                    tenant_name=r.tenant.full_name,
                    monthly_rent=r.tenancy.monthly_rent,
                    payment_id=r.payment.id if r.payment else None,
                    payment_status=r.payment.status.value if r.payment else "NO_RECORD",
                    amount=r.payment.amount if r.payment else None,
                    paid_at=r.payment.paid_at if r.payment else None,
                )
                for r in rows
            ],
        ).model_dump(mode="json")
