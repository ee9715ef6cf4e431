import logging
from decimal import Decimal
from typing import Awaitable, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import ForbiddenError, NotFoundError
from core.get_db import database
from core.paginate import PaginatePage
from core.settings import settings
from models.enums import MONTH_NAMES, NotificationType
from models.models import Notification
from repos.notification_repo import NotificationRepo
from schemas.schema import NotificationOut

logger = logging.getLogger(__name__)


def _money(amount) -> str:
    return f"{Decimal(str(amount)):.3f}"


class NotificationEmitter:
    """Writes payment and maintenance notifications for tenants.

    Each send opens its own session, so a failure here can never roll back
    or poison the caller's transaction. Senders raise; callers decide to
    swallow (see ``emit_quietly``).
    """

    def __init__(self, session_factory: Callable[[], AsyncSession] | None = None):
        self.session_factory = session_factory or database.session

    async def _write(
        self,
        *,
        user_id: int,
        title: str,
        message: str,
        type: NotificationType,
        link: Optional[str],
        amount,
        month: int,
        year: int,
        unit_number: str,
        building_name: str,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            title=title,
            message=message,
            type=type,
            link=link,
            extra={
                "month": month,
                "year": year,
                "amount": _money(amount),
                "unit_number": unit_number,
                "building_name": building_name,
            },
        )
        return await self._store(notification)

    async def _store(self, notification: Notification) -> Notification:
        async with self.session_factory() as session:
            return await NotificationRepo(session).create(notification)

    async def send_payment_reminder(
        self, *, user_id, amount, month, year, unit_number, building_name
    ) -> Notification:
        return await self._write(
            user_id=user_id,
            title="Rent Payment Reminder",
            message=(
                f"Your rent of {_money(amount)} {settings.CURRENCY} for "
                f"{MONTH_NAMES[month]} {year} (Unit {unit_number}, {building_name}) "
                "is due. Please make your payment."
            ),
            type=NotificationType.PAYMENT_REMINDER,
            link="/payments",
            amount=amount,
            month=month,
            year=year,
            unit_number=unit_number,
            building_name=building_name,
        )

    async def send_payment_link_notification(
        self, *, user_id, amount, month, year, unit_number, building_name, payment_link
    ) -> Notification:
        return await self._write(
            user_id=user_id,
            title="Payment Link Available",
            message=(
                f"A payment link has been created for your rent of {_money(amount)} "
                f"{settings.CURRENCY} for {MONTH_NAMES[month]} {year} "
                f"(Unit {unit_number}, {building_name}). Click to pay."
            ),
            type=NotificationType.PAYMENT_LINK,
            link=payment_link,
            amount=amount,
            month=month,
            year=year,
            unit_number=unit_number,
            building_name=building_name,
        )

    async def send_payment_confirmation(
        self, *, user_id, amount, month, year, unit_number, building_name
    ) -> Notification:
        return await self._write(
            user_id=user_id,
            title="Payment Confirmed",
            message=(
                f"Your rent payment of {_money(amount)} {settings.CURRENCY} for "
                f"{MONTH_NAMES[month]} {year} (Unit {unit_number}, {building_name}) "
                "has been confirmed. Thank you!"
            ),
            type=NotificationType.PAYMENT,
            link="/payments",
            amount=amount,
            month=month,
            year=year,
            unit_number=unit_number,
            building_name=building_name,
        )

    async def send_maintenance_update(
        self, *, user_id, request_id, title, status, unit_number, building_name
    ) -> Notification:
        label = status.value.replace("_", " ").lower()
        return await self._store(
            Notification(
                user_id=user_id,
                title="Maintenance Request Updated",
                message=(
                    f"Your maintenance request \"{title}\" for Unit {unit_number}, "
                    f"{building_name} is now {label}."
                ),
                type=NotificationType.MAINTENANCE,
                link=f"/maintenance/{request_id}",
                extra={
                    "request_id": request_id,
                    "status": status.value,
                    "unit_number": unit_number,
                    "building_name": building_name,
                },
            )
        )


async def emit_quietly(send: Callable[..., Awaitable], **kwargs) -> bool:
    try:
        await send(**kwargs)
        return True
    except Exception:
        logger.warning(
            "Notification %s failed for user %s",
            getattr(send, "__name__", send),
            kwargs.get("user_id"),
            exc_info=True,
        )
        return False


class NotificationService:
    def __init__(self, db):
        self.db = db
        self.repo: NotificationRepo = NotificationRepo(db)
        self.paginate: PaginatePage = PaginatePage()

    async def list_notifications(self, current_user, page: int = 1, limit: int = 20):
        offset = self.paginate.offset(page, limit)
        items = await self.repo.find_by_user(current_user.id, limit, offset)
        total = await self.repo.count_by_user(current_user.id)
        unread = await self.repo.count_by_user(current_user.id, unread_only=True)

        data = self.paginate.envelope(
            self.paginate.get_list_json_dumps(
                NotificationOut.model_validate(n) for n in items
            ),
            page,
            limit,
            total,
        )
        data["unread_count"] = unread
        return data

    async def _get_own(self, notification_id: int, current_user) -> Notification:
        notification = await self.repo.get_by_id(notification_id)
        if not notification:
            raise NotFoundError("Notification not found")
        if notification.user_id != current_user.id:
            raise ForbiddenError()
        return notification

    async def mark_as_read(self, notification_id: int, current_user):
        await self._get_own(notification_id, current_user)
        await self.repo.mark_as_read(notification_id)
        return {"message": "Notification marked as read"}

    async def mark_all_as_read(self, current_user):
        updated = await self.repo.mark_all_as_read(current_user.id)
        return {"message": "All notifications marked as read", "updated": updated}

    async def delete_notification(self, notification_id: int, current_user):
        await self._get_own(notification_id, current_user)
        await self.repo.delete(notification_id)
        return {"message": "Notification deleted"}
