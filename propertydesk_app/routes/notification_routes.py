from fastapi import APIRouter, Depends, Query
from fastapi_utils.cbv import cbv
from sqlalchemy.ext.asyncio import AsyncSession

from core.get_current_user import get_current_user
from core.get_db import get_db_async
from core.safe_handler import safe_handler
from models.models import User
from services.notification_service import NotificationService

router = APIRouter(tags=["Notifications"])


@cbv(router)
class NotificationRoutes:
    @router.get("/")
    @safe_handler
    async def list_notifications(
        self,
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=100),
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await NotificationService(db).list_notifications(
            current_user, page=page, limit=limit
        )

    @router.patch("/read-all")
    @safe_handler
    async def mark_all_as_read(
        self,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await NotificationService(db).mark_all_as_read(current_user)

    @router.patch("/{notification_id}/read")
    @safe_handler
    async def mark_as_read(
        self,
        notification_id: int,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await NotificationService(db).mark_as_read(notification_id, current_user)

    @router.delete("/{notification_id}")
    @safe_handler
    async def delete_notification(
        self,
        notification_id: int,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await NotificationService(db).delete_notification(
            notification_id, current_user
        )
