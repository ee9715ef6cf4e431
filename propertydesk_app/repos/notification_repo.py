from typing import List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError

from models.models import Notification


class NotificationRepo:
    def __init__(self, db):
        self.db = db

    async def create(self, notification: Notification) -> Notification:
        try:
            self.db.add(notification)
            await self.db.commit()
            return notification
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def get_by_id(self, notification_id: int) -> Optional[Notification]:
        result = await self.db.execute(
            select(Notification).where(Notification.id == notification_id)
        )
        return result.scalar_one_or_none()

    async def find_by_user(
        self, user_id: int, limit: int, offset: int
    ) -> List[Notification]:
        stmt = (
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def count_by_user(self, user_id: int, unread_only: bool = False) -> int:
        stmt = select(func.count(Notification.id)).where(Notification.user_id == user_id)
        if unread_only:
            stmt = stmt.where(Notification.is_read.is_(False))
        result = await self.db.execute(stmt)
        return result.scalar_one()

    async def mark_as_read(self, notification_id: int) -> bool:
        stmt = (
            update(Notification)
            .where(Notification.id == notification_id)
            .values(is_read=True)
        )
        return await self._execute_and_commit(stmt)

    async def mark_all_as_read(self, user_id: int) -> int:
        stmt = (
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True)
        )
        try:
            result = await self.db.execute(stmt)
            await self.db.commit()
            return result.rowcount
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def delete(self, notification_id: int) -> bool:
        return await self._execute_and_commit(
            delete(Notification).where(Notification.id == notification_id)
        )

    async def _execute_and_commit(self, stmt) -> bool:
        try:
            result = await self.db.execute(stmt)
            await self.db.commit()
            return result.rowcount > 0
        except SQLAlchemyError:
            await self.db.rollback()
            raise
