from typing import List

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from models.enums import PaymentLinkStatus
from models.models import PaymentLink


class PaymentLinkRepo:
    def __init__(self, db):
        self.db = db

    async def create(self, link: PaymentLink) -> PaymentLink:
        try:
            self.db.add(link)
            await self.db.commit()
            await self.db.refresh(link)
            return link
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def find_all(
        self, limit: int, offset: int, status: PaymentLinkStatus | None = None
    ) -> List[PaymentLink]:
        stmt = select(PaymentLink)
        if status is not None:
            stmt = stmt.where(PaymentLink.status == status)
        stmt = (
            stmt.order_by(PaymentLink.created_at.desc(), PaymentLink.id.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def count(self, status: PaymentLinkStatus | None = None) -> int:
        stmt = select(func.count(PaymentLink.id))
        if status is not None:
            stmt = stmt.where(PaymentLink.status == status)
        result = await self.db.execute(stmt)
        return result.scalar_one()
