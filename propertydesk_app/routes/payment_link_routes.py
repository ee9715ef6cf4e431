from fastapi import APIRouter, Depends, Query
from fastapi_utils.cbv import cbv
from sqlalchemy.ext.asyncio import AsyncSession

from core.get_current_user import get_current_user
from core.get_db import get_db_async
from core.safe_handler import safe_handler
from models.enums import PaymentLinkStatus
from models.models import User
from schemas.schema import PaymentLinkCreate
from services.payment_link_service import PaymentLinkService

router = APIRouter(tags=["Standalone Payment Links"])


@cbv(router)
class PaymentLinkRoutes:
    @router.post("/generate", status_code=201)
    @safe_handler
    async def generate_link(
        self,
        data: PaymentLinkCreate,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await PaymentLinkService(db).generate_link(data, current_user)

    @router.get("/")
    @safe_handler
    async def list_payment_links(
        self,
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=100),
        status: PaymentLinkStatus | None = None,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await PaymentLinkService(db).list_payment_links(
            current_user, page=page, limit=limit, status=status
        )
