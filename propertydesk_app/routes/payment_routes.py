import logging
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import RedirectResponse
from fastapi_utils.cbv import cbv
from sqlalchemy.ext.asyncio import AsyncSession

from core.get_current_user import get_current_user
from core.get_db import get_db_async
from core.safe_handler import safe_handler
from core.settings import settings
from models.enums import PaymentStatus
from models.models import User
from schemas.schema import GeneratePaymentsIn, PaymentUpdate
from services.payment_callback_service import PaymentCallbackService
from services.payment_service import PaymentService

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Rent Payments and Tahseeel Reconciliation"])


def _result_redirect(status: str, payment_id=None) -> RedirectResponse:
    query = {"status": status}
    if payment_id is not None:
        query["paymentId"] = payment_id
    return RedirectResponse(
        f"{settings.FRONTEND_URL}/payments/result?{urlencode(query)}", status_code=302
    )


@cbv(router)
class PaymentRoutes:
    @router.post("/generate")
    @safe_handler
    async def generate_monthly_payments(
        self,
        data: GeneratePaymentsIn,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await PaymentService(db).generate_monthly_payments(data, current_user)

    @router.get("/tahseeel/callback", include_in_schema=False)
    async def tahseeel_callback(
        self,
        request: Request,
        db: AsyncSession = Depends(get_db_async),
    ):
        # Browser redirect from the gateway: always answer with a redirect.
        try:
            result = await PaymentCallbackService(db).handle_callback(
                dict(request.query_params)
            )
        except Exception:
            logger.exception("Tahseeel callback handling failed")
            return _result_redirect("error")

        status = "success" if result["success"] else "failed"
        return _result_redirect(status, result.get("payment_id"))

    @router.get("/building/{building_id}/summary")
    @safe_handler
    async def building_summary(
        self,
        building_id: int,
        month: int = Query(..., ge=1, le=12),
        year: int = Query(..., ge=2000, le=2100),
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await PaymentService(db).get_building_payment_summary(
            building_id, month, year, current_user
        )

    @router.get("/")
    @safe_handler
    async def list_payments(
        self,
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=100),
        tenancy_id: int | None = None,
        building_id: int | None = None,
        month: int | None = Query(None, ge=1, le=12),
        year: int | None = None,
        status: PaymentStatus | None = None,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await PaymentService(db).list_payments(
            current_user,
            page=page,
            limit=limit,
            tenancy_id=tenancy_id,
            building_id=building_id,
            month=month,
            year=year,
            status=status,
        )

    @router.get("/{payment_id}")
    @safe_handler
    async def get_payment(
        self,
        payment_id: int,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await PaymentService(db).get_payment(payment_id, current_user)

    @router.put("/{payment_id}")
    @safe_handler
    async def update_payment(
        self,
        payment_id: int,
        data: PaymentUpdate,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await PaymentService(db).update_payment(payment_id, data, current_user)

    @router.post("/{payment_id}/create-link")
    @safe_handler
    async def create_payment_link(
        self,
        payment_id: int,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await PaymentService(db).create_payment_link(payment_id, current_user)

    @router.delete("/{payment_id}")
    @safe_handler
    async def delete_payment(
        self,
        payment_id: int,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_async),
    ):
        return await PaymentService(db).delete_payment(payment_id, current_user)
