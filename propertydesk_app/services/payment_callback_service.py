import logging
from datetime import datetime, timezone
from typing import Mapping

from fintechs.tahseeel import TahseeelClient
from models.enums import PaymentStatus
from repos.payment_repo import PaymentRepo
from schemas.schema import CallbackResult
from services.notification_service import NotificationEmitter, emit_quietly

logger = logging.getLogger(__name__)

NOT_FOUND = "Payment not found for callback"


class PaymentCallbackService:
    """Applies a Tahseeel redirect callback to the payment it belongs to.

    The gateway never echoes our payment id; the correlation hash stored at
    link-creation time is the only lookup key. Callbacks can arrive more than
    once, so the PAID transition is conditional and ``paid_at`` is only ever
    written by the first successful callback.
    """

    def __init__(self, db, notifier: NotificationEmitter | None = None):
        self.db = db
        self.repo: PaymentRepo = PaymentRepo(db)
        self.notifier: NotificationEmitter = notifier or NotificationEmitter()

    async def handle_callback(self, raw: Mapping[str, str]) -> dict:
        parsed = TahseeelClient.parse_callback(raw)
        logger.info("Tahseeel callback received: %s", parsed.as_log_dict())

        if not parsed.hash:
            logger.warning("Tahseeel callback without hash, cannot match: %s", dict(raw))
            return CallbackResult(success=False, error=NOT_FOUND).model_dump()

        payment = await self.repo.get_by_hash(parsed.hash)
        if not payment:
            logger.warning("Could not find payment for Tahseeel callback: %s", dict(raw))
            return CallbackResult(success=False, error=NOT_FOUND).model_dump()

        audit = {
            "tahseeel_tx_id": parsed.tx_id,
            "tahseeel_payment_id": parsed.payment_id,
            "tahseeel_result": parsed.result,
            "tahseeel_tx_status": parsed.tx_status,
        }
        if parsed.inv_id and not payment.tahseeel_inv_id:
            audit["tahseeel_inv_id"] = parsed.inv_id

        became_paid = False
        try:
            await self.repo.update(
                payment.id, {k: v for k, v in audit.items() if v is not None}
            )
            if parsed.is_success:
                became_paid = await self.repo.mark_paid(
                    payment.id, datetime.now(timezone.utc)
                )
            await self.repo.db_commit()
        except Exception:
            await self.repo.db_rollback()
            raise

        if parsed.is_success:
            if became_paid:
                logger.info("Payment %s marked as PAID via Tahseeel", payment.id)
            else:
                logger.info("Payment %s already PAID, callback replay ignored", payment.id)
        elif parsed.cancelled:
            logger.info("Payment %s cancelled by user", payment.id)
        else:
            logger.info("Payment %s Tahseeel status: %s", payment.id, parsed.tx_status)

        if became_paid:
            await self._confirm(payment.id)

        current = await self.repo.get_by_id(payment.id)
        return CallbackResult(
            success=parsed.is_success, payment_id=payment.id, status=current.status
        ).model_dump()

    async def _confirm(self, payment_id: int):
        record = await self.repo.get_detail(payment_id)
        await emit_quietly(
            self.notifier.send_payment_confirmation,
            user_id=record.tenant.id,
            amount=record.payment.amount,
            month=record.payment.month,
            year=record.payment.year,
            unit_number=record.unit.unit_number,
            building_name=record.building.name,
        )
