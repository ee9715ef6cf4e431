"""Tests for monthly payment generation and the overdue sweep."""

from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select

from core.exceptions import ForbiddenError, InvalidInputError
from models.enums import NotificationType, PaymentStatus
from models.models import Notification, Payment
from repos import payment_repo
from schemas.schema import GeneratePaymentsIn
from services.notification_service import NotificationEmitter
from services.payment_service import PaymentService


def _service(session, notifier, today=date(2024, 6, 15)):
    return PaymentService(session, notifier=notifier, today=lambda: today)


async def _payments(database):
    async with database.session() as s:
        return (
            await s.execute(select(Payment).order_by(Payment.tenancy_id, Payment.year, Payment.month))
        ).scalars().all()


async def _add_payment(database, tenancy_id, month, year, status):
    async with database.session() as s:
        payment = Payment(
            tenancy_id=tenancy_id,
            month=month,
            year=year,
            amount=Decimal("1500.000"),
            status=status,
        )
        s.add(payment)
        await s.commit()
        return payment


class TestGenerateMonthlyPayments:
    @pytest.mark.asyncio
    async def test_one_pending_payment_per_tenancy(
        self, session, database, seed, add_tenancy, notifier
    ):
        await add_tenancy(
            unit_id=1, tenant_id=3, start=date(2024, 1, 1), end=date(2024, 12, 31),
            rent=Decimal("1500.000"),
        )

        result = await _service(session, notifier).generate_monthly_payments(
            GeneratePaymentsIn(month=6, year=2024), seed.admin
        )

        assert result == {
            "message": "Generated 1 payment records for 6/2024",
            "created": 1,
            "overdue_marked": 0,
        }
        payments = await _payments(database)
        assert len(payments) == 1
        assert payments[0].amount == Decimal("1500.000")
        assert payments[0].status == PaymentStatus.PENDING
        assert (payments[0].month, payments[0].year) == (6, 2024)
        assert payments[0].created_by == seed.admin.id

    @pytest.mark.asyncio
    async def test_generation_is_idempotent(
        self, session, database, seed, add_tenancy, notifier
    ):
        await add_tenancy(unit_id=1, tenant_id=3)
        await add_tenancy(unit_id=2, tenant_id=4, rent=Decimal("1200.000"))
        service = _service(session, notifier)

        first = await service.generate_monthly_payments(
            GeneratePaymentsIn(month=6, year=2024), seed.admin
        )
        second = await service.generate_monthly_payments(
            GeneratePaymentsIn(month=6, year=2024), seed.admin
        )

        assert first["created"] == 2
        assert second["created"] == 0
        assert len(await _payments(database)) == 2

    @pytest.mark.asyncio
    async def test_only_overlapping_active_tenancies_are_billed(
        self, session, database, seed, add_tenancy, notifier
    ):
        # overlaps June: started before, open ended
        await add_tenancy(unit_id=1, tenant_id=3, start=date(2023, 1, 1), end=None)
        # ends on the first day of June: still billed
        await add_tenancy(unit_id=2, tenant_id=4, start=date(2024, 1, 1), end=date(2024, 6, 1))
        # starts after June
        await add_tenancy(unit_id=3, tenant_id=3, start=date(2024, 7, 1), end=None)
        # ended in May
        await add_tenancy(unit_id=4, tenant_id=4, start=date(2024, 1, 1), end=date(2024, 5, 31))
        # inactive history row on unit 1
        await add_tenancy(unit_id=1, tenant_id=4, is_active=False)

        result = await _service(session, notifier).generate_monthly_payments(
            GeneratePaymentsIn(month=6, year=2024), seed.admin
        )

        assert result["created"] == 2
        billed = sorted(p.tenancy_id for p in await _payments(database))
        assert billed == [1, 2]

    @pytest.mark.asyncio
    async def test_last_day_of_month_boundary(
        self, session, database, seed, add_tenancy, notifier
    ):
        await add_tenancy(unit_id=1, tenant_id=3, start=date(2024, 2, 29), end=None)

        result = await _service(session, notifier).generate_monthly_payments(
            GeneratePaymentsIn(month=2, year=2024), seed.admin
        )

        assert result["created"] == 1

    @pytest.mark.asyncio
    async def test_reminder_sent_for_each_new_payment(
        self, session, database, seed, add_tenancy, notifier
    ):
        await add_tenancy(unit_id=1, tenant_id=3)
        service = _service(session, notifier)

        await service.generate_monthly_payments(GeneratePaymentsIn(month=6, year=2024), seed.admin)
        await service.generate_monthly_payments(GeneratePaymentsIn(month=6, year=2024), seed.admin)

        async with database.session() as s:
            notes = (await s.execute(select(Notification))).scalars().all()
        assert len(notes) == 1
        note = notes[0]
        assert note.user_id == seed.tenant.id
        assert note.type == NotificationType.PAYMENT_REMINDER
        assert note.title == "Rent Payment Reminder"
        assert note.message == (
            "Your rent of 1500.000 KWD for June 2024 (Unit 101, Salmiya Towers) "
            "is due. Please make your payment."
        )
        assert note.link == "/payments"
        assert note.extra["month"] == 6
        assert note.extra["unit_number"] == "101"

    @pytest.mark.asyncio
    async def test_notification_failure_does_not_undo_generation(
        self, session, database, seed, add_tenancy, caplog
    ):
        await add_tenancy(unit_id=1, tenant_id=3)
        await add_tenancy(unit_id=2, tenant_id=4)
        failing = NotificationEmitter(database.session)
        failing.send_payment_reminder = AsyncMock(side_effect=RuntimeError("sink down"))

        with caplog.at_level("WARNING"):
            result = await _service(session, failing).generate_monthly_payments(
                GeneratePaymentsIn(month=6, year=2024), seed.admin
            )

        assert result["created"] == 2
        assert failing.send_payment_reminder.await_count == 2
        assert len(await _payments(database)) == 2
        assert "Notification" in caplog.text

    @pytest.mark.asyncio
    @pytest.mark.parametrize("month", [0, 13])
    async def test_month_out_of_range(self, session, seed, notifier, month):
        with pytest.raises(InvalidInputError):
            await _service(session, notifier).generate_monthly_payments(
                GeneratePaymentsIn(month=month, year=2024), seed.admin
            )

    @pytest.mark.asyncio
    async def test_only_admin_can_generate(self, session, seed, notifier):
        with pytest.raises(ForbiddenError):
            await _service(session, notifier).generate_monthly_payments(
                GeneratePaymentsIn(month=6, year=2024), seed.owner
            )

    @pytest.mark.asyncio
    async def test_unsupported_dialect_is_a_runtime_error(
        self, session, seed, add_tenancy, notifier, monkeypatch
    ):
        await add_tenancy(unit_id=1, tenant_id=3)
        monkeypatch.setattr(payment_repo, "_UPSERT_INSERTS", {})

        with pytest.raises(RuntimeError, match="not supported on sqlite"):
            await _service(session, notifier).generate_monthly_payments(
                GeneratePaymentsIn(month=6, year=2024), seed.admin
            )


class TestOverdueSweep:
    @pytest.mark.asyncio
    async def test_stale_pending_payments_become_overdue(
        self, session, database, seed, add_tenancy, notifier
    ):
        tenancy = await add_tenancy(unit_id=1, tenant_id=3)
        await _add_payment(database, tenancy.id, 4, 2024, PaymentStatus.PENDING)
        await _add_payment(database, tenancy.id, 5, 2024, PaymentStatus.PAID)
        await _add_payment(database, tenancy.id, 12, 2023, PaymentStatus.OVERDUE)
        await _add_payment(database, tenancy.id, 6, 2024, PaymentStatus.PENDING)

        result = await _service(session, notifier, today=date(2024, 6, 15)).generate_monthly_payments(
            GeneratePaymentsIn(month=6, year=2024), seed.admin
        )

        assert result["overdue_marked"] == 1
        assert result["created"] == 0
        by_period = {(p.year, p.month): p.status for p in await _payments(database)}
        assert by_period == {
            (2023, 12): PaymentStatus.OVERDUE,
            (2024, 4): PaymentStatus.OVERDUE,
            (2024, 5): PaymentStatus.PAID,
            (2024, 6): PaymentStatus.PENDING,
        }

    @pytest.mark.asyncio
    async def test_sweep_is_monotonic(self, session, database, seed, add_tenancy, notifier):
        tenancy = await add_tenancy(unit_id=1, tenant_id=3)
        await _add_payment(database, tenancy.id, 3, 2024, PaymentStatus.PENDING)
        service = _service(session, notifier, today=date(2024, 6, 1))

        await service.generate_monthly_payments(GeneratePaymentsIn(month=6, year=2024), seed.admin)
        again = await service.generate_monthly_payments(
            GeneratePaymentsIn(month=6, year=2024), seed.admin
        )

        assert again["overdue_marked"] == 0
        async with database.session() as s:
            statuses = dict(
                (await s.execute(select(Payment.month, Payment.status))).all()
            )
        assert statuses[3] == PaymentStatus.OVERDUE
        assert statuses[6] == PaymentStatus.PENDING

    @pytest.mark.asyncio
    async def test_sweep_runs_across_year_boundary(
        self, session, database, seed, add_tenancy, notifier
    ):
        tenancy = await add_tenancy(unit_id=1, tenant_id=3, start=date(2024, 1, 1), end=None)
        await _add_payment(database, tenancy.id, 12, 2024, PaymentStatus.PENDING)

        result = await _service(session, notifier, today=date(2025, 1, 2)).generate_monthly_payments(
            GeneratePaymentsIn(month=1, year=2025), seed.admin
        )

        assert result["overdue_marked"] == 1
        assert result["created"] == 1
        async with database.session() as s:
            assert await s.scalar(select(func.count(Payment.id))) == 2
