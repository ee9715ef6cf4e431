"""Tests for standalone payment links."""

from decimal import Decimal
from urllib.parse import parse_qs

import pytest
from sqlalchemy import select

from core.exceptions import ForbiddenError, GatewayNotConfiguredError
from models.enums import PaymentLinkStatus
from models.models import PaymentLink
from schemas.schema import PaymentLinkCreate
from services.payment_link_service import PaymentLinkService


class TestGenerateLink:
    @pytest.mark.asyncio
    async def test_link_is_created_and_stored(
        self, session, database, seed, make_gateway, gateway_link_handler
    ):
        service = PaymentLinkService(session, gateway=make_gateway(gateway_link_handler))

        result = await service.generate_link(
            PaymentLinkCreate(
                name="  Walk-in Visitor ",
                amount=Decimal("25"),
                customer_mobile="99887766",
                remarks="Parking fee",
            ),
            seed.owner,
        )

        assert result["order_no"].startswith("PL-")
        assert result["cust_name"] == "Walk-in Visitor"
        assert result["payment_url"] == "https://pay.example/x?hash=H123&id=INV9"
        assert result["status"] == PaymentLinkStatus.PENDING.value

        form = {
            k: v[0]
            for k, v in parse_qs(gateway_link_handler.calls[0].content.decode()).items()
        }
        assert form["order_no"] == result["order_no"]
        assert form["order_amt"] == "25.000"
        assert form["phone_code"] == "965"

        async with database.session() as s:
            stored = (await s.execute(select(PaymentLink))).scalar_one()
        assert stored.created_by == seed.owner.id
        assert stored.amount == Decimal("25.000")

    @pytest.mark.asyncio
    async def test_tenant_cannot_generate(self, session, seed, make_gateway, gateway_link_handler):
        service = PaymentLinkService(session, gateway=make_gateway(gateway_link_handler))

        with pytest.raises(ForbiddenError):
            await service.generate_link(
                PaymentLinkCreate(name="Me", amount=Decimal("5")), seed.tenant
            )
        assert gateway_link_handler.calls == []

    @pytest.mark.asyncio
    async def test_unconfigured_gateway_stores_nothing(
        self, session, database, seed, make_gateway, gateway_link_handler
    ):
        service = PaymentLinkService(
            session, gateway=make_gateway(gateway_link_handler, secret="")
        )

        with pytest.raises(GatewayNotConfiguredError):
            await service.generate_link(
                PaymentLinkCreate(name="Walk-in", amount=Decimal("5")), seed.admin
            )
        async with database.session() as s:
            assert (await s.execute(select(PaymentLink))).scalars().all() == []


class TestListPaymentLinks:
    @pytest.mark.asyncio
    async def test_list_with_status_filter(self, session, database, seed):
        async with database.session() as s:
            s.add_all(
                [
                    PaymentLink(order_no="PL-1", cust_name="A", amount=Decimal("1")),
                    PaymentLink(
                        order_no="PL-2", cust_name="B", amount=Decimal("2"),
                        status=PaymentLinkStatus.PAID,
                    ),
                ]
            )
            await s.commit()
        service = PaymentLinkService(session)

        everything = await service.list_payment_links(seed.admin)
        paid = await service.list_payment_links(seed.admin, status=PaymentLinkStatus.PAID)

        assert everything["pagination"]["total_items"] == 2
        assert [link["order_no"] for link in paid["items"]] == ["PL-2"]
