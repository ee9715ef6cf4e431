import logging
import random
import time

from core.check_permission import CheckRolePermission
from core.paginate import PaginatePage
from core.settings import settings
from fintechs.tahseeel import TahseeelClient
from models.enums import PaymentLinkStatus
from models.models import PaymentLink
from repos.payment_link_repo import PaymentLinkRepo
from schemas.schema import PaymentLinkCreate, PaymentLinkOut

logger = logging.getLogger(__name__)


class PaymentLinkService:
    """Ad-hoc collection links that are not tied to a tenancy payment."""

    def __init__(self, db, gateway: TahseeelClient | None = None):
        self.db = db
        self.repo: PaymentLinkRepo = PaymentLinkRepo(db)
        self.gateway: TahseeelClient = gateway or TahseeelClient()
        self.permission: CheckRolePermission = CheckRolePermission()
        self.paginate: PaginatePage = PaginatePage()

    async def generate_link(self, data: PaymentLinkCreate, current_user):
        await self.permission.check_admin_or_owner(current_user)

        order_no = f"PL-{int(time.time() * 1000)}-{random.randint(0, 999)}"
        order = await self.gateway.create_order(
            order_no=order_no,
            amount=data.amount,
            customer_name=data.name,
            customer_email=data.customer_email,
            customer_mobile=data.customer_mobile,
            phone_code=settings.TAHSEEEL_PHONE_CODE if data.customer_mobile else None,
            remarks=data.remarks,
        )

        link = await self.repo.create(
            PaymentLink(
                order_no=order_no,
                cust_name=data.name,
                amount=data.amount,
                payment_url=order.link,
                status=PaymentLinkStatus.PENDING,
                created_by=current_user.id,
            )
        )
        logger.info("Standalone payment link %s created by %s", order_no, current_user.id)
        return PaymentLinkOut.model_validate(link).model_dump(mode="json")

    async def list_payment_links(
        self,
        current_user,
        page: int = 1,
        limit: int = 20,
        status: PaymentLinkStatus | None = None,
    ):
        await self.permission.check_admin_or_owner(current_user)
        links = await self.repo.find_all(limit, self.paginate.offset(page, limit), status)
        total = await self.repo.count(status)
        return self.paginate.envelope(
            self.paginate.get_list_json_dumps(
                PaymentLinkOut.model_validate(link) for link in links
            ),
            page,
            limit,
            total,
        )
