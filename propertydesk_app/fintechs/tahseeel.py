"""Tahseeel payment gateway (Kuwait, Apple Pay / KNET).

Order creation is a form-encoded POST to ``{api_url}?p=order``; after payment
the gateway redirects the browser to our callback URL with the outcome in the
query string. Field names and casing on both legs are dictated by Tahseeel.
"""

import logging
from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Mapping, Optional, Tuple

import httpx

from core.exceptions import GatewayError, GatewayNotConfiguredError, InvalidInputError
from core.settings import settings
from core.url_parser import parser

logger = logging.getLogger(__name__)

THREE_PLACES = Decimal("0.001")


def format_amount(amount) -> str:
    try:
        value = Decimal(str(amount)).quantize(THREE_PLACES, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError) as e:
        raise InvalidInputError(f"Malformed amount: {amount!r}") from e
    if value <= 0:
        raise InvalidInputError("Amount must be a positive number")
    return f"{value:.3f}"


def is_placeholder(value: Optional[str]) -> bool:
    return not value or value.startswith("your_") or value == "changeme"


@dataclass
class TahseeelOrder:
    link: str
    message: Optional[str] = None


@dataclass
class TahseeelCallback:
    cancelled: bool
    hash: Optional[str]
    inv_id: Optional[str]
    tx_date: Optional[str]
    tx_amount: Optional[Decimal]
    result: Optional[str]
    payment_id: Optional[str]
    post_date: Optional[str]
    tran_id: Optional[str]
    auth: Optional[str]
    ref: Optional[str]
    tx_id: Optional[str]
    tx_mode: Optional[str]
    tx_status: Optional[str]
    is_success: bool

    def as_log_dict(self) -> dict:
        data = asdict(self)
        data["tx_amount"] = str(self.tx_amount) if self.tx_amount is not None else None
        return data


class TahseeelClient:
    def __init__(
        self,
        *,
        uid: str | None = None,
        pwd: str | None = None,
        secret: str | None = None,
        callback_url: str | None = None,
        api_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.uid = settings.TAHSEEEL_UID if uid is None else uid
        self.pwd = settings.TAHSEEEL_PWD if pwd is None else pwd
        self.secret = settings.TAHSEEEL_SECRET if secret is None else secret
        self.callback_url = callback_url or settings.TAHSEEEL_CALLBACK_URL
        self.api_url = api_url or settings.TAHSEEEL_API_URL
        self.timeout = timeout or settings.GATEWAY_TIMEOUT_SECONDS
        self.transport = transport

    @property
    def is_configured(self) -> bool:
        return not any(is_placeholder(v) for v in (self.uid, self.pwd, self.secret))

    def _credentials(self) -> dict:
        return {"uid": self.uid, "pwd": self.pwd, "secret": self.secret}

    async def _post(self, page: str, form: dict) -> dict:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self.transport
            ) as client:
                res = await client.post(
                    self.api_url,
                    params={"p": page},
                    data=form,
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
            res.raise_for_status()
            return res.json()
        except httpx.TimeoutException as e:
            logger.error("Tahseeel %s request timed out after %ss", page, self.timeout)
            raise GatewayError("Payment gateway error: request timed out") from e
        except httpx.HTTPError as e:
            logger.error("Tahseeel %s request failed: %s", page, e)
            raise GatewayError(f"Payment gateway error: {e}") from e
        except ValueError as e:
            logger.error("Tahseeel %s returned a non-JSON body", page)
            raise GatewayError("Payment gateway error: malformed response") from e

    async def create_order(
        self,
        *,
        order_no: str,
        amount,
        customer_name: str,
        customer_email: str | None = None,
        customer_mobile: str | None = None,
        phone_code: str | None = None,
        remarks: str | None = None,
    ) -> TahseeelOrder:
        if not self.is_configured:
            logger.warning(
                "Tahseeel credentials not configured or still using placeholder values"
            )
            raise GatewayNotConfiguredError()

        form = {
            **self._credentials(),
            "order_no": order_no,
            "order_amt": format_amount(amount),
            "delivery_charges": "0.000",
            "total_items": "1",
            "cust_name": customer_name,
            "callback_url": self.callback_url,
            "knet_allowed": "0",
            "aPay_allowed": "1",
        }
        if customer_email:
            form["cust_email"] = customer_email
        if customer_mobile:
            form["cust_mobile"] = customer_mobile
        if phone_code:
            form["phone_code"] = phone_code
        if remarks:
            form["remarks"] = remarks

        data = await self._post("order", form)

        if data.get("error"):
            logger.error("Tahseeel create order error: %s", data.get("msg"))
            raise GatewayError(data.get("msg") or "Failed to create payment link")

        link = data.get("link")
        if not link:
            raise GatewayError("Payment gateway error: no payment link returned")

        logger.info("Tahseeel order created: %s, link: %s", order_no, link)
        return TahseeelOrder(link=link, message=data.get("msg"))

    async def get_order_info(self, inv_id: str, tahseeel_hash: str) -> dict:
        if not self.is_configured:
            raise GatewayNotConfiguredError()

        data = await self._post(
            "order_info", {**self._credentials(), "id": inv_id, "hash": tahseeel_hash}
        )
        if data.get("error"):
            logger.error("Tahseeel get order info error: %s", data.get("msg"))
            raise GatewayError(data.get("msg") or "Failed to fetch order info")
        return data

    @staticmethod
    def extract_link_params(link: str) -> Tuple[Optional[str], Optional[str]]:
        """Pull the correlation ``hash`` and invoice ``id`` out of a payment link.

        A link we cannot parse is still handed to the tenant, so failure here
        is logged and reported as ``(None, None)``.
        """
        try:
            tahseeel_hash, inv_id = parser.query_params(link, "hash", "id")
        except ValueError:
            logger.warning("Could not parse Tahseeel link URL: %s", link)
            return None, None

        if not tahseeel_hash:
            logger.warning("Tahseeel link carries no hash, callbacks cannot be matched: %s", link)
        return tahseeel_hash, inv_id

    @staticmethod
    def parse_callback(raw: Mapping[str, str]) -> TahseeelCallback:
        tx_status = raw.get("tx_status") or None
        result = raw.get("Result") or raw.get("result") or None

        tx_amount = None
        if raw.get("tx_amt"):
            try:
                tx_amount = Decimal(raw["tx_amt"])
            except InvalidOperation:
                logger.warning("Ignoring malformed tx_amt in callback: %r", raw["tx_amt"])

        # The gateway is inconsistent about which of the two fields it fills.
        is_success = (tx_status or "").lower() == "approved" or (
            result or ""
        ).lower() == "captured"

        return TahseeelCallback(
            cancelled=raw.get("cancelled") == "1",
            hash=raw.get("hash") or None,
            inv_id=raw.get("inv_id") or raw.get("order_id") or None,
            tx_date=raw.get("tx_date") or None,
            tx_amount=tx_amount,
            result=result,
            payment_id=raw.get("PaymentID") or None,
            post_date=raw.get("PostDate") or None,
            tran_id=raw.get("TranID") or None,
            auth=raw.get("Auth") or None,
            ref=raw.get("Ref") or None,
            tx_id=raw.get("tx_id") or None,
            tx_mode=raw.get("tx_mode") or None,
            tx_status=tx_status,
            is_success=is_success,
        )
