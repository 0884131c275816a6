"""Payment Gateway Clients — Xendit HTTP client plus timeout/retry wrapper.

Invariants:
    - Every failure surfaces as ExternalServiceError (core/errors.py); httpx
      exceptions never escape this module
    - check_status is retried (read-only); create_qris_invoice is never retried
      (a retry could issue a second invoice for the same order)
    - Every call is bounded by asyncio.wait_for

Design Decisions:
    - httpx.AsyncClient with explicit Timeout and basic auth (secret key as user)
    - Fixed-interval bounded retry instead of backoff: status polling is cheap and
      the customer is waiting on the reply
    - Gateway vocabulary (PAID, SETTLED, REQUIRES_ACTION…) normalized to PaymentStatus
"""

import asyncio
import logging

import httpx

from chatshop.core.domain_types import OrderId, PaymentStatus
from chatshop.core.errors import ErrorContext, ExternalServiceError

logger = logging.getLogger(__name__)

SERVICE = "payment_gateway"

_STATUS_MAP: dict[str, PaymentStatus] = {
    "SUCCEEDED": PaymentStatus.SUCCEEDED,
    "PAID": PaymentStatus.SUCCEEDED,
    "SETTLED": PaymentStatus.SUCCEEDED,
    "COMPLETED": PaymentStatus.SUCCEEDED,
    "PENDING": PaymentStatus.PENDING,
    "REQUIRES_ACTION": PaymentStatus.PENDING,
    "ACTIVE": PaymentStatus.PENDING,
    "FAILED": PaymentStatus.FAILED,
    "CANCELED": PaymentStatus.FAILED,
    "EXPIRED": PaymentStatus.EXPIRED,
    "INACTIVE": PaymentStatus.EXPIRED,
}


def normalize_status(raw: str | None) -> PaymentStatus:
    return _STATUS_MAP.get((raw or "").upper(), PaymentStatus.UNKNOWN)


class XenditGateway:
    """Payment Requests API client — QRIS creation and status lookup."""

    def __init__(
        self,
        base_url: str,
        secret_key: str,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            auth=(secret_key, ""),
            timeout=httpx.Timeout(timeout_seconds),
        )

    async def check_status(self, invoice_id: str) -> PaymentStatus:
        data = await self._request(
            "GET", f"/payment_requests/{invoice_id}",
            ErrorContext(debug_info={"invoice_id": invoice_id}),
        )
        status = normalize_status(data.get("status"))
        if status is PaymentStatus.UNKNOWN:
            logger.warning(f"Unmapped gateway status {data.get('status')!r}")
        return status

    async def create_qris_invoice(self, order_id: OrderId, amount_idr: int) -> str:
        data = await self._request(
            "POST", "/payment_requests",
            ErrorContext(order_id=order_id),
            json={
                "reference_id": order_id,
                "amount": amount_idr,
                "currency": "IDR",
                "payment_method": {
                    "type": "QR_CODE",
                    "reusability": "ONE_TIME_USE",
                    "qr_code": {"channel_code": "QRIS"},
                },
            },
        )
        invoice_id = data.get("id")
        if not invoice_id:
            raise ExternalServiceError(
                SERVICE, "invoice response without id", ErrorContext(order_id=order_id),
            )
        return str(invoice_id)

    async def _request(
        self, method: str, path: str, context: ErrorContext, **kwargs,
    ) -> dict:
        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException:
            raise ExternalServiceError(SERVICE, "request timed out", context)
        except httpx.HTTPStatusError as e:
            raise ExternalServiceError(
                SERVICE, f"HTTP {e.response.status_code}", context,
            )
        except httpx.HTTPError as e:
            raise ExternalServiceError(SERVICE, f"unreachable: {e}", context)
        except ValueError:
            raise ExternalServiceError(SERVICE, "malformed JSON response", context)

    async def aclose(self) -> None:
        await self._client.aclose()


class ResilientPaymentGateway:
    """Adds per-call timeout and bounded fixed-interval retry around a gateway."""

    def __init__(
        self,
        inner,
        timeout_seconds: float = 10.0,
        max_retries: int = 2,
        retry_interval_seconds: float = 1.0,
    ):
        self._inner = inner
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self.retry_interval_seconds = retry_interval_seconds

    async def check_status(self, invoice_id: str) -> PaymentStatus:
        for attempt in range(self.max_retries + 1):
            try:
                return await asyncio.wait_for(
                    self._inner.check_status(invoice_id), self.timeout_seconds,
                )
            except (asyncio.TimeoutError, ExternalServiceError) as e:
                if attempt >= self.max_retries:
                    raise ExternalServiceError(
                        SERVICE,
                        f"status check failed after {attempt + 1} attempt(s): {e}",
                        ErrorContext(debug_info={"invoice_id": invoice_id}),
                    )
                logger.warning(
                    f"Payment status check failed, retrying: {e}",
                    extra={"attempt": attempt + 1},
                )
                await asyncio.sleep(self.retry_interval_seconds)
        raise AssertionError("unreachable")

    async def create_qris_invoice(self, order_id: OrderId, amount_idr: int) -> str:
        try:
            return await asyncio.wait_for(
                self._inner.create_qris_invoice(order_id, amount_idr),
                self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            raise ExternalServiceError(
                SERVICE, "invoice creation timed out", ErrorContext(order_id=order_id),
            )
