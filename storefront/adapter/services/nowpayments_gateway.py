"""NowPayments Gateway Implementation

Hosted invoices and payment status polling over the NowPayments REST API.
Every call is bounded by a timeout; transport errors, timeouts and error
responses all surface as GatewayError.
"""

import logging
from typing import Any, Optional
import httpx
from pydantic import ValidationError as PydanticValidationError
from storefront.app.services.payment_gateway import (
    GatewayCallback,
    GatewayInvoice,
    InvoiceRequest,
    PaymentGateway,
)
from storefront.domain.errors import GatewayError

logger = logging.getLogger(__name__)


class NowPaymentsGateway(PaymentGateway):
    """
    httpx client for the NowPayments API

    Args:
        api_key: Sent as the x-api-key header
        base_url: Sandbox or live API root (e.g. https://api.nowpayments.io/v1)
        timeout: Per-request timeout in seconds
        transport: Optional httpx transport (used by tests)
    """

    name = "nowpayments"

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def create_invoice(self, request: InvoiceRequest) -> GatewayInvoice:
        payload = {
            "price_amount": float(request.price_amount),
            "price_currency": request.price_currency.lower(),
            "order_id": request.order_id,
            "order_description": request.order_description,
        }
        for key in ("ipn_callback_url", "success_url", "cancel_url"):
            value = getattr(request, key)
            if value:
                payload[key] = value

        data = await self._request("POST", "/invoice", json=payload)

        invoice_id = data.get("id")
        invoice_url = data.get("invoice_url")
        if not invoice_id or not invoice_url:
            raise GatewayError(
                "Payment gateway returned an incomplete invoice",
                reason=str(data)[:500],
            )

        logger.info(f"NowPayments invoice {invoice_id} created for {request.order_id}")
        return GatewayInvoice(invoice_id=str(invoice_id), invoice_url=invoice_url, raw=data)

    async def get_payment_status(self, payment_id: str) -> GatewayCallback:
        data = await self._request("GET", f"/payment/{payment_id}")
        try:
            return GatewayCallback.model_validate(data)
        except PydanticValidationError as e:
            raise GatewayError(
                "Payment gateway returned an unrecognized payment status",
                reason=str(e)[:500],
            ) from e

    async def _request(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self.transport
            ) as client:
                response = await client.request(
                    method,
                    path,
                    headers={"x-api-key": self.api_key, "Content-Type": "application/json"},
                    **kwargs,
                )
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as e:
            logger.error(f"NowPayments {method} {path} timed out after {self.timeout}s")
            raise GatewayError("Payment gateway timed out", reason=str(e)) from e
        except httpx.HTTPStatusError as e:
            logger.error(f"NowPayments {method} {path} failed with {e.response.status_code}")
            raise GatewayError(
                f"Payment gateway returned HTTP {e.response.status_code}",
                reason=e.response.text[:500],
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"NowPayments {method} {path} failed: {e}")
            raise GatewayError("Payment gateway unreachable", reason=str(e)) from e
        except ValueError as e:
            raise GatewayError("Payment gateway returned invalid JSON", reason=str(e)) from e

        if not isinstance(data, dict):
            raise GatewayError("Payment gateway returned an unexpected payload", reason=str(data)[:500])
        return data
