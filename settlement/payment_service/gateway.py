"""
Razorpay Orders API client.

A gateway order fixes the amount before the buyer pays; the checkout signature
later proves payment against that order id, so the recorded amount is what ties
a verified payment to an order total.
"""
import httpx
import structlog
from fastapi import Depends

from shared.config.settings import Settings, get_settings
from shared.errors import GatewayUnavailable, PaymentConfigurationError

logger = structlog.get_logger(__name__)


class RazorpayClient:
    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings
        self.transport = transport

    async def create_order(self, amount_paise: int, receipt: str, notes: dict) -> dict:
        if not (self.settings.razorpay_key_id and self.settings.razorpay_secret_key):
            logger.error("gateway_credentials_missing")
            raise PaymentConfigurationError("Payment gateway is not configured")

        payload = {
            "amount": amount_paise,
            "currency": self.settings.currency,
            "receipt": receipt,
            "payment_capture": 1,
            "notes": notes,
        }
        try:
            async with httpx.AsyncClient(
                base_url=self.settings.razorpay_api_url,
                auth=(self.settings.razorpay_key_id, self.settings.razorpay_secret_key),
                timeout=self.settings.gateway_timeout_seconds,
                transport=self.transport,
            ) as client:
                resp = await client.post("/orders", json=payload)
                resp.raise_for_status()
                body = resp.json()
        except httpx.HTTPStatusError as e:
            logger.error("gateway_order_rejected", status=e.response.status_code, receipt=receipt)
            raise GatewayUnavailable("Payment initialization failed. Please try again.") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error("gateway_order_failed", receipt=receipt, error=str(e))
            raise GatewayUnavailable("Payment gateway is unreachable. Please try again.") from e

        if not body.get("id") or body.get("amount") != amount_paise:
            logger.error("gateway_order_malformed", receipt=receipt)
            raise GatewayUnavailable("Payment gateway returned an unexpected order")
        return body


def get_gateway_client(settings: Settings = Depends(get_settings)) -> RazorpayClient:
    return RazorpayClient(settings)
