"""
Stripe refunds.

Deposits are captured upstream by the booking site; this module only gives
money back. Callers treat a refund as best-effort: it never raises, it
reports success or failure and the caller decides what to record.
"""

import logging
from typing import Optional

import httpx

from ..config import STRIPE_API_URL, STRIPE_SECRET_KEY, STRIPE_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


def to_pence(amount: float) -> int:
    return int(round(amount * 100))


class StripeRefundGateway:
    def __init__(
        self,
        api_key: Optional[str] = STRIPE_SECRET_KEY,
        api_url: str = STRIPE_API_URL,
        timeout: float = STRIPE_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def refund(self, payment_reference: str, amount: float) -> dict:
        """Refund part or all of a payment intent. Returns {success, refund_id, error}."""
        if not self.api_key:
            logger.error("❌ STRIPE_SECRET_KEY not configured - cannot process refund")
            return {"success": False, "refund_id": None, "error": "Stripe not configured"}

        pence = to_pence(amount)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as http_client:
                response = await http_client.post(
                    f"{self.api_url}/refunds",
                    data={
                        "payment_intent": payment_reference,
                        "amount": pence,
                        "reason": "requested_by_customer",
                    },
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        # Same key for the same refund so worker retries cannot refund twice
                        "Idempotency-Key": f"refund-{payment_reference}-{pence}",
                    },
                )
        except httpx.HTTPError as e:
            logger.error(f"❌ Stripe refund request failed for {payment_reference}: {e}")
            return {"success": False, "refund_id": None, "error": str(e)}

        if response.status_code != 200:
            try:
                message = response.json().get("error", {}).get("message", response.text)
            except ValueError:
                message = response.text
            logger.error(
                f"❌ Stripe refund rejected for {payment_reference}: HTTP {response.status_code} {message}"
            )
            return {"success": False, "refund_id": None, "error": message}

        refund = response.json()
        logger.info(f"💷 Refund {refund.get('id')} issued: £{amount:.2f} on {payment_reference}")
        return {"success": True, "refund_id": refund.get("id"), "error": None}
