"""Razorpay-style payment gateway client.

Orders are created over the gateway's REST API; payments are authenticated
by the HMAC-SHA256 signature the checkout hands back to the client.
"""
import hashlib
import hmac
import logging
import time
from dataclasses import dataclass
from typing import Dict, Optional

import requests

from services.errors import GatewayError

logger = logging.getLogger(__name__)

RECEIPT_MAX_LEN = 40


@dataclass(frozen=True)
class GatewayOrder:
    order_id: str
    amount: int  # minor units
    currency: str


def build_receipt(booking_id) -> str:
    millis = str(int(time.time() * 1000))
    return f"bk_{str(booking_id)[-12:]}_{millis[-8:]}"[:RECEIPT_MAX_LEN]


class PaymentGateway:
    def __init__(
        self,
        key_id: Optional[str],
        key_secret: Optional[str],
        *,
        base_url: str = "https://api.razorpay.com/v1",
        timeout: float = 15,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.key_id = key_id
        self.key_secret = key_secret
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config) -> "PaymentGateway":
        return cls(
            config.get("RAZORPAY_KEY_ID"),
            config.get("RAZORPAY_KEY_SECRET"),
            base_url=config.get("RAZORPAY_API_BASE", "https://api.razorpay.com/v1"),
            timeout=config.get("PAYMENT_TIMEOUT_SECONDS", 15),
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.key_id and self.key_secret)

    def _require_config(self) -> None:
        if not self.is_configured:
            raise GatewayError("Payments are unavailable: gateway keys not configured", status_code=503)

    def create_order(self, amount_major: int, currency: str, notes: Dict[str, str], receipt: str) -> GatewayOrder:
        self._require_config()

        payload = {
            "amount": int(amount_major) * 100,
            "currency": currency,
            "receipt": receipt[:RECEIPT_MAX_LEN],
            "notes": notes,
        }
        try:
            response = self.session.post(
                f"{self.base_url}/orders",
                json=payload,
                auth=(self.key_id, self.key_secret),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("Payment order request failed: %s", exc)
            raise GatewayError("Failed to create payment order") from exc

        if not response.ok:
            logger.error("Payment gateway returned %s: %s", response.status_code, response.text[:500])
            raise GatewayError("Failed to create payment order")

        try:
            body = response.json()
            return GatewayOrder(
                order_id=body["id"],
                amount=int(body.get("amount", payload["amount"])),
                currency=body.get("currency", currency),
            )
        except (ValueError, KeyError, TypeError) as exc:
            raise GatewayError("Malformed payment order response") from exc

    def compute_signature(self, order_id: str, payment_id: str) -> str:
        self._require_config()
        message = f"{order_id}|{payment_id}".encode("utf-8")
        return hmac.new(self.key_secret.encode("utf-8"), message, hashlib.sha256).hexdigest()

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        if not signature:
            return False
        expected = self.compute_signature(order_id, payment_id)
        return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))
