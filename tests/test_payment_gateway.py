import hashlib
import hmac
import unittest
from unittest.mock import MagicMock

import requests

from services.errors import GatewayError
from services.payment_gateway import PaymentGateway, build_receipt


def gateway_with_response(status_code=200, body=None, exc=None):
    session = MagicMock()
    if exc is not None:
        session.post.side_effect = exc
    else:
        response = MagicMock()
        response.ok = 200 <= status_code < 300
        response.status_code = status_code
        response.text = "bad request"
        response.json.return_value = body or {"id": "order_abc", "amount": 80000, "currency": "INR"}
        session.post.return_value = response
    return PaymentGateway("rzp_key", "s3cret", base_url="https://gw.test/v1/", session=session), session


class SignatureTests(unittest.TestCase):
    def test_signature_is_hmac_sha256_of_order_and_payment(self) -> None:
        gateway = PaymentGateway("rzp_key", "s3cret")
        expected = hmac.new(b"s3cret", b"order_1|pay_1", hashlib.sha256).hexdigest()

        self.assertEqual(gateway.compute_signature("order_1", "pay_1"), expected)
        self.assertEqual(gateway.compute_signature("order_1", "pay_1"), gateway.compute_signature("order_1", "pay_1"))

    def test_verify_accepts_only_matching_signature(self) -> None:
        gateway = PaymentGateway("rzp_key", "s3cret")
        good = gateway.compute_signature("order_1", "pay_1")

        self.assertTrue(gateway.verify_signature("order_1", "pay_1", good))
        self.assertFalse(gateway.verify_signature("order_1", "pay_2", good))
        self.assertFalse(gateway.verify_signature("order_1", "pay_1", ""))
        self.assertFalse(gateway.verify_signature("order_1", "pay_1", "é" * 64))

    def test_different_secret_different_signature(self) -> None:
        a = PaymentGateway("k", "one").compute_signature("o", "p")
        b = PaymentGateway("k", "two").compute_signature("o", "p")
        self.assertNotEqual(a, b)

    def test_unconfigured_gateway_reports_unavailable(self) -> None:
        gateway = PaymentGateway(None, None)
        self.assertFalse(gateway.is_configured)
        with self.assertRaises(GatewayError) as ctx:
            gateway.compute_signature("o", "p")
        self.assertEqual(ctx.exception.status_code, 503)


class CreateOrderTests(unittest.TestCase):
    def test_posts_minor_units_with_notes_and_receipt(self) -> None:
        gateway, session = gateway_with_response()

        order = gateway.create_order(800, "INR", notes={"bookingId": "7"}, receipt="bk_7_12345678")

        self.assertEqual(order.order_id, "order_abc")
        self.assertEqual(order.amount, 80000)
        self.assertEqual(order.currency, "INR")

        args, kwargs = session.post.call_args
        self.assertEqual(args[0], "https://gw.test/v1/orders")
        self.assertEqual(kwargs["auth"], ("rzp_key", "s3cret"))
        self.assertEqual(kwargs["json"]["amount"], 80000)
        self.assertEqual(kwargs["json"]["notes"], {"bookingId": "7"})
        self.assertEqual(kwargs["json"]["receipt"], "bk_7_12345678")

    def test_receipt_is_capped(self) -> None:
        gateway, session = gateway_with_response()
        gateway.create_order(100, "INR", notes={}, receipt="x" * 60)
        self.assertEqual(len(session.post.call_args.kwargs["json"]["receipt"]), 40)

    def test_build_receipt_shape(self) -> None:
        receipt = build_receipt("1234567890123456")
        self.assertTrue(receipt.startswith("bk_567890123456_"))
        self.assertLessEqual(len(receipt), 40)

    def test_http_error_raises_gateway_error(self) -> None:
        gateway, _ = gateway_with_response(status_code=401)
        with self.assertRaises(GatewayError) as ctx:
            gateway.create_order(100, "INR", notes={}, receipt="r")
        self.assertEqual(ctx.exception.status_code, 500)

    def test_network_error_raises_gateway_error(self) -> None:
        gateway, _ = gateway_with_response(exc=requests.ConnectionError("down"))
        with self.assertRaises(GatewayError):
            gateway.create_order(100, "INR", notes={}, receipt="r")

    def test_malformed_body_raises_gateway_error(self) -> None:
        gateway, _ = gateway_with_response(body={"unexpected": True})
        with self.assertRaises(GatewayError):
            gateway.create_order(100, "INR", notes={}, receipt="r")

    def test_from_config(self) -> None:
        gateway = PaymentGateway.from_config({
            "RAZORPAY_KEY_ID": "id", "RAZORPAY_KEY_SECRET": "secret",
            "RAZORPAY_API_BASE": "https://gw.example/v1", "PAYMENT_TIMEOUT_SECONDS": 5,
        })
        self.assertTrue(gateway.is_configured)
        self.assertEqual(gateway.base_url, "https://gw.example/v1")
        self.assertEqual(gateway.timeout, 5)


if __name__ == "__main__":
    unittest.main()
