import unittest

from models.audit_log import AuditLog
from models.session import Session
from services import booking_service
from support import AppTestCase, next_open_day, sign


class AuthTests(AppTestCase):
    def register(self, email="new@example.com", password="correct horse"):
        return self.client.post("/auth/register", json={"email": email, "password": password, "name": "Asha"})

    def login(self, email="new@example.com", password="correct horse"):
        return self.client.post("/auth/login", json={"email": email, "password": password})

    def test_register_login_me_logout(self) -> None:
        resp = self.register(email="  New@Example.com ")
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.get_json()["user"]["email"], "new@example.com")
        self.assertEqual(resp.get_json()["user"]["roles"], ["USER"])

        resp = self.login()
        self.assertEqual(resp.status_code, 200)
        token = resp.get_json()["token"]
        self.assertEqual(resp.get_json()["token_type"], "Bearer")
        # only the hash is stored
        self.assertIsNone(Session.query.filter_by(token_hash=token).first())

        me = self.client.get("/auth/me", headers=self.auth(token))
        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.get_json()["name"], "Asha")

        self.assertEqual(self.client.post("/auth/logout", headers=self.auth(token)).status_code, 200)
        self.assertEqual(self.client.get("/auth/me", headers=self.auth(token)).status_code, 401)

    def test_register_validation_and_duplicates(self) -> None:
        bad = self.client.post("/auth/register", json={"email": "nope", "password": "short"})
        self.assertEqual(bad.status_code, 400)
        self.assertEqual(set(bad.get_json()["details"]), {"email", "password"})

        self.assertEqual(self.register().status_code, 201)
        self.assertEqual(self.register().status_code, 409)

    def test_wrong_password(self) -> None:
        self.register()
        resp = self.login(password="wrong password")

        self.assertEqual(resp.status_code, 401)
        self.assertEqual(AuditLog.query.filter_by(action="LOGIN_FAIL").count(), 1)

    def test_garbage_bearer_token(self) -> None:
        self.assertEqual(self.client.get("/auth/me", headers=self.auth("not-a-token")).status_code, 401)
        self.assertEqual(self.client.get("/auth/me", headers={"Authorization": "Basic abc"}).status_code, 401)


class AdminTests(AppTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.user, self.user_token = self.make_user()
        self.admin, self.admin_token = self.make_user("admin@example.com", admin=True)
        provider = self.make_provider()
        day = next_open_day()
        self.add_slot(provider, day)
        self.booking = booking_service.create_booking(self.user, provider.id, day, "11:00 AM", "Online")

    def test_listing_requires_admin(self) -> None:
        self.assertEqual(self.client.get("/admin/bookings").status_code, 401)
        self.assertEqual(self.client.get("/admin/bookings", headers=self.auth(self.user_token)).status_code, 403)

        resp = self.client.get("/admin/bookings?status=Pending", headers=self.auth(self.admin_token))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([b["id"] for b in resp.get_json()], [self.booking.id])

        resp = self.client.get("/admin/bookings?status=Paid", headers=self.auth(self.admin_token))
        self.assertEqual(resp.status_code, 400)

    def test_complete_confirmed_booking(self) -> None:
        url = f"/admin/bookings/{self.booking.id}/complete"
        self.assertEqual(self.client.patch(url, headers=self.auth(self.admin_token)).status_code, 400)

        self.issue_order(self.booking)
        booking_service.verify_payment(self.booking.id, self.user, "order_1", "pay_1", sign("order_1", "pay_1"))
        resp = self.client.patch(url, headers=self.auth(self.admin_token))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json()["booking"]["status"], "Completed")

        self.assertEqual(self.client.patch(url, headers=self.auth(self.user_token)).status_code, 403)


if __name__ == "__main__":
    unittest.main()
