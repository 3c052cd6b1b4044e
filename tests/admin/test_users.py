from datetime import timedelta
from decimal import Decimal
from unittest import mock

from sqlalchemy.exc import IntegrityError

from tests.admin.base import AdminApiBase, Referral, RewardHistory, User, UserProfile, UserWallet


class AdminUsersTests(AdminApiBase):
    def _payload(self, **overrides):
        payload = {
            "phone_number": "+91 98765 43210",
            "first_name": "Asha",
            "last_name": "Rao",
            "email": "asha@example.com",
        }
        payload.update(overrides)
        return payload

    def test_requires_token(self):
        response = self.client.get("/api/users")
        self.assertEqual(response.status_code, 401)
        self.assertFalse(response.json()["success"])

    def test_create_user_generates_referral_code_and_wallet(self):
        response = self.client.post(
            "/api/users",
            headers=self.headers,
            json=self._payload(gender="female", address_city="Pune"),
        )
        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["message"], "User created successfully")
        user = body["data"]["user"]
        self.assertRegex(user["referral_code"], r"^[A-Z0-9]{8}$")
        self.assertFalse(user["is_vip"])

        with self.SessionLocal() as db:
            self.assertEqual(db.query(UserWallet).filter(UserWallet.user_id == user["id"]).count(), 1)
            profile = db.query(UserProfile).filter(UserProfile.user_id == user["id"]).one()
            self.assertEqual(profile.address_city, "Pune")

    def test_create_duplicate_email_is_rejected(self):
        self.client.post("/api/users", headers=self.headers, json=self._payload())
        response = self.client.post(
            "/api/users",
            headers=self.headers,
            json=self._payload(phone_number="+91 90000 11111"),
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("already exists", response.json()["message"])

        with self.SessionLocal() as db:
            self.assertEqual(db.query(User).count(), 1)

    def test_create_validates_required_fields_and_formats(self):
        response = self.client.post("/api/users", headers=self.headers, json={"first_name": "A"})
        self.assertEqual(response.status_code, 400)
        self.assertTrue(response.json()["message"].startswith("Missing required fields"))

        response = self.client.post("/api/users", headers=self.headers, json=self._payload(email="not-an-email"))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Invalid email format")

    def test_vip_requires_window(self):
        response = self.client.post("/api/users", headers=self.headers, json=self._payload(is_vip=True))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "VIP start date and end date are required for VIP users")

        today = self._today()
        response = self.client.post(
            "/api/users",
            headers=self.headers,
            json=self._payload(
                is_vip=True,
                vip_start_date=str(today),
                vip_end_date=str(today - timedelta(days=1)),
            ),
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "VIP end date must be after start date")

    def test_list_with_search_wallet_and_stats(self):
        asha = self._user(first_name="Asha", email="asha@example.com")
        self._wallet(asha.id, available_cashback=Decimal("25.50"), total_cashback_earned=Decimal("40"))
        ravi = self._user(first_name="Ravi", is_vip=True)
        self._wallet(ravi.id)
        self._user(first_name="NoWallet")
        category = self._category()
        store = self._store(category.id)
        self._transaction(store.id, asha.id, final_amount=Decimal("90"))
        self._transaction(store.id, asha.id, final_amount=Decimal("10"))

        response = self.client.get("/api/users", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertEqual(data["pagination"]["total"], 2)
        self.assertEqual(data["stats"]["totalUsers"], 3)
        self.assertEqual(data["stats"]["vipUsers"], 1)
        self.assertEqual(data["stats"]["totalCashback"], 25.5)

        response = self.client.get("/api/users", headers=self.headers, params={"search": "ASHA"})
        rows = response.json()["data"]["users"]
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]["available_cashback"], 25.5)
        self.assertEqual(rows[0]["total_transactions"], 2)
        self.assertEqual(rows[0]["total_spent"], 100.0)

        response = self.client.get("/api/users", headers=self.headers, params={"include_wallet": "false"})
        self.assertEqual(response.json()["data"]["pagination"]["total"], 3)

    def test_list_rejects_bad_boolean_filter(self):
        response = self.client.get("/api/users", headers=self.headers, params={"isEmailVerified": "maybe"})
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()["success"])

    def test_detail_and_invalid_ids(self):
        user = self._user()
        self._add(
            RewardHistory(user_id=user.id, reward_type="cashback", amount=Decimal("5"), credit_debit="credit")
        )
        response = self.client.get(f"/api/users/{user.id}", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertEqual(data["user"]["id"], user.id)
        self.assertEqual(data["recentTransactions"], [])
        self.assertEqual(len(data["rewards"]), 1)

        self.assertEqual(self.client.get("/api/users/abc", headers=self.headers).status_code, 400)
        response = self.client.get("/api/users/99999", headers=self.headers)
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["message"], "User not found")

    def test_referrals(self):
        referrer = self._user()
        friend = self._user(first_name="Friend")
        self._add(
            Referral(referrer_user_id=referrer.id, referred_user_id=friend.id, referral_status="signed_up"),
            Referral(referrer_user_id=referrer.id, referral_status="link_sent"),
        )
        response = self.client.get(f"/api/users/{referrer.id}/referrals", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertEqual(len(data["referrals"]), 2)
        self.assertEqual(data["stats"]["total_referrals"], 2)
        self.assertEqual(data["stats"]["signed_up_referrals"], 1)
        self.assertEqual(data["stats"]["pending_referrals"], 1)

    def test_update_round_trip_and_vip_clear(self):
        today = self._today()
        user = self._user(is_vip=True, vip_start_date=today, vip_end_date=today + timedelta(days=30))
        response = self.client.put(
            f"/api/users/{user.id}",
            headers=self.headers,
            json={"first_name": "Renamed", "address_city": "Goa"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["user"]["first_name"], "Renamed")

        detail = self.client.get(f"/api/users/{user.id}", headers=self.headers).json()["data"]["user"]
        self.assertEqual(detail["first_name"], "Renamed")
        self.assertEqual(detail["address_city"], "Goa")

        response = self.client.put(f"/api/users/{user.id}", headers=self.headers, json={"is_vip": False})
        self.assertEqual(response.status_code, 200)
        stored = self._get(User, user.id)
        self.assertIsNone(stored.vip_start_date)
        self.assertIsNone(stored.vip_end_date)

    def test_update_empty_body_is_rejected(self):
        user = self._user()
        response = self.client.put(f"/api/users/{user.id}", headers=self.headers, json={})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "No valid fields to update")

    def test_update_duplicate_email_is_rejected(self):
        self._user(email="taken@example.com")
        user = self._user()
        response = self.client.put(f"/api/users/{user.id}", headers=self.headers, json={"email": "taken@example.com"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "User with this email already exists")

    def test_toggle_is_idempotent(self):
        user = self._user()
        for _ in range(2):
            response = self.client.patch(f"/api/users/{user.id}", headers=self.headers, json={"is_active": False})
            self.assertEqual(response.status_code, 200)
            body = response.json()
            self.assertEqual(body["message"], "User deactivated successfully")
            self.assertEqual(body["data"], {"id": user.id, "is_active": False})
        self.assertFalse(self._get(User, user.id).is_active)

        response = self.client.patch(f"/api/users/{user.id}", headers=self.headers, json={})
        self.assertEqual(response.status_code, 400)

    def test_delete_is_soft(self):
        user = self._user()
        response = self.client.delete(f"/api/users/{user.id}", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["message"], "User deleted successfully")
        self.assertIsNotNone(self._get(User, user.id).deleted_at)
        self.assertEqual(self.client.get(f"/api/users/{user.id}", headers=self.headers).status_code, 404)

    def test_stats_skip_deactivated_users(self):
        first = self._user()
        self._user()
        data = self.client.get("/api/users", headers=self.headers).json()["data"]
        self.assertEqual(data["stats"]["totalUsers"], 2)

        self.client.patch(f"/api/users/{first.id}", headers=self.headers, json={"is_active": False})
        data = self.client.get("/api/users", headers=self.headers).json()["data"]
        self.assertEqual(data["pagination"]["total"], 1)
        self.assertEqual(data["stats"]["totalUsers"], 1)

    def test_create_rolls_back_user_when_profile_insert_fails(self):
        failure = IntegrityError("INSERT INTO user_profiles", {}, Exception("profile rejected"))
        with mock.patch("app.api.admin.users.UserProfile", side_effect=failure):
            response = self.client.post("/api/users", headers=self.headers, json=self._payload(gender="female"))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "User already exists")

        with self.SessionLocal() as db:
            self.assertEqual(db.query(User).count(), 0)
            self.assertEqual(db.query(UserWallet).count(), 0)
            self.assertEqual(db.query(UserProfile).count(), 0)
