from datetime import datetime, timedelta, timezone
from decimal import Decimal

from tests.admin.base import AdminApiBase, RewardHistory, RewardType


class AdminRewardsTests(AdminApiBase):
    def _reward(self, **overrides) -> RewardType:
        data = {
            "reward_name": "Signup Bonus",
            "reward_type": "signup",
            "normal_users_reward_value": Decimal("50"),
        }
        data.update(overrides)
        return self._add(RewardType(**data))

    def _history(self, user_id: int, **overrides) -> RewardHistory:
        data = {"user_id": user_id, "reward_type": "signup", "amount": Decimal("50"), "credit_debit": "credit"}
        data.update(overrides)
        return self._add(RewardHistory(**data))

    def test_create_and_duplicate_name(self):
        payload = {"reward_name": "Birthday", "reward_type": "birthday", "normal_users_reward_value": 100}
        response = self.client.post("/api/rewards", headers=self.headers, json=payload)
        self.assertEqual(response.status_code, 201)
        reward = response.json()["data"]["reward"]
        self.assertEqual(reward["reward_name"], "Birthday")
        self.assertTrue(reward["is_active"])

        response = self.client.post("/api/rewards", headers=self.headers, json=payload)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Reward with this name already exists")

        response = self.client.post(
            "/api/rewards",
            headers=self.headers,
            json={**payload, "reward_name": "Negative", "normal_users_reward_value": -5},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Reward values must be non-negative numbers")

    def test_list_aggregates_history_by_code(self):
        self._reward()
        self._reward(reward_name="Referral", reward_type="referral", is_active=False)
        user = self._user()
        self._history(user.id)
        self._history(user.id, amount=Decimal("20"), credit_debit="debit")

        data = self.client.get("/api/rewards", headers=self.headers).json()["data"]
        self.assertEqual(data["stats"]["totalRewards"], 2)
        self.assertEqual(data["stats"]["activeRewards"], 1)
        self.assertEqual(data["stats"]["totalAwarded"], 2)
        by_name = {r["reward_name"]: r for r in data["rewards"]}
        self.assertEqual(by_name["Signup Bonus"]["total_awarded"], 2)
        self.assertEqual(by_name["Signup Bonus"]["total_credits"], 50.0)
        self.assertEqual(by_name["Signup Bonus"]["total_debits"], 20.0)
        self.assertEqual(by_name["Referral"]["total_awarded"], 0)

        data = self.client.get("/api/rewards", headers=self.headers, params={"status": "inactive"}).json()["data"]
        self.assertEqual([r["reward_name"] for r in data["rewards"]], ["Referral"])

    def test_detail_recent_history(self):
        reward = self._reward()
        user = self._user(first_name="Lea", last_name="Kim")
        self._history(user.id)
        data = self.client.get(f"/api/rewards/{reward.reward_id}", headers=self.headers).json()["data"]
        self.assertEqual(data["reward"]["reward_id"], reward.reward_id)
        self.assertEqual(data["recentHistory"][0]["user_name"], "Lea Kim")

    def test_update_toggle_and_delete(self):
        reward = self._reward()
        other = self._reward(reward_name="Other", reward_type="other")
        response = self.client.put(
            f"/api/rewards/{reward.reward_id}", headers=self.headers, json={"reward_name": "Other"}
        )
        self.assertEqual(response.status_code, 400)

        response = self.client.put(
            f"/api/rewards/{reward.reward_id}", headers=self.headers, json={"vip_users_reward_value": 75}
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["reward"]["vip_users_reward_value"], 75.0)

        response = self.client.patch(
            f"/api/rewards/{reward.reward_id}", headers=self.headers, json={"is_active": False}
        )
        self.assertEqual(response.json()["message"], "Reward deactivated successfully")

        self._history(self._user().id)
        response = self.client.delete(f"/api/rewards/{reward.reward_id}", headers=self.headers)
        self.assertEqual(response.status_code, 400)

        response = self.client.delete(f"/api/rewards/{other.reward_id}", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertFalse(self._get(RewardType, other.reward_id).is_active)


class AdminRewardHistoryTests(AdminApiBase):
    def test_list_filters_and_reward_name(self):
        self._add(
            RewardType(reward_name="Cashback", reward_type="cashback", normal_users_reward_value=Decimal("5")),
        )
        store = self._store(self._category().id, name="Metro Mart")
        ana = self._user(first_name="Ana")
        ben = self._user(first_name="Ben")
        old = datetime.now(timezone.utc) - timedelta(days=40)
        self._add(
            RewardHistory(
                user_id=ana.id, store_id=store.id, reward_type="cashback", amount=Decimal("5"), credit_debit="credit"
            ),
            RewardHistory(user_id=ana.id, reward_type="cashback", amount=Decimal("3"), credit_debit="debit"),
            RewardHistory(
                user_id=ben.id, reward_type="signup", amount=Decimal("10"), credit_debit="credit", created_at=old
            ),
        )

        data = self.client.get("/api/reward-history", headers=self.headers).json()["data"]
        self.assertEqual(data["pagination"]["total"], 3)
        self.assertEqual(data["stats"]["totalCredits"], 15.0)
        self.assertEqual(data["stats"]["totalDebits"], 3.0)
        self.assertEqual(data["stats"]["uniqueUsers"], 2)

        data = self.client.get(
            "/api/reward-history", headers=self.headers, params={"credit_debit": "debit"}
        ).json()["data"]
        self.assertEqual(len(data["history"]), 1)

        data = self.client.get("/api/reward-history", headers=self.headers, params={"search": "metro"}).json()["data"]
        self.assertEqual(len(data["history"]), 1)
        self.assertEqual(data["history"][0]["reward_name"], "Cashback")
        self.assertEqual(data["history"][0]["store_name"], "Metro Mart")

        data = self.client.get(
            "/api/reward-history", headers=self.headers, params={"user_id": ben.id}
        ).json()["data"]
        self.assertIsNone(data["history"][0]["reward_name"])

        since = str(datetime.now(timezone.utc).date() - timedelta(days=7))
        data = self.client.get(
            "/api/reward-history", headers=self.headers, params={"date_from": since}
        ).json()["data"]
        self.assertEqual(data["pagination"]["total"], 2)

    def test_history_page_size_allows_large_limits(self):
        user = self._user()
        self._add(RewardHistory(user_id=user.id, reward_type="x", amount=Decimal("1"), credit_debit="credit"))
        data = self.client.get("/api/reward-history", headers=self.headers, params={"limit": 500}).json()["data"]
        self.assertEqual(data["pagination"]["itemsPerPage"], 500)
        data = self.client.get("/api/reward-history", headers=self.headers, params={"limit": 5000}).json()["data"]
        self.assertEqual(data["pagination"]["itemsPerPage"], 1000)

    def test_detail(self):
        user = self._user()
        entry = self._add(RewardHistory(user_id=user.id, reward_type="x", amount=Decimal("1"), credit_debit="credit"))
        response = self.client.get(f"/api/reward-history/{entry.id}", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["history"]["id"], entry.id)
        self.assertEqual(self.client.get("/api/reward-history/424242", headers=self.headers).status_code, 404)
