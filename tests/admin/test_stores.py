from decimal import Decimal

from tests.admin.base import AdminApiBase, Store


class AdminStoresTests(AdminApiBase):
    def setUp(self):
        super().setUp()
        self.category = self._category("Cafe")

    def _payload(self, **overrides):
        payload = {
            "name": "Bean There",
            "category_id": self.category.id,
            "phone_number": "9876543210",
            "email": "bean@example.com",
            "address": "12 Park Road",
        }
        payload.update(overrides)
        return payload

    def test_search_pagination_counts_all_matches(self):
        for n in range(12):
            self._store(self.category.id, name=f"Coffee House {n}")
        self._store(self.category.id, name="Tea Corner")

        response = self.client.get("/api/stores", headers=self.headers, params={"search": "coffee", "limit": 5})
        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertEqual(len(data["stores"]), 5)
        self.assertEqual(data["pagination"]["total"], 12)
        self.assertEqual(data["pagination"]["totalPages"], 3)
        self.assertEqual(data["pagination"]["currentPage"], 1)
        self.assertEqual(data["stats"]["totalStores"], 13)

        response = self.client.get(
            "/api/stores", headers=self.headers, params={"search": "coffee", "limit": 5, "offset": 10}
        )
        data = response.json()["data"]
        self.assertEqual(len(data["stores"]), 2)
        self.assertEqual(data["pagination"]["currentPage"], 3)

    def test_list_defaults_to_active_stores_with_aggregates(self):
        active = self._store(self.category.id)
        self._store(self.category.id, is_active=False)
        user = self._user()
        self._transaction(active.id, user.id, bill_amount=Decimal("100"), final_amount=Decimal("80"))
        self._transaction(active.id, user.id, bill_amount=Decimal("50"), final_amount=Decimal("40"))

        data = self.client.get("/api/stores", headers=self.headers).json()["data"]
        self.assertEqual(data["pagination"]["total"], 1)
        row = data["stores"][0]
        self.assertEqual(row["category_name"], "Cafe")
        self.assertEqual(row["total_transactions"], 2)
        self.assertEqual(row["total_final_amount"], 120.0)
        self.assertEqual(row["unique_customers"], 1)
        self.assertEqual(data["stats"]["totalTransactions"], 2)
        self.assertEqual(data["stats"]["totalBillAmount"], 150.0)

        data = self.client.get("/api/stores", headers=self.headers, params={"is_active": "false"}).json()["data"]
        self.assertEqual(data["pagination"]["total"], 1)

    def test_store_without_transactions_reports_zero(self):
        self._store(self.category.id)
        row = self.client.get("/api/stores", headers=self.headers).json()["data"]["stores"][0]
        self.assertEqual(row["total_transactions"], 0)
        self.assertEqual(row["total_bill_amount"], 0)

    def test_categories_list_counts_active_stores(self):
        self._store(self.category.id)
        self._store(self.category.id, is_active=False)
        self._category("Books")
        data = self.client.get("/api/stores/categories/list", headers=self.headers).json()["data"]
        by_name = {row["name"]: row["store_count"] for row in data}
        self.assertEqual(by_name, {"Books": 0, "Cafe": 1})

    def test_create_validates_category_and_email(self):
        response = self.client.post("/api/stores", headers=self.headers, json=self._payload(category_id=999))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Invalid category")

        response = self.client.post("/api/stores", headers=self.headers, json=self._payload(latitude=120))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Latitude must be between -90 and 90")

        response = self.client.post("/api/stores", headers=self.headers, json=self._payload())
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["data"]["store"]["name"], "Bean There")

        response = self.client.post("/api/stores", headers=self.headers, json=self._payload(name="Copy"))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Store with this email already exists")

    def test_detail_has_recent_transactions_and_monthly_stats(self):
        store = self._store(self.category.id)
        user = self._user(first_name="Mia", last_name="Wong")
        self._transaction(store.id, user.id)
        data = self.client.get(f"/api/stores/{store.id}", headers=self.headers).json()["data"]
        self.assertEqual(data["store"]["id"], store.id)
        self.assertEqual(data["recentTransactions"][0]["user_name"], "Mia Wong")
        self.assertEqual(len(data["monthlyStats"]), 1)
        self.assertRegex(data["monthlyStats"][0]["month"], r"^\d{4}-\d{2}$")
        self.assertEqual(data["monthlyStats"][0]["transaction_count"], 1)

    def test_update_toggle_and_partial_fields(self):
        store = self._store(self.category.id)
        response = self.client.put(f"/api/stores/{store.id}", headers=self.headers, json={"is_premium": True})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["data"]["store"]["is_premium"])
        self.assertEqual(self._get(Store, store.id).name, store.name)

        response = self.client.patch(f"/api/stores/{store.id}", headers=self.headers, json={"is_active": False})
        self.assertEqual(response.json()["message"], "Store deactivated successfully")

    def test_delete_blocked_by_transactions(self):
        store = self._store(self.category.id)
        self._transaction(store.id, self._user().id)
        response = self.client.delete(f"/api/stores/{store.id}", headers=self.headers)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Cannot delete store with existing transactions")
        self.assertTrue(self._get(Store, store.id).is_active)

        empty = self._store(self.category.id)
        response = self.client.delete(f"/api/stores/{empty.id}", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertFalse(self._get(Store, empty.id).is_active)
