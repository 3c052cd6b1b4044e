from datetime import datetime, timedelta, timezone
from decimal import Decimal

from tests.admin.base import AdminApiBase, Transaction


class AdminTransactionsTests(AdminApiBase):
    def setUp(self):
        super().setUp()
        self.category = self._category()
        self.store = self._store(self.category.id, name="Spice Route")
        self.user = self._user(first_name="Kiran", last_name="Das")

    def _payload(self, **overrides):
        payload = {
            "store_id": self.store.id,
            "user_id": self.user.id,
            "bill_amount": 250,
            "final_amount": 225,
            "payment_method": "upi",
        }
        payload.update(overrides)
        return payload

    def test_create_generates_number_and_defaults(self):
        response = self.client.post("/api/transactions", headers=self.headers, json=self._payload())
        self.assertEqual(response.status_code, 201)
        txn = response.json()["data"]["transaction"]
        self.assertRegex(txn["transaction_number"], r"^TXN\d{16}$")
        self.assertEqual(txn["payment_status"], "pending")
        self.assertEqual(txn["store_name"], "Spice Route")
        self.assertEqual(txn["user_name"], "Kiran Das")
        self.assertEqual(txn["vendor_discount"], 0)

    def test_create_rejects_unknown_store_and_bad_amounts(self):
        response = self.client.post("/api/transactions", headers=self.headers, json=self._payload(store_id=999))
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["message"], "Store not found or inactive")

        response = self.client.post("/api/transactions", headers=self.headers, json=self._payload(bill_amount=0))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Bill amount must be greater than 0")

        response = self.client.post(
            "/api/transactions", headers=self.headers, json=self._payload(cashback_used=-1)
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "cashback_used must be a non-negative number")

        with self.SessionLocal() as db:
            self.assertEqual(db.query(Transaction).count(), 0)

    def test_duplicate_transaction_number(self):
        self._transaction(self.store.id, self.user.id, transaction_number="TXN-FIXED")
        response = self.client.post(
            "/api/transactions", headers=self.headers, json=self._payload(transaction_number="TXN-FIXED")
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Transaction number already exists")

    def test_list_filters_and_stats(self):
        other_store = self._store(self.category.id, name="Noodle Bar")
        self._transaction(self.store.id, self.user.id, payment_status="completed", final_amount=Decimal("100"))
        self._transaction(self.store.id, self.user.id, payment_status="pending", final_amount=Decimal("50"))
        self._transaction(other_store.id, self.user.id, payment_status="cancelled", final_amount=Decimal("70"))

        data = self.client.get("/api/transactions", headers=self.headers).json()["data"]
        self.assertEqual(data["pagination"]["total"], 3)
        self.assertEqual(data["stats"]["totalTransactions"], 2)
        self.assertEqual(data["stats"]["totalFinalAmount"], 150.0)

        data = self.client.get(
            "/api/transactions", headers=self.headers, params={"payment_status": "PENDING"}
        ).json()["data"]
        self.assertEqual([r["payment_status"] for r in data["transactions"]], ["pending"])

        data = self.client.get("/api/transactions", headers=self.headers, params={"search": "noodle"}).json()["data"]
        self.assertEqual(data["pagination"]["total"], 1)

        response = self.client.get("/api/transactions", headers=self.headers, params={"payment_status": "lost"})
        self.assertEqual(response.status_code, 400)

    def test_date_range_is_inclusive(self):
        today = datetime.now(timezone.utc)
        self._transaction(self.store.id, self.user.id, created_at=today - timedelta(days=10))
        self._transaction(self.store.id, self.user.id, created_at=today)
        day = str(today.date())
        data = self.client.get(
            "/api/transactions", headers=self.headers, params={"date_from": day, "date_to": day}
        ).json()["data"]
        self.assertEqual(data["pagination"]["total"], 1)

    def test_overview(self):
        self._transaction(self.store.id, self.user.id, final_amount=Decimal("100"), payment_method="card")
        self._transaction(self.store.id, self.user.id, final_amount=Decimal("20"), payment_method="upi")
        self._transaction(
            self.store.id,
            self.user.id,
            final_amount=Decimal("999"),
            created_at=datetime.now(timezone.utc) - timedelta(days=60),
        )
        data = self.client.get("/api/transactions/stats/overview", headers=self.headers, params={"period": 7}).json()[
            "data"
        ]
        self.assertEqual(data["overview"]["totalTransactions"], 2)
        self.assertEqual(data["overview"]["totalRevenue"], 120.0)
        self.assertEqual(data["overview"]["period"], 7)
        self.assertEqual(len(data["dailyTrends"]), 1)
        self.assertEqual(data["topStores"][0]["store_name"], "Spice Route")
        self.assertEqual({m["payment_method"] for m in data["paymentMethods"]}, {"card", "upi"})

    def test_lookups_need_two_characters(self):
        self._coupon(code="WELCOME50", title="Welcome")
        self.assertEqual(
            self.client.get("/api/transactions/search/users", headers=self.headers, params={"q": "k"}).json()["data"],
            [],
        )
        users = self.client.get(
            "/api/transactions/search/users", headers=self.headers, params={"q": "kir"}
        ).json()["data"]
        self.assertEqual(users[0]["name"], "Kiran Das")
        stores = self.client.get(
            "/api/transactions/search/stores", headers=self.headers, params={"q": "spice"}
        ).json()["data"]
        self.assertEqual(stores[0]["id"], self.store.id)
        coupons = self.client.get(
            "/api/transactions/search/coupons", headers=self.headers, params={"q": "welc"}
        ).json()["data"]
        self.assertEqual(coupons[0]["code"], "WELCOME50")

    def test_detail_with_related(self):
        first = self._transaction(self.store.id, self.user.id)
        self._transaction(self.store.id, self.user.id)
        data = self.client.get(f"/api/transactions/{first.id}", headers=self.headers).json()["data"]
        self.assertEqual(data["transaction"]["id"], first.id)
        self.assertEqual(len(data["relatedTransactions"]), 1)

    def test_status_change_and_delete_rules(self):
        txn = self._transaction(self.store.id, self.user.id, payment_status="pending")
        response = self.client.patch(
            f"/api/transactions/{txn.id}", headers=self.headers, json={"payment_status": "Failed"}
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["message"], "Transaction status updated to failed")

        response = self.client.patch(
            f"/api/transactions/{txn.id}", headers=self.headers, json={"payment_status": "lost"}
        )
        self.assertEqual(response.status_code, 400)

        response = self.client.delete(f"/api/transactions/{txn.id}", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(self._get(Transaction, txn.id))

        done = self._transaction(self.store.id, self.user.id, payment_status="completed")
        response = self.client.delete(f"/api/transactions/{done.id}", headers=self.headers)
        self.assertEqual(response.status_code, 400)
        self.assertIsNotNone(self._get(Transaction, done.id))

    def test_update_partial(self):
        txn = self._transaction(self.store.id, self.user.id)
        response = self.client.put(f"/api/transactions/{txn.id}", headers=self.headers, json={"comment": "checked"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["transaction"]["comment"], "checked")
        self.assertEqual(self._get(Transaction, txn.id).payment_method, "upi")
