from tests.admin.base import AdminApiBase, StoreSequence


class AdminStoresSequenceTests(AdminApiBase):
    def setUp(self):
        super().setUp()
        self.category = self._category()
        self.alpha = self._store(self.category.id, name="Alpha Cafe")
        self.beta = self._store(self.category.id, name="Beta Books")
        self.gamma = self._store(self.category.id, name="Gamma Gym")

    def test_create_appends_to_end_of_sequence(self):
        response = self.client.post("/api/stores-sequence", headers=self.headers, json={"store_id": self.alpha.id})
        self.assertEqual(response.status_code, 201)
        first = response.json()["data"]["storeSequence"]
        self.assertEqual(first["sequence_no"], 1)
        self.assertEqual(first["store_name"], "Alpha Cafe")

        response = self.client.post(
            "/api/stores-sequence", headers=self.headers, json={"store_id": self.beta.id, "sequence_no": 0}
        )
        self.assertEqual(response.json()["data"]["storeSequence"]["sequence_no"], 2)

        response = self.client.post("/api/stores-sequence", headers=self.headers, json={"store_id": self.alpha.id})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Store is already in the sequence")

        response = self.client.post("/api/stores-sequence", headers=self.headers, json={"store_id": 999})
        self.assertEqual(response.status_code, 404)

    def test_list_and_available_stores(self):
        self._add(
            StoreSequence(store_id=self.beta.id, sequence_no=2),
            StoreSequence(store_id=self.alpha.id, sequence_no=1, is_active=False),
        )
        data = self.client.get("/api/stores-sequence", headers=self.headers).json()["data"]
        self.assertEqual([s["store_name"] for s in data["storesSequence"]], ["Alpha Cafe", "Beta Books"])
        self.assertEqual(data["stats"], {"totalStoresSequence": 2, "activeStoresSequence": 1})

        data = self.client.get("/api/stores-sequence", headers=self.headers, params={"search": "beta"}).json()["data"]
        self.assertEqual(data["pagination"]["total"], 1)

        available = self.client.get("/api/stores-sequence/available/stores", headers=self.headers).json()["data"]
        self.assertEqual([s["name"] for s in available], ["Gamma Gym"])

    def test_bulk_update_is_all_or_nothing(self):
        first, second = self._add(
            StoreSequence(store_id=self.alpha.id, sequence_no=1),
            StoreSequence(store_id=self.beta.id, sequence_no=2),
        )
        response = self.client.put(
            "/api/stores-sequence/bulk-update-sequence",
            headers=self.headers,
            json={"sequences": [{"id": first.id, "sequence_no": 2}, {"id": second.id, "sequence_no": 1}]},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["updatedCount"], 2)
        self.assertEqual(self._get(StoreSequence, first.id).sequence_no, 2)

        response = self.client.put(
            "/api/stores-sequence/bulk-update-sequence",
            headers=self.headers,
            json={"sequences": [{"id": first.id, "sequence_no": 7}, {"id": 424242, "sequence_no": 8}]},
        )
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["message"], "Store sequence with ID 424242 not found")
        self.assertEqual(self._get(StoreSequence, first.id).sequence_no, 2)

        response = self.client.put(
            "/api/stores-sequence/bulk-update-sequence", headers=self.headers, json={"sequences": []}
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Sequences array is required")

    def test_update_toggle_delete(self):
        row = self._add(StoreSequence(store_id=self.alpha.id, sequence_no=1))
        self._add(StoreSequence(store_id=self.beta.id, sequence_no=2))

        response = self.client.put(
            f"/api/stores-sequence/{row.id}", headers=self.headers, json={"store_id": self.beta.id}
        )
        self.assertEqual(response.status_code, 400)

        response = self.client.put(
            f"/api/stores-sequence/{row.id}", headers=self.headers, json={"store_id": self.gamma.id}
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["storeSequence"]["store_name"], "Gamma Gym")

        response = self.client.patch(f"/api/stores-sequence/{row.id}", headers=self.headers, json={"is_active": False})
        self.assertEqual(response.json()["message"], "Store sequence deactivated successfully")

        response = self.client.delete(f"/api/stores-sequence/{row.id}", headers=self.headers)
        self.assertEqual(response.json()["message"], "Store removed from sequence successfully")
        self.assertIsNone(self._get(StoreSequence, row.id))
        self.assertEqual(self.client.get(f"/api/stores-sequence/{row.id}", headers=self.headers).status_code, 404)
