import random

from locust import HttpUser, task, between


class TableClient(HttpUser):
    wait_time = between(0.1, 0.5)

    def on_start(self):
        # Orders need products; read whatever the catalog has
        r = self.client.get("/api/product")
        if r.status_code == 200:
            self.product_ids = [p["id"] for p in r.json()["data"]]
        else:
            self.product_ids = []

    @task(3)
    def create_transaction(self):
        if not self.product_ids:
            return
        picked = random.sample(self.product_ids, k=min(3, len(self.product_ids)))
        self.client.post("/api/transaction", json={
            "products": [{"id": pid, "quantity": random.randint(1, 4)} for pid in picked],
            "customerName": f"guest_{random.randint(1, 1_000_000)}",
            "customerEmail": "guest@example.com",
            "customerPhone": "0800000000",
            "customerTableNumber": str(random.randint(1, 30)),
        })

    @task(1)
    def list_transactions(self):
        self.client.get("/api/transaction", params={"status": "PENDING"})
