"""Stress test scenarios.

LocationFloodUser hammers a single order with position pings to load the
per-order lock and the relay. SpikeUser simulates a burst of participant
registrations.
"""

from locust import HttpUser, constant_pacing, task

from loadtests.data_generators import location_ping, order_data, participant_data
from loadtests.helpers.state import DeliveryState


class LocationFloodUser(HttpUser):
    """Stress test: maximum ping throughput on one order per user.

    All pings for a user go to the same order, so they serialize on that
    order's lock. Spread across users, orders do not contend.
    """

    wait_time = constant_pacing(0.1)  # ~10 requests/sec per user

    def on_start(self):
        self.state = DeliveryState()
        cast = self.state.cast
        cast.customer_id = self.client.post("/participants", json=participant_data("customer")).json()["id"]
        cast.vendor_id = self.client.post("/participants", json=participant_data("vendor")).json()["id"]
        cast.partner_id = self.client.post("/participants", json=participant_data("delivery")).json()["id"]

        payload = order_data(cast.vendor_id)
        self.state.destination = payload["delivery_address"]["coordinates"]
        self.state.order_id = self.client.post("/orders", json=payload, headers=cast.headers("customer")).json()["id"]
        self.client.put(
            f"/orders/{self.state.order_id}/assign",
            json={"delivery_partner_id": cast.partner_id},
            headers=cast.headers("vendor"),
        )

    @task(5)
    def ping(self):
        self.client.post(
            "/locations",
            json=location_ping(self.state.order_id, self.state.destination),
            headers=self.state.cast.headers("delivery"),
            name="[STRESS] POST /locations",
        )

    @task(1)
    def latest(self):
        self.client.get(
            f"/locations/{self.state.order_id}",
            headers=self.state.cast.headers("customer"),
            name="[STRESS] GET /locations/{order_id}",
        )


class SpikeUser(HttpUser):
    """Spike test: rapid-fire participant registration.

    Use with high user count and instant spawn rate to simulate
    sudden traffic bursts.
    """

    wait_time = constant_pacing(0.05)  # ~20 req/sec per user

    @task
    def rapid_registration(self):
        self.client.post(
            "/participants",
            json=participant_data("customer"),
            name="[SPIKE] POST /participants",
        )
