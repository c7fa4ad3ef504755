"""Delivery load test scenarios.

Stateful SequentialTaskSet journeys covering the full delivery lifecycle
with a stream of position pings, early cancellation by the customer, and
participants polling an order in flight.
"""

import random

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import cancellation_reason, location_ping, order_data, participant_data
from loadtests.helpers.response import extract_error_detail
from loadtests.helpers.state import DeliveryState

PINGS_PER_DELIVERY = 10


class _DeliveryJourney(SequentialTaskSet):
    """Registers the cast and places an order before the journey's own steps."""

    def on_start(self):
        self.state = DeliveryState()
        for role, attr in (("customer", "customer_id"), ("vendor", "vendor_id"), ("delivery", "partner_id")):
            with self.client.post(
                "/participants",
                json=participant_data(role),
                catch_response=True,
                name="POST /participants",
            ) as resp:
                if resp.status_code == 201:
                    setattr(self.state.cast, attr, resp.json()["id"])
                else:
                    resp.failure(f"Register {role} failed: {resp.status_code} - {extract_error_detail(resp)}")
                    self.interrupt()
                    return

    def _place_order(self):
        payload = order_data(self.state.cast.vendor_id)
        with self.client.post(
            "/orders",
            json=payload,
            headers=self.state.cast.headers("customer"),
            catch_response=True,
            name="POST /orders",
        ) as resp:
            if resp.status_code == 201:
                self.state.order_id = resp.json()["id"]
                self.state.destination = payload["delivery_address"]["coordinates"]
            else:
                resp.failure(f"Place order failed: {resp.status_code} - {extract_error_detail(resp)}")
                self.interrupt()

    def _assign(self):
        with self.client.put(
            f"/orders/{self.state.order_id}/assign",
            json={"delivery_partner_id": self.state.cast.partner_id},
            headers=self.state.cast.headers("vendor"),
            catch_response=True,
            name="PUT /orders/{id}/assign",
        ) as resp:
            if resp.status_code == 200:
                self.state.current_status = "assigned"
            else:
                resp.failure(f"Assign failed: {resp.status_code} - {extract_error_detail(resp)}")
                self.interrupt()


class DeliveryLifecycleJourney(_DeliveryJourney):
    """Place -> Assign -> Pings (in-transit) -> Delivered -> History.

    The happy path: one order from placement to delivery with a burst of
    location pings, read back by the customer.
    """

    @task
    def place_order(self):
        self._place_order()

    @task
    def assign_partner(self):
        self._assign()

    @task
    def report_positions(self):
        for _ in range(PINGS_PER_DELIVERY):
            with self.client.post(
                "/locations",
                json=location_ping(self.state.order_id, self.state.destination),
                headers=self.state.cast.headers("delivery"),
                catch_response=True,
                name="POST /locations",
            ) as resp:
                if resp.status_code == 201:
                    self.state.pings_sent += 1
                    self.state.current_status = "in-transit"
                else:
                    resp.failure(f"Ping failed: {resp.status_code} - {extract_error_detail(resp)}")

    @task
    def follow_order(self):
        self.client.get(
            f"/locations/{self.state.order_id}",
            headers=self.state.cast.headers("customer"),
            name="GET /locations/{order_id}",
        )

    @task
    def mark_delivered(self):
        with self.client.put(
            f"/orders/{self.state.order_id}/status",
            json={"status": "delivered"},
            headers=self.state.cast.headers("delivery"),
            catch_response=True,
            name="PUT /orders/{id}/status",
        ) as resp:
            if resp.status_code == 200:
                self.state.current_status = "delivered"
            else:
                resp.failure(f"Deliver failed: {resp.status_code} - {extract_error_detail(resp)}")

    @task
    def read_history(self):
        with self.client.get(
            f"/locations/{self.state.order_id}/history",
            headers=self.state.cast.headers("customer"),
            catch_response=True,
            name="GET /locations/{order_id}/history",
        ) as resp:
            if resp.status_code == 200 and resp.json()["count"] != self.state.pings_sent:
                resp.failure(f"History has {resp.json()['count']} pings, sent {self.state.pings_sent}")

    @task
    def done(self):
        self.interrupt()


class CancellationJourney(_DeliveryJourney):
    """Place -> Cancel (customer, still pending) -> Read order."""

    @task
    def place_order(self):
        self._place_order()

    @task
    def cancel(self):
        with self.client.put(
            f"/orders/{self.state.order_id}/cancel",
            json={"reason": cancellation_reason()},
            headers=self.state.cast.headers("customer"),
            catch_response=True,
            name="PUT /orders/{id}/cancel",
        ) as resp:
            if resp.status_code == 200:
                self.state.current_status = "cancelled"
            else:
                resp.failure(f"Cancel failed: {resp.status_code} - {extract_error_detail(resp)}")

    @task
    def read_order(self):
        self.client.get(
            f"/orders/{self.state.order_id}",
            headers=self.state.cast.headers("vendor"),
            name="GET /orders/{id}",
        )

    @task
    def done(self):
        self.interrupt()


class PollingJourney(_DeliveryJourney):
    """Place -> Assign -> interleaved pings and participant reads.

    Models participants refreshing an order that is on the road.
    """

    @task
    def place_order(self):
        self._place_order()

    @task
    def assign_partner(self):
        self._assign()

    @task
    def poll(self):
        for _ in range(PINGS_PER_DELIVERY):
            self.client.post(
                "/locations",
                json=location_ping(self.state.order_id, self.state.destination),
                headers=self.state.cast.headers("delivery"),
                name="POST /locations",
            )
            role = random.choice(["customer", "vendor"])
            self.client.get(
                f"/orders/{self.state.order_id}",
                headers=self.state.cast.headers(role),
                name="GET /orders/{id}",
            )
            self.client.get(
                "/orders",
                headers=self.state.cast.headers(role),
                name="GET /orders",
            )

    @task
    def done(self):
        self.interrupt()


class DeliveryUser(HttpUser):
    """Locust user simulating delivery interactions.

    Weighted distribution:
    - 50% Full delivery lifecycle
    - 20% Early cancellation
    - 30% Polling an order in flight
    """

    wait_time = between(0.5, 2.0)
    tasks = {
        DeliveryLifecycleJourney: 5,
        CancellationJourney: 2,
        PollingJourney: 3,
    }
