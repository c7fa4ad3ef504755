"""Real-time distribution channel: per-order broadcast groups.

A connection may join any order's group; membership proves nothing. Every
publish re-checks ``can_view`` for each member against the order as it is
now, so a member that cannot see the order receives nothing.

Delivery is fire-and-forget and at most once: each connection has a bounded
queue, a full queue drops the message, and nothing is replayed. A
reconnecting observer reads current state through the HTTP queries.

The channel is an explicit object owned by the process (``app.py``) or by a
test. ``channel.bound()`` makes it the active channel for the current
context, which is where the relay handlers find it.
"""

import asyncio
import os
import threading
from collections import deque
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from uuid import uuid4

import structlog
from protean.utils.globals import current_domain

from tracking.access.policy import Actor, can_view
from tracking.errors import OrderNotFound
from tracking.order.order import Order

logger = structlog.get_logger(__name__)

MAX_PENDING_MESSAGES = int(os.environ.get("TRACKING_MAX_PENDING_MESSAGES", "256"))

_active_channel: ContextVar["DistributionChannel | None"] = ContextVar("tracking_active_channel", default=None)


def active_channel() -> "DistributionChannel | None":
    return _active_channel.get()


class Connection:
    """One subscriber, bound to the actor that opened it.

    Messages are offered from whichever thread runs the write and consumed by
    the connection's writer task on its own event loop.
    """

    def __init__(self, actor: Actor, max_pending: int | None = None) -> None:
        self.id = str(uuid4())
        self.actor = actor
        self.max_pending = max_pending or MAX_PENDING_MESSAGES
        self.dropped = 0
        self.closed = False

        self._pending: deque[dict] = deque()
        self._lock = threading.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._ready: asyncio.Event | None = None

    def __repr__(self) -> str:
        return f"<Connection {self.id} {self.actor}>"

    def offer(self, message: dict) -> bool:
        """Queue ``message`` unless the connection is closed or full."""
        with self._lock:
            if self.closed:
                return False
            if len(self._pending) >= self.max_pending:
                self.dropped += 1
                return False
            self._pending.append(message)
        self._wake()
        return True

    def drain(self) -> list[dict]:
        """Take every pending message at once."""
        with self._lock:
            messages = list(self._pending)
            self._pending.clear()
        return messages

    def close(self) -> None:
        with self._lock:
            self.closed = True
        self._wake()

    def attach(self) -> None:
        """Bind the connection to the running event loop of its writer."""
        self._loop = asyncio.get_running_loop()
        self._ready = asyncio.Event()

    async def next_message(self) -> dict | None:
        """Wait for the next message; None once the connection is closed and empty."""
        if self._ready is None:
            self.attach()
        while True:
            with self._lock:
                if self._pending:
                    return self._pending.popleft()
                if self.closed:
                    return None
                self._ready.clear()
            await self._ready.wait()

    def _wake(self) -> None:
        loop, ready = self._loop, self._ready
        if loop is None or ready is None or loop.is_closed():
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            ready.set()
        else:
            loop.call_soon_threadsafe(ready.set)


class DistributionChannel:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._groups: dict[str, dict[str, Connection]] = {}
        self._memberships: dict[str, set[str]] = {}

    def subscribe(self, connection: Connection, order_id: str) -> None:
        order_id = str(order_id)
        with self._lock:
            self._groups.setdefault(order_id, {})[connection.id] = connection
            self._memberships.setdefault(connection.id, set()).add(order_id)
        logger.debug("Connection joined order group", connection_id=connection.id, order_id=order_id)

    def unsubscribe(self, connection: Connection, order_id: str) -> None:
        order_id = str(order_id)
        with self._lock:
            self._leave(connection.id, order_id)
            orders = self._memberships.get(connection.id)
            if orders is not None:
                orders.discard(order_id)
                if not orders:
                    del self._memberships[connection.id]

    def disconnect(self, connection: Connection) -> None:
        """Remove ``connection`` from every group it belongs to and close it."""
        with self._lock:
            for order_id in self._memberships.pop(connection.id, set()):
                self._leave(connection.id, order_id)
        connection.close()
        logger.debug("Connection disconnected", connection_id=connection.id, dropped=connection.dropped)

    def _leave(self, connection_id: str, order_id: str) -> None:
        group = self._groups.get(order_id)
        if group is None:
            return
        group.pop(connection_id, None)
        if not group:
            del self._groups[order_id]

    def members(self, order_id: str) -> list[Connection]:
        with self._lock:
            return list(self._groups.get(str(order_id), {}).values())

    def subscriptions(self, connection: Connection) -> set[str]:
        with self._lock:
            return set(self._memberships.get(connection.id, set()))

    def publish(self, order_id: str, event_kind: str, payload: dict, order=None) -> int:
        """Offer ``payload`` to every member allowed to view the order.

        Returns the number of connections that accepted the message.
        """
        members = self.members(order_id)
        if not members:
            return 0

        if order is None:
            try:
                order = _load_order(order_id)
            except OrderNotFound:
                logger.warning("Publish for unknown order dropped", order_id=str(order_id), kind=event_kind)
                return 0

        message = {"event": event_kind, "order_id": str(order_id), "data": payload}
        delivered = 0
        for connection in members:
            try:
                if not can_view(connection.actor, order):
                    continue
                if connection.offer(message):
                    delivered += 1
                else:
                    logger.debug("Message dropped for connection", connection_id=connection.id, kind=event_kind)
            except Exception:
                logger.exception("Delivery to connection failed", connection_id=connection.id, kind=event_kind)
        return delivered

    @contextmanager
    def bound(self) -> Iterator["DistributionChannel"]:
        token = _active_channel.set(self)
        try:
            yield self
        finally:
            _active_channel.reset(token)


def _load_order(order_id: str):
    return current_domain.repository_for(Order).get_order(order_id)
