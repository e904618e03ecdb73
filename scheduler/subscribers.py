"""Live notification listeners and fan-out delivery."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, Dict, List, Protocol

from scheduler.models import NotificationEvent

logger = logging.getLogger(__name__)


class Subscriber(Protocol):
    async def send_json(self, data: Any) -> None:
        ...


class SubscriberRegistry:
    """
    Set of connected listeners.

    Broadcasts are best effort: every connection is written to concurrently,
    and one that fails or stalls past ``send_timeout`` is dropped without
    affecting delivery to the others. Dropped connections are closed so the
    client can reconnect.
    """

    def __init__(self, *, send_timeout: float = 5.0) -> None:
        # keyed by identity; WebSocket objects are mappings and not hashable
        self._connections: Dict[int, Subscriber] = {}
        self._send_timeout = send_timeout

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, connection: object) -> bool:
        return id(connection) in self._connections

    def register(self, connection: Subscriber) -> None:
        self._connections[id(connection)] = connection
        logger.info("Subscriber connected (active=%s)", len(self._connections))

    def unregister(self, connection: Subscriber) -> None:
        if self._connections.pop(id(connection), None) is not None:
            logger.info("Subscriber disconnected (active=%s)", len(self._connections))

    def clear(self) -> None:
        self._connections.clear()

    async def broadcast(self, event: NotificationEvent) -> int:
        """Deliver ``event`` to every registered connection; return the number reached."""

        message = event.to_message()
        targets: List[Subscriber] = list(self._connections.values())
        if not targets:
            logger.debug("No subscribers for schedule %s", event.schedule_id)
            return 0
        results = await asyncio.gather(*(self._deliver(conn, message) for conn in targets))
        delivered = sum(1 for ok in results if ok)
        logger.info(
            "Notification for schedule %s delivered to %s/%s subscribers",
            event.schedule_id,
            delivered,
            len(targets),
        )
        return delivered

    async def _deliver(self, connection: Subscriber, message: Dict[str, Any]) -> bool:
        try:
            await asyncio.wait_for(connection.send_json(message), timeout=self._send_timeout)
        except Exception:
            logger.debug("Dropping subscriber after failed send", exc_info=True)
            self.unregister(connection)
            await self._close(connection)
            return False
        return True

    async def _close(self, connection: Subscriber) -> None:
        # best effort, so the client notices and can reconnect
        close = getattr(connection, "close", None)
        if close is None:
            return
        with contextlib.suppress(Exception):
            await asyncio.wait_for(close(), timeout=self._send_timeout)
