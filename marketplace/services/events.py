"""In-process event bus for presentation-layer notifications.

Delivery is best effort: a failing listener is logged and never affects the
write that published the event.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

LEAD_CONTACTED = "lead.contacted"
LEAD_PURCHASED = "lead.purchased"

Listener = Callable[[dict[str, Any]], None]


class EventBus:
    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    def subscribe(self, event: str, listener: Listener) -> None:
        self._listeners[event].append(listener)

    def unsubscribe(self, event: str, listener: Listener) -> None:
        if listener in self._listeners.get(event, []):
            self._listeners[event].remove(listener)

    def publish(self, event: str, payload: dict[str, Any]) -> int:
        delivered = 0
        for listener in list(self._listeners.get(event, [])):
            try:
                listener(payload)
                delivered += 1
            except Exception:
                logger.exception("events.listener_failed", extra={"event": "events.listener_failed"})
        return delivered

    def clear(self) -> None:
        self._listeners.clear()


event_bus = EventBus()
