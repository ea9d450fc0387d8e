"""EventSink: Injected callback registry for monitoring events.

The health monitor publishes through an EventSink it is given rather than
being an emitter itself, so the owner controls subscription lifetime.

.. code-block:: python

    >>> sink = EventSink()
    >>> received = []
    >>> unsubscribe = sink.subscribe(DEPEG_WARNING, received.append)
    >>> sink.emit(DEPEG_WARNING, "payload")
    1
    >>> unsubscribe()
    True
    >>> sink.listener_count(DEPEG_WARNING)
    0
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)

DEPEG_WARNING = "depeg-warning"
RISK_CHANGE = "risk-change"

EVENT_NAMES = (DEPEG_WARNING, RISK_CHANGE)


@dataclass(frozen=True)
class DepegEvent:
    """Emitted when a report's status is critical or depegged.

    :ivar severity: "critical" for depegged reports, "warning" otherwise.
    """

    symbol: str
    chain: str
    price: float
    deviation: float
    timestamp: int
    severity: str


@dataclass(frozen=True)
class RiskChangeEvent:
    """Emitted when the risk score moves by at least the configured step."""

    symbol: str
    chain: str
    old_risk_score: int
    new_risk_score: int
    timestamp: int


class EventSink:
    """Synchronous, in-process, best-effort event delivery.

    Callbacks run in subscription order. A callback that raises is logged and
    skipped; the others still run and the publisher never sees the error.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Callable[[Any], None]]] = {}
        self._lock = threading.Lock()

    def subscribe(
        self, event_name: str, callback: Callable[[Any], None]
    ) -> Callable[[], None]:
        """Register ``callback`` for ``event_name``.

        :returns: A zero-argument function that removes the subscription.
        :raises ValueError: If event_name is not a known event.
        """
        if event_name not in EVENT_NAMES:
            raise ValueError(
                f"Unknown event '{event_name}'. Available: {', '.join(EVENT_NAMES)}"
            )
        with self._lock:
            self._listeners.setdefault(event_name, []).append(callback)
        return lambda: self.unsubscribe(event_name, callback)

    def unsubscribe(self, event_name: str, callback: Callable[[Any], None]) -> bool:
        """Remove one registration of ``callback``; returns True if one was found."""
        with self._lock:
            listeners = self._listeners.get(event_name, [])
            if callback in listeners:
                listeners.remove(callback)
                return True
            return False

    def emit(self, event_name: str, event: Any) -> int:
        """Deliver ``event`` to every subscriber of ``event_name``.

        :returns: Number of callbacks that completed without raising.
        """
        with self._lock:
            listeners = list(self._listeners.get(event_name, []))

        delivered = 0
        for callback in listeners:
            try:
                callback(event)
                delivered += 1
            except Exception:
                logger.exception(f"Subscriber for '{event_name}' raised")
        return delivered

    def listener_count(self, event_name: str) -> int:
        with self._lock:
            return len(self._listeners.get(event_name, []))

    def clear(self) -> None:
        """Remove every subscription."""
        with self._lock:
            self._listeners.clear()
