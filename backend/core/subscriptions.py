"""
In-process push channel for inventory changes.

The inventory store publishes the fresh record after every committed change;
the live WebSocket (and anything else interested) registers a callback per venue.
"""

import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)


class Subscription:
    """Initial snapshot plus an idempotent ``cancel()``."""

    def __init__(self, snapshot: Any, cancel: Callable[[], None]):
        self.snapshot = snapshot
        self._cancel = cancel
        self.cancelled = False

    def cancel(self) -> None:
        if self.cancelled:
            return
        self.cancelled = True
        self._cancel()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.cancel()


class InventoryBroker:
    def __init__(self):
        self._listeners: Dict[Any, List[Callable]] = defaultdict(list)

    def listen(self, venue_id, callback: Callable[[Any], None]) -> Callable[[], None]:
        """Register ``callback`` for ``venue_id``; returns the function that removes it."""
        self._listeners[venue_id].append(callback)

        def _remove():
            listeners = self._listeners.get(venue_id)
            if listeners and callback in listeners:
                listeners.remove(callback)
                if not listeners:
                    del self._listeners[venue_id]

        return _remove

    def subscribe(self, venue_id, snapshot, callback: Callable[[Any], None]) -> Subscription:
        return Subscription(snapshot, self.listen(venue_id, callback))

    def publish(self, venue_id, record) -> None:
        # copy: a callback may cancel its own subscription while we iterate
        for callback in list(self._listeners.get(venue_id, ())):
            try:
                callback(record)
            except Exception:
                # one broken listener must not stop delivery to the others
                logger.exception("Inventory listener for venue %s failed", venue_id)

    def listener_count(self, venue_id) -> int:
        return len(self._listeners.get(venue_id, ()))


inventory_broker = InventoryBroker()
