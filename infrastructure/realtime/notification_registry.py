"""In-process notification fan-out registry.

Maps a user id to the listeners of that user's open notification streams.
Delivery is synchronous and best-effort: no queueing for users without a
listener, no retries. One instance is built at startup and shared through
``app.state``.
"""
from __future__ import annotations

import threading
from typing import Dict, Iterable, List

from application.ports.realtime import NotificationListener, NotificationPublisher, RealtimeNotification
from core.logging_config import get_logger


logger = get_logger(__name__)


class NotificationRegistry(NotificationPublisher):
    """Per-user listener sets with emit / emit_many.

    Listener sets are insertion-ordered dicts so delivery follows
    registration order. The lock only guards map mutation and snapshots;
    listeners run outside it, so a slow listener never holds up other users.
    Sync routes run in the threadpool, hence ``threading.Lock``.
    """

    def __init__(self) -> None:
        self._listeners: Dict[str, Dict[NotificationListener, None]] = {}
        self._lock = threading.Lock()

    def register(self, user_id: str, listener: NotificationListener) -> None:
        with self._lock:
            listeners = self._listeners.setdefault(user_id, {})
            if listener in listeners:
                return
            listeners[listener] = None
            count = len(listeners)
        logger.debug("notification_listener_registered", user_id=user_id, listeners=count)

    def unregister(self, user_id: str, listener: NotificationListener) -> None:
        with self._lock:
            listeners = self._listeners.get(user_id)
            if listeners is None or listener not in listeners:
                return
            del listeners[listener]
            if not listeners:
                del self._listeners[user_id]
            count = len(listeners)
        logger.debug("notification_listener_unregistered", user_id=user_id, listeners=count)

    def emit(self, user_id: str, event: RealtimeNotification) -> int:
        """Deliver ``event`` to every current listener of ``user_id``.

        Returns the number of listeners that accepted the event. A failing
        listener is logged and skipped.
        """
        with self._lock:
            listeners = self._listeners.get(user_id)
            if not listeners:
                return 0
            snapshot: List[NotificationListener] = list(listeners)
        delivered = 0
        for listener in snapshot:
            try:
                listener(event)
                delivered += 1
            except Exception as exc:
                logger.error(
                    "notification_delivery_failed",
                    user_id=user_id,
                    event_type=event.type,
                    error=str(exc),
                    exc_info=True,
                )
        return delivered

    def emit_many(self, user_ids: Iterable[str], event: RealtimeNotification) -> int:
        """Emit once per distinct user id, in first-seen order."""
        dispatched: Dict[str, None] = {}
        delivered = 0
        for user_id in user_ids:
            if user_id in dispatched:
                continue
            dispatched[user_id] = None
            delivered += self.emit(user_id, event)
        return delivered

    # -------------------- Introspection --------------------
    def listener_count(self, user_id: str) -> int:
        with self._lock:
            return len(self._listeners.get(user_id, ()))

    def user_ids(self) -> List[str]:
        with self._lock:
            return list(self._listeners)

    def __contains__(self, user_id: object) -> bool:
        with self._lock:
            return user_id in self._listeners
