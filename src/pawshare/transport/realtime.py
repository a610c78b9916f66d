"""
Realtime change channels layered over the Socket.IO relay.

Each subscription names a topic (``messages:<conversation_id>``,
``unread-messages-global``, ...), a table, the change types it wants and an
optional row filter (``recipient_id=eq.<id>``). Delivery is at-least-once and
unordered across topics; consumers must be idempotent.
"""

import logging
from typing import Callable, Iterable, Optional, Protocol

from pawshare.errors import RealtimeError
from pawshare.models.events import ChangeEvent, ChangeType, RealtimeEvent, parse_change
from pawshare.transport.socketio import SocketIOManager

logger = logging.getLogger(__name__)

ChangeHandler = Callable[[ChangeEvent], None]


class Subscription:
    __slots__ = ("topic", "table", "events", "filter", "handler", "_on_close", "active")

    def __init__(self, topic: str, table: str, events: frozenset[ChangeType], filter: Optional[str],
                 handler: ChangeHandler, on_close: Callable[["Subscription"], None]):
        self.topic = topic
        self.table = table
        self.events = events
        self.filter = filter
        self.handler = handler
        self._on_close = on_close
        self.active = True

    def deliver(self, event: ChangeEvent) -> None:
        if not self.active or event.type not in self.events or event.table != self.table:
            return
        self.handler(event)

    def unsubscribe(self) -> None:
        """Stop delivery immediately. Safe to call more than once."""
        if not self.active:
            return
        self.active = False
        self._on_close(self)

    def __repr__(self) -> str:
        return f"Subscription(topic={self.topic!r}, active={self.active})"


class EventChannel(Protocol):
    def subscribe(
        self,
        topic: str,
        handler: ChangeHandler,
        *,
        table: str = "messages",
        events: Iterable[ChangeType] = (ChangeType.INSERT, ChangeType.UPDATE),
        filter: Optional[str] = None,
    ) -> Subscription: ...


class RealtimeChannel:
    """EventChannel backed by a ``SocketIOManager``."""

    def __init__(self, sio: SocketIOManager):
        self._sio = sio
        self._subscriptions: dict[str, list[Subscription]] = {}
        self._remove_handler: Optional[Callable[[], None]] = None

    def start(self) -> None:
        if self._remove_handler is None:
            self._remove_handler = self._sio.add_event_handler(self._on_event)

    def stop(self) -> None:
        for subs in list(self._subscriptions.values()):
            for sub in list(subs):
                sub.unsubscribe()
        if self._remove_handler:
            self._remove_handler()
            self._remove_handler = None

    def subscribe(
        self,
        topic: str,
        handler: ChangeHandler,
        *,
        table: str = "messages",
        events: Iterable[ChangeType] = (ChangeType.INSERT, ChangeType.UPDATE),
        filter: Optional[str] = None,
    ) -> Subscription:
        self.start()
        sub = Subscription(topic, table, frozenset(events), filter, handler, self._release)
        first = topic not in self._subscriptions
        self._subscriptions.setdefault(topic, []).append(sub)
        if first:
            self._send(RealtimeEvent.SUBSCRIBE, self._subscribe_payload(sub))
        logger.debug("Subscribed to %s", topic)
        return sub

    @staticmethod
    def _subscribe_payload(sub: Subscription) -> dict:
        return {
            "topic": sub.topic,
            "table": sub.table,
            "events": sorted(e.value for e in sub.events),
            "filter": sub.filter,
        }

    def _resubscribe(self) -> None:
        """Re-send every live topic. The relay forgets subscriptions when the connection drops."""
        for subs in list(self._subscriptions.values()):
            if subs:
                self._send(RealtimeEvent.SUBSCRIBE, self._subscribe_payload(subs[0]))
        if self._subscriptions:
            logger.info("Resubscribed %d topic(s) after relay ready", len(self._subscriptions))

    def _release(self, sub: Subscription) -> None:
        subs = self._subscriptions.get(sub.topic, [])
        if sub in subs:
            subs.remove(sub)
        if not subs and sub.topic in self._subscriptions:
            del self._subscriptions[sub.topic]
            self._send(RealtimeEvent.UNSUBSCRIBE, {"topic": sub.topic})
        logger.debug("Unsubscribed from %s", sub.topic)

    def _send(self, event: str, data: dict) -> None:
        if not self._sio.connected:
            return
        try:
            self._sio.emit(event, data)
        except RealtimeError as e:
            logger.warning("Realtime %s failed: %s", event, e)

    def _on_event(self, event: str, raw: dict) -> None:
        if event == RealtimeEvent.READY:
            self._resubscribe()
            return
        if event != RealtimeEvent.POSTGRES_CHANGES:
            return
        change = parse_change(raw)
        if change is None:
            logger.debug("Ignoring malformed change payload")
            return
        topic = raw.get("topic")
        for sub in list(self._subscriptions.get(topic, [])):
            sub.deliver(change)
