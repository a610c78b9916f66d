"""
Unread tracker — the viewer's unread counts, globally and per conversation.

Counts come from authoritative reloads that replace the aggregate wholesale.
Between reloads the change feed applies optimistic +1/-1 adjustments and
schedules a debounced reload to correct any drift. Reloads carry a
monotonically increasing token; only the most recently issued one may land.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from pawshare.auth import IdentityProvider
from pawshare.debounce import Debouncer
from pawshare.models.events import ChangeEvent, ChangeType
from pawshare.models.identity import Identity
from pawshare.models.unread import EMPTY, UnreadAggregate
from pawshare.store import MessageStore
from pawshare.transport.realtime import EventChannel, Subscription

logger = logging.getLogger(__name__)

UNREAD_TOPIC = "unread-messages-global"
DEFAULT_INSERT_DEBOUNCE = 0.3
DEFAULT_UPDATE_DEBOUNCE = 0.5

AggregateListener = Callable[[UnreadAggregate], None]


class UnreadTracker:
    def __init__(
        self,
        store: MessageStore,
        channel: EventChannel,
        *,
        insert_debounce: float = DEFAULT_INSERT_DEBOUNCE,
        update_debounce: float = DEFAULT_UPDATE_DEBOUNCE,
    ):
        self._store = store
        self._channel = channel
        self._insert_debounce = insert_debounce
        self._update_debounce = update_debounce
        self._identity: Optional[Identity] = None
        self._aggregate: UnreadAggregate = EMPTY
        self._loading = True
        self._token = 0
        self._subscription: Optional[Subscription] = None
        self._refresh = Debouncer(insert_debounce, self.reload, name="unread reload")
        self._listeners: list[AggregateListener] = []
        self._unbind: Optional[Callable[[], None]] = None
        self._tasks: set[asyncio.Task[Any]] = set()
        # Message ids already applied optimistically since the last reload
        self._bumped: set[str] = set()
        self._dropped: set[str] = set()

    @property
    def aggregate(self) -> UnreadAggregate:
        return self._aggregate

    @property
    def identity(self) -> Optional[Identity]:
        return self._identity

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def settling(self) -> bool:
        """True while a debounced reload is scheduled or running."""
        return self._refresh.pending

    def add_listener(self, listener: AggregateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass
        return remove

    def _publish(self, aggregate: UnreadAggregate) -> None:
        self._aggregate = aggregate
        for listener in list(self._listeners):
            listener(aggregate)

    # -- lifecycle ---------------------------------------------------------

    def bind(self, identity: IdentityProvider) -> None:
        """Follow an identity stream: every transition re-initializes the tracker."""
        if self._unbind:
            self._unbind()

        def on_change(new_identity: Optional[Identity]) -> None:
            task = asyncio.get_running_loop().create_task(self.initialize(new_identity))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        self._unbind = identity.on_change(on_change)

    async def initialize(self, identity: Optional[Identity]) -> None:
        if identity is None:
            self._reset()
            self._loading = False
            return
        if self._identity is None or self._identity.id != identity.id:
            self._reset()
            self._identity = identity
            self._subscription = self._channel.subscribe(
                UNREAD_TOPIC,
                self._on_change,
                events=(ChangeType.INSERT, ChangeType.UPDATE),
                filter=f"recipient_id=eq.{identity.id}",
            )
        else:
            self._identity = identity
        await self.reload()

    def _reset(self) -> None:
        if self._subscription:
            self._subscription.unsubscribe()
            self._subscription = None
        self._refresh.cancel()
        self._token += 1
        self._identity = None
        self._bumped.clear()
        self._dropped.clear()
        if self._aggregate != EMPTY:
            self._publish(EMPTY)

    def close(self) -> None:
        """Stop all subscriptions and pending work. Safe to call repeatedly."""
        if self._unbind:
            self._unbind()
            self._unbind = None
        self._reset()
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()

    # -- operations --------------------------------------------------------

    async def reload(self) -> None:
        """Replace the aggregate with the store's current unread rows."""
        identity = self._identity
        if identity is None:
            self._loading = False
            return
        self._token += 1
        token = self._token
        try:
            rows = await self._store.unread_messages(identity.id)
        except Exception as e:
            logger.error("Unread reload failed for %s: %s", identity.id, e)
            return
        finally:
            if token == self._token:
                self._loading = False
        if token != self._token:
            logger.debug("Discarding stale unread reload (token %d, latest %d)", token, self._token)
            return
        self._bumped.clear()
        self._dropped.clear()
        aggregate = UnreadAggregate.from_rows(row.conversation_id for row in rows)
        logger.debug("Unread reload: total=%d by_conversation=%s", aggregate.total, aggregate.by_conversation)
        self._publish(aggregate)

    async def mark_conversation_read(self, conversation_id: str, participant_a: str, participant_b: str) -> None:
        """Mark the viewer's unread messages in a conversation as read, then reload.

        Marks by conversation id and, separately, by the other participant as
        sender; older rows may have no conversation id. A failure of either
        mutation is logged and the reload still runs.
        """
        identity = self._identity
        if identity is None:
            logger.debug("mark_conversation_read with no identity")
            return
        other = participant_b if participant_a == identity.id else participant_a
        results = await asyncio.gather(
            self._store.mark_read(identity.id, conversation_id=conversation_id),
            self._store.mark_read(identity.id, sender_id=other),
            return_exceptions=True,
        )
        for method, result in zip(("conversation", "participant"), results):
            if isinstance(result, Exception):
                logger.error("Mark read by %s failed for %s: %s", method, conversation_id, result)
            else:
                logger.debug("Marked %s messages read by %s", result, method)
        await self.reload()

    async def mark_all_read(self) -> None:
        identity = self._identity
        if identity is None:
            return
        try:
            await self._store.mark_all_read(identity.id)
        except Exception as e:
            logger.error("Mark all read failed for %s: %s", identity.id, e)
            return
        # Invalidate reloads issued before the mutation
        self._token += 1
        self._refresh.cancel()
        self._bumped.clear()
        self._dropped.clear()
        self._publish(UnreadAggregate(last_refreshed=datetime.now(timezone.utc)))

    # -- change feed -------------------------------------------------------

    def _on_change(self, event: ChangeEvent) -> None:
        identity = self._identity
        if identity is None:
            return
        record = event.record
        message_id = record.get("id")
        if not isinstance(message_id, str) or record.get("recipient_id") != identity.id:
            return
        conversation_id = record.get("conversation_id")

        if event.type is ChangeType.INSERT:
            if record.get("is_read") is not False:
                return
            if message_id not in self._bumped:
                self._bumped.add(message_id)
                self._publish(self._aggregate.bumped(conversation_id))
            self._refresh.trigger(self._insert_debounce)
        elif event.type is ChangeType.UPDATE and event.became_read:
            if message_id not in self._dropped:
                self._dropped.add(message_id)
                self._publish(self._aggregate.decremented(conversation_id))
            self._refresh.trigger(self._update_debounce)

    async def settle(self) -> None:
        """Wait until any started debounced reload has finished."""
        await self._refresh.flush()
