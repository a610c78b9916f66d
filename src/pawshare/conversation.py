"""
Conversation session — the live timeline of the one open conversation.

States:

    IDLE -> LOADING -> READY
    READY -> LOADING        (switching conversation)
    LOADING -> ERROR        (history fetch failed)
    ERROR -> LOADING        (retry)

Every open/switch/close bumps a generation counter. Loads, delayed read
receipts and send rollbacks compare their generation on completion and are
dropped if the session moved on. All timeline updates go through ``_apply``,
which replaces the tuple in one synchronous step.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Optional, Union

from pawshare import timeline
from pawshare.errors import SendError
from pawshare.messages import MessageSender
from pawshare.models.conversation import Conversation
from pawshare.models.events import ChangeEvent, ChangeType
from pawshare.models.message import ProvisionalMessage
from pawshare.notifications import NotificationPresenter
from pawshare.store import MessageStore
from pawshare.transport.realtime import EventChannel, Subscription

logger = logging.getLogger(__name__)

LOAD_ERROR = "Failed to load messages. Please try again."
DEFAULT_MARK_READ_DELAY = 1.0

TimelineListener = Callable[[timeline.Timeline], None]


class SessionState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


def topic_for(conversation_id: str) -> str:
    return f"messages:{conversation_id}"


class ConversationSession:
    def __init__(
        self,
        viewer_id: str,
        store: MessageStore,
        sender: MessageSender,
        channel: EventChannel,
        presenter: Optional[NotificationPresenter] = None,
        *,
        mark_read_delay: float = DEFAULT_MARK_READ_DELAY,
    ):
        self._viewer_id = viewer_id
        self._store = store
        self._sender = sender
        self._channel = channel
        self._presenter = presenter
        self._mark_read_delay = mark_read_delay

        self._state = SessionState.IDLE
        self._conversation: Optional[Conversation] = None
        self._timeline: timeline.Timeline = ()
        self._generation = 0
        self._subscription: Optional[Subscription] = None
        self._read_timers: dict[str, asyncio.TimerHandle] = {}
        self._read_tasks: set[asyncio.Task[Any]] = set()
        self._listeners: list[TimelineListener] = []
        self.error: Optional[str] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def conversation(self) -> Optional[Conversation]:
        return self._conversation

    @property
    def timeline(self) -> timeline.Timeline:
        return self._timeline

    def add_listener(self, listener: TimelineListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass
        return remove

    def _apply(self, update: Callable[[timeline.Timeline], timeline.Timeline]) -> None:
        self._timeline = update(self._timeline)
        for listener in list(self._listeners):
            listener(self._timeline)

    # -- open / close ------------------------------------------------------

    async def open(
        self,
        conversation: Union[Conversation, str],
        participant_a: Optional[str] = None,
        participant_b: Optional[str] = None,
    ) -> None:
        """Open a conversation, or switch to it from the one currently open."""
        if isinstance(conversation, str):
            if not participant_a or not participant_b:
                raise ValueError("participant ids are required when opening by conversation id")
            conversation = Conversation(id=conversation, participant1_id=participant_a,
                                        participant2_id=participant_b)

        current = self._conversation
        if (current is not None and current.id == conversation.id
                and self._state in (SessionState.READY, SessionState.LOADING)):
            return

        self._teardown()
        self._generation += 1
        self._conversation = conversation
        self._apply(lambda _: ())
        self._subscription = self._channel.subscribe(
            topic_for(conversation.id), self._on_change, events=(ChangeType.INSERT,),
        )
        logger.debug("Opened conversation %s (generation %d)", conversation.id, self._generation)
        await self._load(self._generation, conversation)

    async def retry(self) -> None:
        if self._state is not SessionState.ERROR or self._conversation is None:
            return
        self._generation += 1
        await self._load(self._generation, self._conversation)

    async def _load(self, generation: int, conversation: Conversation) -> None:
        self._state = SessionState.LOADING
        self.error = None
        try:
            history = await self._store.messages_between(conversation.participant1_id, conversation.participant2_id)
        except Exception as e:
            if generation != self._generation:
                return
            logger.error("Loading messages for %s failed: %s", conversation.id, e)
            self.error = LOAD_ERROR
            self._state = SessionState.ERROR
            return
        if generation != self._generation:
            logger.debug("Discarding late history for %s", conversation.id)
            return
        self._apply(lambda current: timeline.adopt_history(current, history))
        self._state = SessionState.READY

    def _teardown(self) -> None:
        if self._subscription:
            self._subscription.unsubscribe()
            self._subscription = None
        for timer in self._read_timers.values():
            timer.cancel()
        self._read_timers.clear()
        for task in list(self._read_tasks):
            task.cancel()
        self._read_tasks.clear()

    def close(self) -> None:
        """Unsubscribe and drop all pending work for the open conversation."""
        self._teardown()
        self._generation += 1
        self._conversation = None
        self._state = SessionState.IDLE
        self.error = None
        self._apply(lambda _: ())

    # -- sending -----------------------------------------------------------

    async def send(self, body: str) -> ProvisionalMessage:
        """Append a provisional message and send it.

        The provisional entry stays until a matching confirmed message arrives
        through the change feed. On failure it is removed and ``SendError`` is
        raised with the unsent text in ``details["body"]``.
        """
        conversation = self._conversation
        text = (body or "").strip()
        if not text:
            raise SendError("Cannot send an empty message", code="invalid_message", details={"body": body})
        if conversation is None:
            raise SendError("No conversation is open", code="no_conversation", details={"body": body})

        generation = self._generation
        provisional = ProvisionalMessage(
            sender_id=self._viewer_id,
            recipient_id=conversation.other_participant_id(self._viewer_id),
            content=text,
            conversation_id=conversation.id,
            availability_id=conversation.availability_id,
        )
        self._apply(lambda current: timeline.append(current, provisional))
        try:
            await self._sender.send(provisional.recipient_id, text, conversation.availability_id)
        except Exception as e:
            if generation == self._generation:
                self._apply(lambda current: timeline.remove(current, provisional.id))
            logger.error("Sending message in %s failed: %s", conversation.id, e)
            if isinstance(e, SendError):
                raise
            raise SendError(f"Failed to send message: {e}", details={"body": body}) from e
        return provisional

    # -- change feed -------------------------------------------------------

    def _on_change(self, event: ChangeEvent) -> None:
        conversation = self._conversation
        if conversation is None or event.type is not ChangeType.INSERT:
            return
        message = event.message()
        if message is None or not message.involves(conversation.participant1_id, conversation.participant2_id):
            return
        self._apply(lambda current: timeline.merge_confirmed(current, message))

        if message.recipient_id == self._viewer_id and message.sender_id != self._viewer_id:
            if self._presenter:
                self._presenter.notify(message, conversation.summarize(self._viewer_id))
            if not message.is_read:
                self._schedule_mark_read(message.id)

    def _schedule_mark_read(self, message_id: str) -> None:
        if message_id in self._read_timers:
            return
        loop = asyncio.get_running_loop()
        self._read_timers[message_id] = loop.call_later(
            self._mark_read_delay, self._fire_mark_read, message_id, self._generation,
        )

    def _fire_mark_read(self, message_id: str, generation: int) -> None:
        self._read_timers.pop(message_id, None)
        if generation != self._generation:
            return
        task = asyncio.get_running_loop().create_task(self._mark_read(message_id))
        self._read_tasks.add(task)
        task.add_done_callback(self._read_tasks.discard)

    async def _mark_read(self, message_id: str) -> None:
        try:
            await self._store.mark_read(self._viewer_id, message_id=message_id)
        except Exception as e:
            logger.error("Failed to mark %s as read: %s", message_id, e)
        else:
            logger.debug("Marked %s as read", message_id)

    async def settle(self) -> None:
        """Wait for started read-receipt mutations. Used on shutdown and in tests."""
        if self._read_tasks:
            await asyncio.gather(*self._read_tasks, return_exceptions=True)
