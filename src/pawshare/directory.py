"""
Conversation directory — the viewer's conversation list (the sidebar).

Conversations are ranked by last activity and carry the tracker's unread
count. A viewer-wide feed refreshes the list (debounced) when a message
involving the viewer is inserted and hands incoming messages to the
presenter.
"""

import logging
from typing import Callable, Optional

from pawshare.debounce import Debouncer
from pawshare.models.conversation import Conversation, ConversationSummary
from pawshare.models.events import ChangeEvent, ChangeType
from pawshare.models.message import Message
from pawshare.models.unread import UnreadAggregate
from pawshare.notifications import NotificationPresenter
from pawshare.store import MessageStore
from pawshare.transport.realtime import EventChannel, Subscription
from pawshare.unread import UnreadTracker

logger = logging.getLogger(__name__)

SIDEBAR_TOPIC = "all-messages-sidebar"
DEFAULT_REFRESH_DEBOUNCE = 0.5

DirectoryListener = Callable[[list[ConversationSummary]], None]


class ConversationDirectory:
    def __init__(
        self,
        viewer_id: str,
        store: MessageStore,
        channel: EventChannel,
        tracker: Optional[UnreadTracker] = None,
        presenter: Optional[NotificationPresenter] = None,
        *,
        refresh_debounce: float = DEFAULT_REFRESH_DEBOUNCE,
    ):
        self._viewer_id = viewer_id
        self._store = store
        self._channel = channel
        self._tracker = tracker
        self._presenter = presenter
        self._conversations: list[Conversation] = []
        self._summaries: list[ConversationSummary] = []
        self._token = 0
        self._refresh = Debouncer(refresh_debounce, self.refresh, name="directory refresh")
        self._subscription: Optional[Subscription] = None
        self._remove_unread_listener: Optional[Callable[[], None]] = None
        self._listeners: list[DirectoryListener] = []

    @property
    def summaries(self) -> list[ConversationSummary]:
        return list(self._summaries)

    def add_listener(self, listener: DirectoryListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass
        return remove

    def start(self) -> None:
        if self._subscription is None:
            self._subscription = self._channel.subscribe(
                SIDEBAR_TOPIC, self._on_change, events=(ChangeType.INSERT,),
            )
        if self._tracker and self._remove_unread_listener is None:
            self._remove_unread_listener = self._tracker.add_listener(self._on_unread)

    def close(self) -> None:
        if self._subscription:
            self._subscription.unsubscribe()
            self._subscription = None
        if self._remove_unread_listener:
            self._remove_unread_listener()
            self._remove_unread_listener = None
        self._refresh.cancel()
        self._token += 1

    def find(self, conversation_id: Optional[str]) -> Optional[ConversationSummary]:
        if not conversation_id:
            return None
        for summary in self._summaries:
            if summary.id == conversation_id:
                return summary
        return None

    def find_by_participants(self, a: str, b: str) -> Optional[ConversationSummary]:
        for summary in self._summaries:
            if summary.conversation.has_participants(a, b):
                return summary
        return None

    async def refresh(self) -> None:
        """Reload the conversation list. The latest issued refresh wins."""
        self._token += 1
        token = self._token
        try:
            conversations = await self._store.list_conversations(self._viewer_id)
        except Exception as e:
            logger.error("Loading conversations failed: %s", e)
            return
        if token != self._token:
            logger.debug("Discarding stale conversation list")
            return
        self._conversations = conversations
        self._rebuild()

    def _rebuild(self) -> None:
        counts = self._tracker.aggregate if self._tracker else UnreadAggregate()
        self._summaries = [
            c.summarize(self._viewer_id, counts.count_for(c.id)) for c in self._conversations
        ]
        for listener in list(self._listeners):
            listener(self.summaries)

    def _on_unread(self, _aggregate: UnreadAggregate) -> None:
        if self._conversations:
            self._rebuild()

    def _on_change(self, event: ChangeEvent) -> None:
        message = event.message()
        if message is None or self._viewer_id not in (message.sender_id, message.recipient_id):
            return
        self._refresh.trigger()
        if message.recipient_id == self._viewer_id and message.sender_id != self._viewer_id:
            self._notify(message)

    def _notify(self, message: Message) -> None:
        if self._presenter is None:
            return
        summary = self.find(message.conversation_id) or self.find_by_participants(
            message.sender_id, message.recipient_id,
        )
        if summary is None:
            placeholder = Conversation(
                id=message.conversation_id or "",
                participant1_id=message.sender_id,
                participant2_id=message.recipient_id,
            )
            summary = placeholder.summarize(self._viewer_id)
        self._presenter.notify(message, summary)

    async def settle(self) -> None:
        await self._refresh.flush()
