"""
AsyncPawshare — main SDK client.

Wires the identity stream, the REST store, the send endpoint, the realtime
relay and the three stateful components (unread tracker, conversation
directory, conversation session) for one signed-in viewer.
"""

import asyncio
import logging
from typing import Any, Callable, Optional

from pawshare.auth import Auth, IdentityProvider
from pawshare.config import Settings, get_settings
from pawshare.conversation import ConversationSession
from pawshare.directory import ConversationDirectory
from pawshare.errors import AuthError
from pawshare.messages import MessageSender, MessagesAPI
from pawshare.models.conversation import ConversationSummary
from pawshare.models.identity import Identity
from pawshare.models.notification import ToastDescriptor
from pawshare.notifications import NotificationPresenter, NotificationSurface
from pawshare.store import MessageStore, RestMessageStore
from pawshare.transport.http import HttpClient
from pawshare.transport.realtime import EventChannel, RealtimeChannel
from pawshare.transport.socketio import SocketIOManager
from pawshare.unread import UnreadTracker

logger = logging.getLogger(__name__)


class AsyncPawshare:
    """Async pawshare client."""

    def __init__(
        self,
        access_token: Optional[str] = None,
        user_id: Optional[str] = None,
        *,
        settings: Optional[Settings] = None,
        surface: Optional[NotificationSurface] = None,
        focused: Optional[Callable[[], bool]] = None,
        on_toast: Optional[Callable[[ToastDescriptor], None]] = None,
        transports: Optional[list[str]] = None,
        store: Optional[MessageStore] = None,
        sender: Optional[MessageSender] = None,
        channel: Optional[EventChannel] = None,
    ):
        """Create a client.

        ``store``, ``sender`` and ``channel`` replace the REST store, the send
        endpoint and the realtime relay; with a ``channel`` given, ``connect()``
        opens no Socket.IO connection.
        """
        self.settings = settings or get_settings()
        api_key = self.settings.supabase_anon_key.get_secret_value() or None
        self._api_key = api_key
        self._transports = transports

        self.platform = HttpClient(self.settings.supabase_url, token=access_token, api_key=api_key)
        self.app = HttpClient(self.settings.base_url, token=access_token)
        identity = Identity(id=user_id, access_token=access_token) if user_id and access_token else None
        self.auth = Auth(self.platform, IdentityProvider(identity))
        self.store: MessageStore = store or RestMessageStore(self.platform)
        self.messages: MessageSender = sender or MessagesAPI(self.app)
        self.presenter = NotificationPresenter(
            surface,
            focused=focused,
            on_toast=on_toast,
            dismiss_after=self.settings.toast_dismiss_after,
            base_url=self.settings.base_url,
        )

        self._sio: Optional[SocketIOManager] = None
        self._external_channel = channel
        self.channel: Optional[EventChannel] = None
        self.unread: Optional[UnreadTracker] = None
        self.directory: Optional[ConversationDirectory] = None
        self.session: Optional[ConversationSession] = None
        self._viewer_id: Optional[str] = identity.id if identity else None
        self._tasks: set[asyncio.Task[Any]] = set()
        self._remove_identity_listener = self.auth.identity.on_change(self._on_identity)

    @property
    def identity(self) -> Optional[Identity]:
        return self.auth.identity.current

    @property
    def connected(self) -> bool:
        if self.unread is None:
            return False
        return self._sio is None or self._sio.connected

    def _spawn(self, coro: Any) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _on_identity(self, identity: Optional[Identity]) -> None:
        self.app.set_token(identity.access_token if identity else None)
        previous, self._viewer_id = self._viewer_id, identity.id if identity else None
        if identity is not None and identity.id == previous:
            # Token refresh for the same viewer keeps the open conversation
            logger.debug("Access token refreshed for %s", identity.id)
            return
        # The tracker re-initializes itself through its binding
        self._close_viewer_components()
        if identity and self.channel:
            self._open_viewer_components(identity)
            assert self.directory is not None
            self._spawn(self.directory.refresh())

    def _open_viewer_components(self, identity: Identity) -> None:
        assert self.channel is not None and self.unread is not None
        self.directory = ConversationDirectory(
            identity.id, self.store, self.channel, self.unread, self.presenter,
            refresh_debounce=self.settings.directory_refresh_debounce,
        )
        self.directory.start()
        self.session = ConversationSession(
            identity.id, self.store, self.messages, self.channel, self.presenter,
            mark_read_delay=self.settings.mark_read_delay,
        )

    def _close_viewer_components(self) -> None:
        if self.session:
            self.session.close()
            self.session = None
        if self.directory:
            self.directory.close()
            self.directory = None

    async def _open_channel(self, identity: Identity) -> EventChannel:
        if self._external_channel is not None:
            return self._external_channel
        self._sio = SocketIOManager(
            self.settings.resolved_realtime_url,
            token=identity.access_token,
            api_key=self._api_key,
            transports=self._transports,
            ready_timeout=self.settings.ready_timeout,
        )
        channel = RealtimeChannel(self._sio)
        channel.start()
        await self._sio.connect()
        return channel

    async def connect(self) -> None:
        """Connect to the realtime relay and load unread counts and conversations."""
        identity = self.identity
        if identity is None or not identity.access_token:
            raise AuthError("Not signed in. Run the auth flow first.")
        if self.unread is not None:
            return

        self._viewer_id = identity.id
        self.channel = await self._open_channel(identity)
        self.unread = UnreadTracker(
            self.store, self.channel,
            insert_debounce=self.settings.unread_insert_debounce,
            update_debounce=self.settings.unread_update_debounce,
        )
        await self.unread.initialize(identity)
        self.unread.bind(self.auth.identity)
        self._open_viewer_components(identity)
        assert self.directory is not None
        await self.directory.refresh()

    async def disconnect(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        self._close_viewer_components()
        if self.unread:
            self.unread.close()
            self.unread = None
        if isinstance(self.channel, RealtimeChannel):
            self.channel.stop()
        self.channel = None
        if self._sio:
            await self._sio.disconnect()
            self._sio = None

    async def close(self) -> None:
        await self.disconnect()
        self._remove_identity_listener()
        await self.platform.close()
        await self.app.close()

    def _require_session(self) -> ConversationSession:
        if self.session is None:
            raise AuthError("Not connected. Call connect() first.")
        return self.session

    async def select_conversation(self, conversation: ConversationSummary) -> ConversationSession:
        """Open a conversation and mark it read when it has unread messages."""
        session = self._require_session()
        await session.open(conversation.conversation)
        if conversation.unread_count > 0 and self.unread:
            c = conversation.conversation
            await self.unread.mark_conversation_read(c.id, c.participant1_id, c.participant2_id)
        return session

    async def open_conversation(self, conversation_id: str) -> ConversationSession:
        """Open a conversation by id from the directory."""
        summary = self.directory.find(conversation_id) if self.directory else None
        if summary is None:
            raise KeyError(f"Unknown conversation {conversation_id}")
        return await self.select_conversation(summary)

    def conversations(self) -> list[ConversationSummary]:
        return self.directory.summaries if self.directory else []
