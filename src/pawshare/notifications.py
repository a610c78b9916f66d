"""
Notification presenter — toasts and system notifications for incoming messages.

The same insert can be observed by more than one subscription (the open
conversation's feed and the sidebar feed), so the presenter remembers the id
of the last message it notified about and ignores a repeat.
"""

import asyncio
import logging
from typing import Any, Callable, Optional, Protocol

from pawshare.models.conversation import ConversationSummary
from pawshare.models.message import Message
from pawshare.models.notification import DEFAULT_ICON, SystemNotificationRequest, ToastDescriptor

logger = logging.getLogger(__name__)

MAX_BODY_CHARS = 100
DEFAULT_DISMISS_AFTER = 5.0

GRANTED = "granted"
DENIED = "denied"


class NotificationSurface(Protocol):
    """OS-level notification surface."""

    async def request_permission(self) -> str: ...

    async def show(self, request: SystemNotificationRequest) -> None: ...


class NullSurface:
    """Surface for environments without system notifications."""

    async def request_permission(self) -> str:
        return DENIED

    async def show(self, request: SystemNotificationRequest) -> None:
        return None


def conversation_url(conversation_id: str, base_url: str = "") -> str:
    return f"{base_url.rstrip('/')}/messages?conversation={conversation_id}"


class NotificationPresenter:
    def __init__(
        self,
        surface: Optional[NotificationSurface] = None,
        *,
        focused: Optional[Callable[[], bool]] = None,
        on_toast: Optional[Callable[[ToastDescriptor], None]] = None,
        dismiss_after: float = DEFAULT_DISMISS_AFTER,
        base_url: str = "",
    ):
        self._surface = surface or NullSurface()
        self._focused = focused or (lambda: True)
        self._on_toast = on_toast
        self._dismiss_after = dismiss_after
        self._base_url = base_url
        self._last_notified_id: Optional[str] = None
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def last_notified_id(self) -> Optional[str]:
        return self._last_notified_id

    async def request_permission(self) -> str:
        try:
            return await self._surface.request_permission()
        except Exception as e:
            logger.debug("Notification permission unavailable: %s", e)
            return DENIED

    def notify(self, message: Message, conversation: ConversationSummary) -> Optional[ToastDescriptor]:
        """Emit a toast for ``message`` unless it was the last one notified."""
        if message.id == self._last_notified_id:
            logger.debug("Suppressing duplicate notification for %s", message.id)
            return None
        self._last_notified_id = message.id

        body = message.content[:MAX_BODY_CHARS]
        # Placeholder summaries for rows without a conversation carry an empty id
        conversation_id = conversation.id or None
        toast = ToastDescriptor(
            message_id=message.id,
            sender_name=conversation.display_name,
            body=body,
            conversation_id=conversation_id,
            profile_photo=conversation.profile_photo,
            dismiss_after=self._dismiss_after,
        )
        if self._on_toast:
            self._on_toast(toast)

        if not self._focused():
            request = SystemNotificationRequest(
                title=f"New message from {conversation.display_name}",
                body=body,
                icon=conversation.profile_photo or DEFAULT_ICON,
                tag=f"message-{message.id}",
                url=conversation_url(conversation_id, self._base_url) if conversation_id else None,
            )
            task = asyncio.get_running_loop().create_task(self._show_system(request))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        return toast

    async def _show_system(self, request: SystemNotificationRequest) -> None:
        try:
            if await self._surface.request_permission() != GRANTED:
                return
            await self._surface.show(request)
        except Exception as e:
            logger.debug("System notification skipped: %s", e)

    async def flush(self) -> None:
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
