"""
Message store — queries and read-state mutations against the hosted
platform's REST surface (``/rest/v1``).
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

from pawshare.errors import PawshareError, StoreError
from pawshare.models.conversation import Conversation
from pawshare.models.message import Message, UnreadRow
from pawshare.transport.http import HttpClient

logger = logging.getLogger(__name__)

REST_PREFIX = "/rest/v1"
PROFILE_COLUMNS = "id,first_name,last_name,profile_photo_url"
CONVERSATION_SELECT = (
    "*,"
    f"participant1:profiles!conversations_participant1_id_fkey({PROFILE_COLUMNS}),"
    f"participant2:profiles!conversations_participant2_id_fkey({PROFILE_COLUMNS}),"
    "availability:availability!conversations_availability_id_fkey(id,title,post_type)"
)


class MessageStore(Protocol):
    async def unread_messages(self, recipient_id: str, conversation_id: Optional[str] = None) -> list[UnreadRow]: ...

    async def messages_between(self, participant_a: str, participant_b: str) -> list[Message]: ...

    async def mark_read(
        self,
        recipient_id: str,
        *,
        conversation_id: Optional[str] = None,
        sender_id: Optional[str] = None,
        message_id: Optional[str] = None,
    ) -> int: ...

    async def mark_all_read(self, recipient_id: str) -> int: ...

    async def list_conversations(self, viewer_id: str) -> list[Conversation]: ...


def _eq(value: Any) -> str:
    if isinstance(value, bool):
        return f"eq.{str(value).lower()}"
    return f"eq.{value}"


class RestMessageStore:
    """MessageStore over PostgREST query syntax."""

    def __init__(self, http: HttpClient):
        self._http = http

    async def _get(self, table: str, params: dict[str, str]) -> list[dict[str, Any]]:
        try:
            rows = await self._http.get(f"{REST_PREFIX}/{table}", params=params)
        except PawshareError as e:
            raise StoreError(f"Failed to query {table}: {e}", details={"params": params}) from e
        return rows or []

    async def _update(self, table: str, body: dict[str, Any], params: dict[str, str]) -> list[dict[str, Any]]:
        try:
            rows = await self._http.patch(
                f"{REST_PREFIX}/{table}", body,
                params={**params, "select": "id"},
                headers={"Prefer": "return=representation"},
            )
        except PawshareError as e:
            raise StoreError(f"Failed to update {table}: {e}", details={"params": params}) from e
        return rows or []

    async def unread_messages(self, recipient_id: str, conversation_id: Optional[str] = None) -> list[UnreadRow]:
        params = {
            "select": "id,conversation_id,sender_id,created_at",
            "recipient_id": _eq(recipient_id),
            "is_read": _eq(False),
            "order": "created_at.desc",
        }
        if conversation_id:
            params["conversation_id"] = _eq(conversation_id)
        return [UnreadRow.model_validate(r) for r in await self._get("messages", params)]

    async def messages_between(self, participant_a: str, participant_b: str) -> list[Message]:
        params = {
            "select": "*",
            "or": (
                f"(and(sender_id.eq.{participant_a},recipient_id.eq.{participant_b}),"
                f"and(sender_id.eq.{participant_b},recipient_id.eq.{participant_a}))"
            ),
            "order": "created_at.asc",
        }
        return [Message.model_validate(r) for r in await self._get("messages", params)]

    async def mark_read(
        self,
        recipient_id: str,
        *,
        conversation_id: Optional[str] = None,
        sender_id: Optional[str] = None,
        message_id: Optional[str] = None,
    ) -> int:
        """Mark the viewer's unread messages matching the given filters as read.

        At least one of ``conversation_id``, ``sender_id`` or ``message_id`` is
        required; use :meth:`mark_all_read` for the unconditional case.
        """
        if not (conversation_id or sender_id or message_id):
            raise ValueError("mark_read requires a conversation_id, sender_id or message_id filter")
        params = {"recipient_id": _eq(recipient_id), "is_read": _eq(False)}
        if conversation_id:
            params["conversation_id"] = _eq(conversation_id)
        if sender_id:
            params["sender_id"] = _eq(sender_id)
        if message_id:
            params["id"] = _eq(message_id)
        rows = await self._update("messages", self._read_body(), params)
        return len(rows)

    async def mark_all_read(self, recipient_id: str) -> int:
        params = {"recipient_id": _eq(recipient_id), "is_read": _eq(False)}
        return len(await self._update("messages", self._read_body(), params))

    async def list_conversations(self, viewer_id: str) -> list[Conversation]:
        params = {
            "select": CONVERSATION_SELECT,
            "or": f"(participant1_id.eq.{viewer_id},participant2_id.eq.{viewer_id})",
            "order": "last_message_at.desc",
        }
        return [Conversation.model_validate(r) for r in await self._get("conversations", params)]

    @staticmethod
    def _read_body() -> dict[str, Any]:
        return {"is_read": True, "read_at": datetime.now(timezone.utc).isoformat()}
