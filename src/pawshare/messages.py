"""
Messages API — the web app's send endpoint (``POST /api/messages``).

The endpoint creates the conversation on first contact, inserts the row and
triggers the recipient's email. The inserted row reaches clients through the
change feed; the response is not treated as the confirmed message.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol

from pawshare.errors import PawshareError, SendError
from pawshare.transport.http import HttpClient


class MessageSender(Protocol):
    async def send(self, recipient_id: str, content: str, availability_id: Optional[str] = None) -> dict[str, Any]: ...


class MessagesAPI:
    def __init__(self, http: HttpClient):
        self._http = http

    async def send(self, recipient_id: str, content: str, availability_id: Optional[str] = None) -> dict[str, Any]:
        """Send a message to ``recipient_id``. Raises SendError on failure."""
        try:
            result = await self._http.post("/api/messages", {
                "recipient_id": recipient_id,
                "availability_id": availability_id,
                "content": content,
            })
        except PawshareError as e:
            raise SendError(f"Failed to send message: {e}", details={"body": content}) from e
        if isinstance(result, dict) and result.get("error"):
            raise SendError(str(result["error"]), details={"body": content})
        return result or {}
