"""
Row change events relayed from the hosted platform's realtime feed.

Wire shape of a ``postgres_changes`` event:

    {"topic": "messages:abc", "payload": {"type": "INSERT", "table": "messages",
     "schema": "public", "record": {...}, "old_record": {...}}}
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ValidationError

from pawshare.models.message import Message


class ChangeType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class RealtimeEvent:
    """Socket.IO event names used by the realtime relay."""
    SUBSCRIBE = "realtime:subscribe"
    UNSUBSCRIBE = "realtime:unsubscribe"
    POSTGRES_CHANGES = "postgres_changes"
    READY = "ready"


class ChangeEvent(BaseModel):
    type: ChangeType
    table: str
    schema_name: str = "public"
    record: dict[str, Any] = {}
    old_record: dict[str, Any] = {}

    def message(self) -> Optional[Message]:
        """The new row as a ``Message``, or None if it does not look like one."""
        try:
            return Message.model_validate(self.record)
        except ValidationError:
            return None

    @property
    def became_read(self) -> bool:
        return self.record.get("is_read") is True and self.old_record.get("is_read") is False


def parse_change(raw: Any) -> Optional[ChangeEvent]:
    """Parse a change payload. Returns None if invalid."""
    if not isinstance(raw, dict):
        return None
    payload = raw.get("payload", raw)
    if not isinstance(payload, dict):
        return None
    data = dict(payload)
    if "schema" in data:
        data["schema_name"] = data.pop("schema")
    try:
        return ChangeEvent.model_validate(data)
    except ValidationError:
        return None
