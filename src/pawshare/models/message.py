"""
Message models.

A timeline holds two kinds of entries: confirmed rows read from the store or
pushed by the change feed, and provisional rows created locally on send.
"""

import uuid
from datetime import datetime, timezone
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

TEMP_ID_PREFIX = "temp-"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Message(BaseModel):
    """A confirmed ``messages`` row."""
    kind: Literal["confirmed"] = "confirmed"
    id: str
    sender_id: str
    recipient_id: str
    content: str
    created_at: datetime
    conversation_id: Optional[str] = None
    availability_id: Optional[str] = None
    is_read: bool = False
    read_at: Optional[datetime] = None

    @property
    def provisional(self) -> bool:
        return False

    def involves(self, a: str, b: str) -> bool:
        return (self.sender_id, self.recipient_id) in ((a, b), (b, a))


class ProvisionalMessage(BaseModel):
    """A locally sent message awaiting confirmation."""
    kind: Literal["provisional"] = "provisional"
    id: str = Field(default_factory=lambda: f"{TEMP_ID_PREFIX}{uuid.uuid4().hex}")
    sender_id: str
    recipient_id: str
    content: str
    created_at: datetime = Field(default_factory=_now)
    conversation_id: Optional[str] = None
    availability_id: Optional[str] = None

    @property
    def provisional(self) -> bool:
        return True

    def matches(self, message: Message) -> bool:
        return (
            self.sender_id == message.sender_id
            and self.recipient_id == message.recipient_id
            and self.content == message.content
        )


TimelineEntry = Annotated[Union[Message, ProvisionalMessage], Field(discriminator="kind")]


class UnreadRow(BaseModel):
    """Projection of an unread row used for counting."""
    id: str
    conversation_id: Optional[str] = None
    sender_id: Optional[str] = None
    created_at: Optional[datetime] = None
