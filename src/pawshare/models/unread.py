"""
Unread aggregate — total and per-conversation unread counts for one viewer.
"""

from collections import Counter
from datetime import datetime, timezone
from typing import Iterable, Optional

from pydantic import BaseModel, Field


class UnreadAggregate(BaseModel):
    total: int = Field(default=0, ge=0)
    by_conversation: dict[str, int] = Field(default_factory=dict)
    last_refreshed: Optional[datetime] = None

    model_config = {"frozen": True}

    @property
    def has_new_messages(self) -> bool:
        return self.total > 0

    def settled(self) -> bool:
        return self.total == sum(self.by_conversation.values())

    def count_for(self, conversation_id: str) -> int:
        return self.by_conversation.get(conversation_id, 0)

    @classmethod
    def from_rows(cls, conversation_ids: Iterable[Optional[str]]) -> "UnreadAggregate":
        """Group unread rows by conversation id. Rows without one only count toward ``total``."""
        ids = list(conversation_ids)
        counts = Counter(cid for cid in ids if cid)
        return cls(total=len(ids), by_conversation=dict(counts), last_refreshed=datetime.now(timezone.utc))

    def bumped(self, conversation_id: Optional[str]) -> "UnreadAggregate":
        counts = dict(self.by_conversation)
        if conversation_id:
            counts[conversation_id] = counts.get(conversation_id, 0) + 1
        return UnreadAggregate(total=self.total + 1, by_conversation=counts,
                               last_refreshed=self.last_refreshed)

    def decremented(self, conversation_id: Optional[str]) -> "UnreadAggregate":
        counts = dict(self.by_conversation)
        if conversation_id and conversation_id in counts:
            remaining = counts[conversation_id] - 1
            if remaining > 0:
                counts[conversation_id] = remaining
            else:
                del counts[conversation_id]
        return UnreadAggregate(total=max(0, self.total - 1), by_conversation=counts,
                               last_refreshed=datetime.now(timezone.utc))


EMPTY = UnreadAggregate()
