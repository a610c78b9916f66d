"""
Conversation models — rows from ``conversations`` with embedded profiles.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

UNKNOWN_USER = "Unknown User"


class Profile(BaseModel):
    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_photo_url: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


class Availability(BaseModel):
    """Availability post a conversation started from."""
    id: str
    title: Optional[str] = None
    post_type: Optional[str] = None


class Conversation(BaseModel):
    id: str
    participant1_id: str
    participant2_id: str
    availability_id: Optional[str] = None
    last_message_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    participant1: Optional[Profile] = None
    participant2: Optional[Profile] = None
    availability: Optional[Availability] = None

    def has_participants(self, a: str, b: str) -> bool:
        return {a, b} == {self.participant1_id, self.participant2_id}

    def other_participant_id(self, viewer_id: str) -> str:
        return self.participant2_id if self.participant1_id == viewer_id else self.participant1_id

    def other_participant(self, viewer_id: str) -> Profile:
        if self.participant1_id == viewer_id:
            profile = self.participant2
        else:
            profile = self.participant1
        return profile or Profile(id=self.other_participant_id(viewer_id))

    def display_name(self, viewer_id: str) -> str:
        return self.other_participant(viewer_id).full_name or UNKNOWN_USER

    def profile_photo(self, viewer_id: str) -> Optional[str]:
        return self.other_participant(viewer_id).profile_photo_url

    def summarize(self, viewer_id: str, unread_count: int = 0) -> "ConversationSummary":
        return ConversationSummary(
            conversation=self,
            other_participant=self.other_participant(viewer_id),
            display_name=self.display_name(viewer_id),
            profile_photo=self.profile_photo(viewer_id),
            unread_count=unread_count,
        )


class ConversationSummary(BaseModel):
    """A conversation as seen by one viewer."""
    conversation: Conversation
    other_participant: Profile
    display_name: str
    profile_photo: Optional[str] = None
    unread_count: int = 0

    @property
    def id(self) -> str:
        return self.conversation.id
