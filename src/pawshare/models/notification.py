"""
Notification descriptors handed to the presentation layer.
"""

from typing import Optional

from pydantic import BaseModel

DEFAULT_ICON = "/icon.png"


class ToastDescriptor(BaseModel):
    """In-app toast shown for an incoming message."""
    message_id: str
    sender_name: str
    body: str
    conversation_id: Optional[str] = None
    profile_photo: Optional[str] = None
    dismiss_after: float = 5.0


class SystemNotificationRequest(BaseModel):
    """OS-level notification shown when the app is not focused."""
    title: str
    body: str
    icon: str = DEFAULT_ICON
    tag: str
    url: Optional[str] = None
