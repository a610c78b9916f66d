from pawshare.models.conversation import Availability, Conversation, ConversationSummary, Profile
from pawshare.models.events import ChangeEvent, ChangeType, RealtimeEvent, parse_change
from pawshare.models.identity import Identity
from pawshare.models.message import Message, ProvisionalMessage, TimelineEntry, UnreadRow
from pawshare.models.notification import SystemNotificationRequest, ToastDescriptor
from pawshare.models.unread import UnreadAggregate

__all__ = [
    "Availability",
    "ChangeEvent",
    "ChangeType",
    "Conversation",
    "ConversationSummary",
    "Identity",
    "Message",
    "Profile",
    "ProvisionalMessage",
    "RealtimeEvent",
    "SystemNotificationRequest",
    "TimelineEntry",
    "ToastDescriptor",
    "UnreadAggregate",
    "UnreadRow",
    "parse_change",
]
