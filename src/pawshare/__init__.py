"""
pawshare — client SDK for the pawshare dog-sharing community.

Unread counts, live conversation timelines and message notifications over
the hosted platform's REST API and realtime change feed.
"""

from pawshare.auth import Auth, IdentityProvider
from pawshare.client import AsyncPawshare
from pawshare.conversation import ConversationSession, SessionState
from pawshare.directory import ConversationDirectory
from pawshare.errors import AuthError, PawshareError, RealtimeError, SendError, StoreError
from pawshare.notifications import NotificationPresenter
from pawshare.unread import UnreadTracker

__version__ = "0.1.0"
__all__ = [
    "AsyncPawshare",
    "Auth",
    "AuthError",
    "ConversationDirectory",
    "ConversationSession",
    "IdentityProvider",
    "NotificationPresenter",
    "PawshareError",
    "RealtimeError",
    "SendError",
    "SessionState",
    "StoreError",
    "UnreadTracker",
]
