"""
pawshare error types.
"""

from typing import Any, Optional


class PawshareError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class AuthError(PawshareError):
    def __init__(self, message: str, code: str = "auth_error"):
        super().__init__(code, message)


class StoreError(PawshareError):
    def __init__(self, message: str, code: str = "store_error", details: Optional[dict[str, Any]] = None):
        super().__init__(code, message, details)


class SendError(PawshareError):
    """Raised when a message could not be sent. ``details["body"]`` holds the unsent text."""

    def __init__(self, message: str, code: str = "send_error", details: Optional[dict[str, Any]] = None):
        super().__init__(code, message, details)


class RealtimeError(PawshareError):
    def __init__(self, message: str):
        super().__init__("realtime_error", message)
