"""
Auth module — email one-time-code sign in and the identity change stream.
"""

import logging
from typing import Any, Callable, Optional

from pawshare.errors import AuthError, PawshareError
from pawshare.models.identity import Identity
from pawshare.transport.http import HttpClient

logger = logging.getLogger(__name__)

IdentityListener = Callable[[Optional[Identity]], None]


class IdentityProvider:
    """Holds the signed-in identity and notifies listeners on every transition."""

    def __init__(self, identity: Optional[Identity] = None):
        self._identity = identity
        self._listeners: list[IdentityListener] = []

    @property
    def current(self) -> Optional[Identity]:
        return self._identity

    def on_change(self, listener: IdentityListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass
        return remove

    def set(self, identity: Optional[Identity]) -> None:
        if identity == self._identity:
            return
        self._identity = identity
        logger.info("Identity changed: %s", identity.id if identity else "signed out")
        for listener in list(self._listeners):
            listener(identity)

    def clear(self) -> None:
        self.set(None)


class Auth:
    def __init__(self, http: HttpClient, identity: Optional[IdentityProvider] = None):
        self._http = http
        self.identity = identity or IdentityProvider()

    async def request_code(self, email: str) -> dict[str, Any]:
        """Step 1: email a one-time sign-in code."""
        try:
            return await self._http.post(
                "/auth/v1/otp", {"email": email, "create_user": True}, authenticated=False,
            ) or {}
        except PawshareError as e:
            raise AuthError(f"Failed to request auth code: {e}") from e

    async def verify_code(self, email: str, code: str) -> Identity:
        """Step 2: exchange the code for a session and publish the new identity."""
        try:
            result = await self._http.post(
                "/auth/v1/verify",
                {"type": "email", "email": email, "token": code},
                authenticated=False,
            )
        except PawshareError as e:
            raise AuthError(f"Failed to verify auth code: {e}") from e
        try:
            user = result["user"]
            identity = Identity(
                id=user["id"],
                email=user.get("email", email),
                access_token=result["access_token"],
                refresh_token=result.get("refresh_token"),
            )
        except (KeyError, TypeError) as e:
            raise AuthError(f"Unexpected verify response: missing {e}") from e
        self._http.set_token(identity.access_token)
        self.identity.set(identity)
        return identity

    def sign_in(self, identity: Identity) -> None:
        """Adopt a previously stored session."""
        self._http.set_token(identity.access_token)
        self.identity.set(identity)

    def sign_out(self) -> None:
        self._http.set_token(None)
        self.identity.clear()
