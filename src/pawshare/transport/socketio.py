"""
Socket.IO connection manager for the realtime relay.

Connects with auth={token, apikey} and waits for the `ready` event before
resolving connect().
"""

import asyncio
import logging
from typing import Any, Callable, Optional

import socketio

from pawshare.errors import RealtimeError
from pawshare.models.events import RealtimeEvent

SOCKETIO_PATH = "/realtime/v1/socket.io/"

logger = logging.getLogger(__name__)

EventHandler = Callable[[str, dict[str, Any]], None]


class SocketIOManager:
    def __init__(
        self,
        url: str,
        token: str,
        api_key: Optional[str] = None,
        transports: Optional[list[str]] = None,
        ready_timeout: float = 15.0,
    ):
        self._url = url
        self._token = token
        self._api_key = api_key
        self._transports = transports or ["websocket"]
        self._ready_timeout = ready_timeout
        self._sio: Optional[socketio.AsyncClient] = None
        self._connected = False
        self._event_handlers: list[EventHandler] = []

    @property
    def connected(self) -> bool:
        return self._connected and self._sio is not None and self._sio.connected

    def add_event_handler(self, handler: EventHandler) -> Callable[[], None]:
        """Add an event handler. Returns a cleanup function."""
        self._event_handlers.append(handler)

        def remove() -> None:
            try:
                self._event_handlers.remove(handler)
            except ValueError:
                pass
        return remove

    def dispatch(self, event: str, data: Any) -> None:
        if event in ("connect", "disconnect", "connect_error"):
            return
        if not isinstance(data, dict):
            logger.debug("Dropping non-dict payload for %s", event)
            return
        for handler in list(self._event_handlers):
            handler(event, data)

    async def connect(self) -> None:
        if self._sio and self._sio.connected:
            return

        self._sio = socketio.AsyncClient()
        ready_event = asyncio.Event()

        @self._sio.on(RealtimeEvent.READY)
        async def on_ready(*args: Any) -> None:
            self._connected = True
            ready_event.set()
            # Fires again after every automatic reconnect
            self.dispatch(RealtimeEvent.READY, args[0] if args and isinstance(args[0], dict) else {})

        @self._sio.on("*")
        async def on_any(event: str, data: Any) -> None:
            self.dispatch(event, data)

        @self._sio.event
        async def disconnect(_reason: str = "") -> None:
            self._connected = False
            logger.info("Realtime relay disconnected")

        auth = {"token": self._token}
        if self._api_key:
            auth["apikey"] = self._api_key
        try:
            await self._sio.connect(
                self._url,
                auth=auth,
                transports=self._transports,
                socketio_path=SOCKETIO_PATH,
            )
        except socketio.exceptions.ConnectionError as e:
            raise RealtimeError(f"Failed to connect to realtime relay: {e}") from e

        try:
            await asyncio.wait_for(ready_event.wait(), timeout=self._ready_timeout)
        except asyncio.TimeoutError:
            await self._sio.disconnect()
            raise RealtimeError(f"Timed out waiting for 'ready' event after {self._ready_timeout}s")

    def emit(self, event_type: str, data: Any) -> None:
        """Schedule an emit on the running loop. Failures are logged."""
        if not self._sio or not self._sio.connected:
            raise RealtimeError("Socket.IO not connected")
        sio = self._sio

        async def _do_emit() -> None:
            try:
                await sio.emit(event_type, data)
            except Exception as e:
                logger.error("Emit failed for %s: %s", event_type, e)

        asyncio.get_running_loop().create_task(_do_emit())

    async def disconnect(self) -> None:
        self._connected = False
        if self._sio:
            await self._sio.disconnect()
            self._sio = None
