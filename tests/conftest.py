"""Shared fakes for the message store, send endpoint and change feed."""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import pytest

from pawshare.errors import SendError, StoreError
from pawshare.models.conversation import Conversation, Profile
from pawshare.models.events import ChangeEvent, ChangeType
from pawshare.models.identity import Identity
from pawshare.models.message import Message, UnreadRow
from pawshare.transport.realtime import Subscription

VIEWER = "user-viewer"
ALICE = "user-alice"
BOB = "user-bob"

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def at(seconds: float) -> datetime:
    return BASE_TIME + timedelta(seconds=seconds)


def make_message(
    id: str,
    sender_id: str,
    recipient_id: str,
    content: str = "woof",
    conversation_id: Optional[str] = "conv-x",
    seconds: float = 0,
    is_read: bool = False,
) -> Message:
    return Message(
        id=id,
        sender_id=sender_id,
        recipient_id=recipient_id,
        content=content,
        conversation_id=conversation_id,
        created_at=at(seconds),
        is_read=is_read,
    )


def make_conversation(id: str, other: str, first_name: str = "Alice", seconds: float = 0) -> Conversation:
    return Conversation(
        id=id,
        participant1_id=VIEWER,
        participant2_id=other,
        last_message_at=at(seconds),
        participant1=Profile(id=VIEWER, first_name="Viv"),
        participant2=Profile(id=other, first_name=first_name, last_name="Walker",
                             profile_photo_url=f"https://img.test/{other}.png"),
    )


def insert_event(message: Message) -> ChangeEvent:
    return ChangeEvent(type=ChangeType.INSERT, table="messages", record=message.model_dump(mode="json"))


def read_event(message: Message) -> ChangeEvent:
    new = message.model_copy(update={"is_read": True, "read_at": at(60)})
    return ChangeEvent(
        type=ChangeType.UPDATE,
        table="messages",
        record=new.model_dump(mode="json"),
        old_record={"id": message.id, "is_read": False},
    )


class FakeStore:
    """In-memory MessageStore.

    Reads snapshot their result before waiting on ``gates[op]``, so a gated call
    returns the data as it was when issued. ``fail`` names operations that raise.
    """

    def __init__(self, messages: Optional[list[Message]] = None,
                 conversations: Optional[list[Conversation]] = None):
        self.messages: list[Message] = list(messages or [])
        self.conversations: list[Conversation] = list(conversations or [])
        self.calls: list[tuple[Any, ...]] = []
        self.fail: set[str] = set()
        self.gates: dict[str, asyncio.Event] = {}

    async def _enter(self, op: str, *args: Any) -> None:
        self.calls.append((op, *args))
        gate = self.gates.get(op)
        if gate is not None:
            await gate.wait()
        if op in self.fail:
            raise StoreError(f"{op} unavailable")

    def count(self, op: str) -> int:
        return sum(1 for c in self.calls if c[0] == op)

    async def unread_messages(self, recipient_id: str, conversation_id: Optional[str] = None) -> list[UnreadRow]:
        rows = [
            UnreadRow(id=m.id, conversation_id=m.conversation_id, sender_id=m.sender_id, created_at=m.created_at)
            for m in self.messages
            if m.recipient_id == recipient_id and not m.is_read
            and (conversation_id is None or m.conversation_id == conversation_id)
        ]
        await self._enter("unread_messages", recipient_id)
        return rows

    async def messages_between(self, participant_a: str, participant_b: str) -> list[Message]:
        rows = sorted((m for m in self.messages if m.involves(participant_a, participant_b)),
                      key=lambda m: m.created_at)
        await self._enter(f"messages_between:{participant_b}", participant_a)
        return rows

    async def mark_read(self, recipient_id: str, *, conversation_id: Optional[str] = None,
                        sender_id: Optional[str] = None, message_id: Optional[str] = None) -> int:
        method = "conversation" if conversation_id else "sender" if sender_id else "id"
        await self._enter(f"mark_read:{method}", recipient_id)
        marked = 0
        for i, m in enumerate(self.messages):
            if m.recipient_id != recipient_id or m.is_read:
                continue
            if conversation_id and m.conversation_id != conversation_id:
                continue
            if sender_id and m.sender_id != sender_id:
                continue
            if message_id and m.id != message_id:
                continue
            self.messages[i] = m.model_copy(update={"is_read": True, "read_at": at(120)})
            marked += 1
        return marked

    async def mark_all_read(self, recipient_id: str) -> int:
        await self._enter("mark_all_read", recipient_id)
        marked = 0
        for i, m in enumerate(self.messages):
            if m.recipient_id == recipient_id and not m.is_read:
                self.messages[i] = m.model_copy(update={"is_read": True})
                marked += 1
        return marked

    async def list_conversations(self, viewer_id: str) -> list[Conversation]:
        await self._enter("list_conversations", viewer_id)
        mine = [c for c in self.conversations if viewer_id in (c.participant1_id, c.participant2_id)]
        return sorted(mine, key=lambda c: c.last_message_at, reverse=True)


class FakeSender:
    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []
        self.fail = False
        self.gate: Optional[asyncio.Event] = None

    async def send(self, recipient_id: str, content: str, availability_id: Optional[str] = None) -> dict[str, Any]:
        self.sent.append({"recipient_id": recipient_id, "content": content, "availability_id": availability_id})
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise SendError("Failed to send message: offline", details={"body": content})
        return {"success": True}


class FakeChannel:
    """EventChannel that fans published events out to every matching topic."""

    def __init__(self) -> None:
        self.subscriptions: list[Subscription] = []

    def subscribe(self, topic, handler, *, table="messages",
                  events=(ChangeType.INSERT, ChangeType.UPDATE), filter=None) -> Subscription:
        sub = Subscription(topic, table, frozenset(events), filter, handler, self.subscriptions.remove)
        self.subscriptions.append(sub)
        return sub

    @property
    def topics(self) -> list[str]:
        return [s.topic for s in self.subscriptions]

    def publish(self, event: ChangeEvent, topic: Optional[str] = None) -> None:
        for sub in list(self.subscriptions):
            if topic is None or sub.topic == topic:
                sub.deliver(event)


class FakeSurface:
    def __init__(self, permission: str = "granted", broken: bool = False) -> None:
        self.permission = permission
        self.broken = broken
        self.shown: list[Any] = []

    async def request_permission(self) -> str:
        if self.broken:
            raise RuntimeError("notifications unsupported")
        return self.permission

    async def show(self, request: Any) -> None:
        self.shown.append(request)


@pytest.fixture
def viewer() -> Identity:
    return Identity(id=VIEWER, email="viv@example.com", access_token="token-viv")


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def sender() -> FakeSender:
    return FakeSender()
