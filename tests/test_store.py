"""REST store, send endpoint and auth against mocked HTTP."""

import json

import httpx
import pytest
import respx

from pawshare.auth import Auth, IdentityProvider
from pawshare.errors import AuthError, SendError, StoreError
from pawshare.messages import MessagesAPI
from pawshare.store import RestMessageStore
from pawshare.transport.http import HttpClient

PLATFORM = "https://api.pawshare.test"
APP = "https://www.pawshare.test"
MESSAGES_URL = f"{PLATFORM}/rest/v1/messages"


def make_store() -> tuple[HttpClient, RestMessageStore]:
    http = HttpClient(PLATFORM, token="token-viv", api_key="anon-key")
    return http, RestMessageStore(http)


class TestQueries:
    @pytest.mark.asyncio
    @respx.mock
    async def test_unread_messages(self):
        route = respx.get(MESSAGES_URL).respond(200, json=[
            {"id": "m1", "conversation_id": "c1", "sender_id": "a", "created_at": "2024-05-01T12:00:00+00:00"},
            {"id": "m2", "conversation_id": None, "sender_id": "b", "created_at": "2024-05-01T12:01:00+00:00"},
        ])
        http, store = make_store()

        rows = await store.unread_messages("user-viewer")

        assert [r.conversation_id for r in rows] == ["c1", None]
        request = route.calls.last.request
        assert request.url.params["recipient_id"] == "eq.user-viewer"
        assert request.url.params["is_read"] == "eq.false"
        assert request.url.params["order"] == "created_at.desc"
        assert "conversation_id" not in request.url.params
        assert request.headers["apikey"] == "anon-key"
        assert request.headers["Authorization"] == "Bearer token-viv"
        await http.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_messages_between(self):
        route = respx.get(MESSAGES_URL).respond(200, json=[{
            "id": "m1", "sender_id": "a", "recipient_id": "b", "content": "hi",
            "created_at": "2024-05-01T12:00:00Z", "is_read": True, "read_at": "2024-05-01T12:05:00Z",
        }])
        http, store = make_store()

        [message] = await store.messages_between("a", "b")

        assert message.content == "hi"
        assert message.is_read
        params = route.calls.last.request.url.params
        assert params["or"] == "(and(sender_id.eq.a,recipient_id.eq.b),and(sender_id.eq.b,recipient_id.eq.a))"
        assert params["order"] == "created_at.asc"
        await http.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_list_conversations_with_profiles(self):
        route = respx.get(f"{PLATFORM}/rest/v1/conversations").respond(200, json=[{
            "id": "c1", "participant1_id": "v", "participant2_id": "a", "availability_id": "av1",
            "last_message_at": "2024-05-01T12:00:00Z", "created_at": "2024-04-01T12:00:00Z",
            "participant1": {"id": "v", "first_name": "Viv", "last_name": None, "profile_photo_url": None},
            "participant2": {"id": "a", "first_name": "Alice", "last_name": "Walker", "profile_photo_url": None},
            "availability": {"id": "av1", "title": "Weekend walks", "post_type": "dog_available"},
        }])
        http, store = make_store()

        [conversation] = await store.list_conversations("v")

        assert conversation.display_name("v") == "Alice Walker"
        assert conversation.availability.title == "Weekend walks"
        assert route.calls.last.request.url.params["order"] == "last_message_at.desc"
        await http.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_http_error_raises_store_error(self):
        respx.get(MESSAGES_URL).respond(503, text="unavailable")
        http, store = make_store()
        with pytest.raises(StoreError):
            await store.unread_messages("user-viewer")
        await http.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_network_error_raises_store_error(self):
        respx.get(MESSAGES_URL).mock(side_effect=httpx.ConnectError("offline"))
        http, store = make_store()
        with pytest.raises(StoreError):
            await store.messages_between("a", "b")
        await http.close()


class TestMutations:
    @pytest.mark.asyncio
    @respx.mock
    async def test_mark_read_by_conversation(self):
        route = respx.patch(MESSAGES_URL).respond(200, json=[{"id": "m1"}, {"id": "m2"}])
        http, store = make_store()

        marked = await store.mark_read("user-viewer", conversation_id="c1")

        assert marked == 2
        request = route.calls.last.request
        assert request.url.params["conversation_id"] == "eq.c1"
        assert request.url.params["recipient_id"] == "eq.user-viewer"
        assert request.url.params["is_read"] == "eq.false"
        assert request.headers["Prefer"] == "return=representation"
        body = json.loads(request.content)
        assert body["is_read"] is True
        assert body["read_at"]
        await http.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_mark_read_by_sender_and_id(self):
        route = respx.patch(MESSAGES_URL).respond(200, json=[])
        http, store = make_store()

        assert await store.mark_read("user-viewer", sender_id="user-alice") == 0
        assert route.calls.last.request.url.params["sender_id"] == "eq.user-alice"
        await store.mark_read("user-viewer", message_id="m7")
        assert route.calls.last.request.url.params["id"] == "eq.m7"
        await http.close()

    @pytest.mark.asyncio
    async def test_mark_read_requires_filter(self):
        http, store = make_store()
        with pytest.raises(ValueError):
            await store.mark_read("user-viewer")
        await http.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_mark_all_read(self):
        route = respx.patch(MESSAGES_URL).respond(200, json=[{"id": "m1"}])
        http, store = make_store()

        assert await store.mark_all_read("user-viewer") == 1
        params = route.calls.last.request.url.params
        assert set(params.keys()) == {"recipient_id", "is_read", "select"}
        await http.close()


class TestMessagesAPI:
    @pytest.mark.asyncio
    @respx.mock
    async def test_send(self):
        route = respx.post(f"{APP}/api/messages").respond(200, json={"success": True})
        http = HttpClient(APP, token="token-viv")

        await MessagesAPI(http).send("user-alice", "hi", availability_id="av1")

        body = json.loads(route.calls.last.request.content)
        assert body == {"recipient_id": "user-alice", "availability_id": "av1", "content": "hi"}
        await http.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_send_failure_keeps_body(self):
        respx.post(f"{APP}/api/messages").respond(400, json={"error": "Recipient not found"})
        http = HttpClient(APP, token="token-viv")

        with pytest.raises(SendError) as exc_info:
            await MessagesAPI(http).send("user-ghost", "hello?")

        assert exc_info.value.details == {"body": "hello?"}
        await http.close()


class TestAuth:
    @pytest.mark.asyncio
    @respx.mock
    async def test_verify_publishes_identity(self):
        respx.post(f"{PLATFORM}/auth/v1/verify").respond(200, json={
            "access_token": "fresh-token",
            "refresh_token": "refresh",
            "user": {"id": "user-viewer", "email": "viv@example.com"},
        })
        route = respx.get(MESSAGES_URL).respond(200, json=[])
        http = HttpClient(PLATFORM, api_key="anon-key")
        provider = IdentityProvider()
        seen = []
        provider.on_change(seen.append)
        auth = Auth(http, provider)

        identity = await auth.verify_code("viv@example.com", "123456")

        assert identity.id == "user-viewer"
        assert provider.current == identity
        assert seen == [identity]
        await RestMessageStore(http).unread_messages("user-viewer")
        assert route.calls.last.request.headers["Authorization"] == "Bearer fresh-token"

        auth.sign_out()
        assert provider.current is None
        assert seen[-1] is None
        await http.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_request_code_failure(self):
        respx.post(f"{PLATFORM}/auth/v1/otp").respond(429, json={"msg": "slow down"})
        http = HttpClient(PLATFORM, api_key="anon-key")
        with pytest.raises(AuthError):
            await Auth(http).request_code("viv@example.com")
        await http.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_verify_with_unexpected_body(self):
        respx.post(f"{PLATFORM}/auth/v1/verify").respond(200, json={"access_token": "t"})
        http = HttpClient(PLATFORM, api_key="anon-key")
        with pytest.raises(AuthError):
            await Auth(http).verify_code("viv@example.com", "000000")
        await http.close()
