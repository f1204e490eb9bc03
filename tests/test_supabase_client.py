"""Tests for the reminder store client."""

from datetime import UTC, datetime, timedelta
from email.utils import format_datetime
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from compagnon.supabase import (
    Message,
    MessageCreate,
    Reminder,
    ReminderCreate,
    ReminderStatus,
    SupabaseClient,
    SupabaseError,
)
from compagnon.supabase.client import REST_PATH, retry_after_seconds

REMINDER_ROW = {
    "id": "rem-1",
    "text": "Pharmacie",
    "due_at": "2024-01-02T09:00:00+00:00",
    "status": "pending",
    "circle_id": "circle-1",
    "created_by": "user-1",
    "created_at": "2024-01-01T07:00:00+00:00",
}


def make_response(status_code: int = 200, payload=None, headers=None) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.headers = headers or {}
    response.text = "error"
    response.json.return_value = payload if payload is not None else []
    if status_code >= 400:
        response.raise_for_status.side_effect = httpx.HTTPStatusError(
            "error", request=MagicMock(), response=response
        )
    else:
        response.raise_for_status = MagicMock()
    return response


@pytest.fixture
def client():
    return SupabaseClient(url="https://example.supabase.co/", api_key="anon-key")


@pytest.fixture
def http():
    return AsyncMock()


class TestSupabaseClientInit:
    def test_explicit_credentials(self, client):
        assert client.url == "https://example.supabase.co"
        assert client.is_configured
        assert client.headers["apikey"] == "anon-key"
        assert client.headers["Authorization"] == "Bearer anon-key"

    def test_access_token_overrides_bearer(self):
        client = SupabaseClient(url="https://x.supabase.co", api_key="anon", access_token="jwt")
        assert client.headers["Authorization"] == "Bearer jwt"
        assert client.headers["apikey"] == "anon"

    def test_unconfigured(self):
        with patch("compagnon.supabase.client.settings") as mock_settings:
            mock_settings.supabase_url = ""
            mock_settings.supabase_anon_key = ""
            client = SupabaseClient()
            assert not client.is_configured

    @pytest.mark.asyncio
    async def test_http_client_base_url(self, client):
        http_client = await client._get_client()
        assert str(http_client.base_url).rstrip("/") == f"https://example.supabase.co{REST_PATH}"
        await client.close()
        assert client._client is None


class TestSupabaseClientQueries:
    @pytest.mark.asyncio
    async def test_get_circle_id(self, client, http):
        http.request = AsyncMock(
            return_value=make_response(payload=[{"circle_id": "circle-1", "user_id": "user-1"}])
        )
        with patch.object(client, "_get_client", return_value=http):
            assert await client.get_circle_id("user-1") == "circle-1"

        method, path = http.request.call_args[0]
        assert (method, path) == ("GET", "/circle_members")
        assert http.request.call_args.kwargs["params"]["user_id"] == "eq.user-1"

    @pytest.mark.asyncio
    async def test_get_circle_id_none(self, client, http):
        http.request = AsyncMock(return_value=make_response(payload=[]))
        with patch.object(client, "_get_client", return_value=http):
            assert await client.get_circle_id("user-1") is None

    @pytest.mark.asyncio
    async def test_create_reminder(self, client, http):
        http.request = AsyncMock(return_value=make_response(201, payload=[REMINDER_ROW]))
        payload = ReminderCreate(
            text="Pharmacie",
            due_at="2024-01-02T09:00:00Z",
            circle_id="circle-1",
            created_by="user-1",
        )

        with patch.object(client, "_get_client", return_value=http):
            reminder = await client.create_reminder(payload)

        assert isinstance(reminder, Reminder)
        assert reminder.status == ReminderStatus.PENDING
        sent = http.request.call_args.kwargs["json"]
        assert sent == {
            "text": "Pharmacie",
            "due_at": "2024-01-02T09:00:00Z",
            "status": "pending",
            "circle_id": "circle-1",
            "created_by": "user-1",
        }

    @pytest.mark.asyncio
    async def test_list_reminders_ordered_by_due_at(self, client, http):
        http.request = AsyncMock(
            return_value=make_response(payload=[REMINDER_ROW, {**REMINDER_ROW, "id": "rem-2"}])
        )
        with patch.object(client, "_get_client", return_value=http):
            reminders = await client.list_reminders("circle-1")

        assert [r.id for r in reminders] == ["rem-1", "rem-2"]
        params = http.request.call_args.kwargs["params"]
        assert params["order"] == "due_at.asc"
        assert params["circle_id"] == "eq.circle-1"

    @pytest.mark.asyncio
    async def test_update_reminder(self, client, http):
        http.request = AsyncMock(
            return_value=make_response(payload=[{**REMINDER_ROW, "status": "done"}])
        )
        with patch.object(client, "_get_client", return_value=http):
            reminder = await client.update_reminder("rem-1", status="done")

        assert reminder.status == ReminderStatus.DONE
        assert http.request.call_args[0] == ("PATCH", "/reminders")
        assert http.request.call_args.kwargs["params"] == {"id": "eq.rem-1"}

    @pytest.mark.asyncio
    async def test_update_missing_reminder(self, client, http):
        http.request = AsyncMock(return_value=make_response(payload=[]))
        with patch.object(client, "_get_client", return_value=http):
            with pytest.raises(SupabaseError) as exc_info:
                await client.update_reminder("missing", status="done")
        assert exc_info.value.status_code == 404


    @pytest.mark.asyncio
    async def test_list_reminders_between(self, client, http):
        http.request = AsyncMock(return_value=make_response(payload=[REMINDER_ROW]))
        with patch.object(client, "_get_client", return_value=http):
            reminders = await client.list_reminders_between(
                "circle-1", "2023-12-31T23:00:00Z", "2024-01-01T23:00:00Z"
            )

        assert [r.id for r in reminders] == ["rem-1"]
        params = http.request.call_args.kwargs["params"]
        assert params["circle_id"] == "eq.circle-1"
        assert params["status"] == "neq.done"
        assert params["and"] == "(due_at.gte.2023-12-31T23:00:00Z,due_at.lt.2024-01-01T23:00:00Z)"
        assert params["order"] == "due_at.asc"

    @pytest.mark.asyncio
    async def test_send_message(self, client, http):
        row = {
            "id": "msg-1",
            "content": "Bonjour",
            "audio_url": None,
            "sender_id": "user-1",
            "circle_id": "circle-1",
            "created_at": "2024-01-01T07:00:00+00:00",
        }
        http.request = AsyncMock(return_value=make_response(201, payload=[row]))

        with patch.object(client, "_get_client", return_value=http):
            message = await client.send_message(
                MessageCreate(content="Bonjour", sender_id="user-1", circle_id="circle-1")
            )

        assert isinstance(message, Message)
        assert message.id == "msg-1"
        assert http.request.call_args[0] == ("POST", "/messages")
        assert http.request.call_args.kwargs["json"] == {
            "content": "Bonjour",
            "sender_id": "user-1",
            "circle_id": "circle-1",
        }

    @pytest.mark.asyncio
    async def test_list_messages_oldest_first(self, client, http):
        rows = [
            {"id": "msg-1", "content": "Bonjour", "sender_id": "user-1", "circle_id": "circle-1"},
            {
                "id": "msg-2",
                "audio_url": "https://x/a.webm",
                "sender_id": "user-2",
                "circle_id": "circle-1",
            },
        ]
        http.request = AsyncMock(return_value=make_response(payload=rows))

        with patch.object(client, "_get_client", return_value=http):
            messages = await client.list_messages("circle-1")

        assert [m.id for m in messages] == ["msg-1", "msg-2"]
        assert messages[1].content is None
        params = http.request.call_args.kwargs["params"]
        assert params["order"] == "created_at.asc"
        assert params["circle_id"] == "eq.circle-1"


class TestSupabaseClientRetries:
    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self, client, http):
        http.request = AsyncMock(return_value=make_response(403))
        with patch.object(client, "_get_client", return_value=http):
            with pytest.raises(SupabaseError) as exc_info:
                await client.list_reminders("circle-1")

        assert exc_info.value.status_code == 403
        assert http.request.await_count == 1

    @pytest.mark.asyncio
    async def test_server_error_is_retried(self, client, http):
        http.request = AsyncMock(
            side_effect=[make_response(503), make_response(payload=[REMINDER_ROW])]
        )
        with (
            patch.object(client, "_get_client", return_value=http),
            patch("compagnon.supabase.client.asyncio.sleep", new=AsyncMock()) as sleep,
        ):
            reminders = await client.list_reminders("circle-1")

        assert len(reminders) == 1
        sleep.assert_awaited_once_with(1)

    @pytest.mark.asyncio
    async def test_rate_limit_honors_retry_after(self, client, http):
        http.request = AsyncMock(
            side_effect=[
                make_response(429, headers={"Retry-After": "3"}),
                make_response(payload=[REMINDER_ROW]),
            ]
        )
        with (
            patch.object(client, "_get_client", return_value=http),
            patch("compagnon.supabase.client.asyncio.sleep", new=AsyncMock()) as sleep,
        ):
            await client.list_reminders("circle-1")

        sleep.assert_awaited_once_with(3)

    @pytest.mark.asyncio
    async def test_network_errors_exhaust_retries(self, client, http):
        http.request = AsyncMock(side_effect=httpx.ConnectError("down"))
        with (
            patch.object(client, "_get_client", return_value=http),
            patch("compagnon.supabase.client.asyncio.sleep", new=AsyncMock()),
        ):
            with pytest.raises(SupabaseError):
                await client.get_circle_id("user-1")

        assert http.request.await_count == 3

    @pytest.mark.asyncio
    async def test_rate_limit_with_http_date(self, client, http):
        http.request = AsyncMock(
            side_effect=[
                make_response(429, headers={"Retry-After": "Wed, 21 Oct 2015 07:28:00 GMT"}),
                make_response(payload=[REMINDER_ROW]),
            ]
        )
        with (
            patch.object(client, "_get_client", return_value=http),
            patch("compagnon.supabase.client.asyncio.sleep", new=AsyncMock()) as sleep,
        ):
            reminders = await client.list_reminders("circle-1")

        assert len(reminders) == 1
        sleep.assert_awaited_once_with(0.0)

    @pytest.mark.asyncio
    async def test_rate_limited_until_exhausted(self, client, http):
        http.request = AsyncMock(return_value=make_response(429, headers={"Retry-After": "soon"}))
        with (
            patch.object(client, "_get_client", return_value=http),
            patch("compagnon.supabase.client.asyncio.sleep", new=AsyncMock()) as sleep,
        ):
            with pytest.raises(SupabaseError):
                await client.get_circle_id("user-1")

        assert [c.args[0] for c in sleep.await_args_list] == [1, 2, 4]


class TestRetryAfter:
    def test_seconds(self):
        assert retry_after_seconds("3") == 3

    def test_missing_uses_default(self):
        assert retry_after_seconds(None, default=2) == 2
        assert retry_after_seconds("", default=2) == 2

    def test_unreadable_uses_default(self):
        assert retry_after_seconds("soon", default=4) == 4

    def test_negative_seconds_clamped(self):
        assert retry_after_seconds("-5") == 0

    def test_past_http_date(self):
        assert retry_after_seconds("Wed, 21 Oct 2015 07:28:00 GMT") == 0

    def test_future_http_date(self):
        when = datetime.now(UTC) + timedelta(seconds=120)
        wait = retry_after_seconds(format_datetime(when, usegmt=True))
        assert 100 < wait <= 120
