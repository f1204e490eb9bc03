"""Client for the hosted reminder store.

Reminders, messages and circle memberships live in a hosted Postgres
exposed through its PostgREST interface. Row-level security is enforced
server side; this client only sends the anon key and the caller's access token.
"""

import asyncio
import logging
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Any

import httpx

from compagnon.config import settings
from compagnon.supabase.schemas import (
    CircleMember,
    Message,
    MessageCreate,
    Reminder,
    ReminderCreate,
    ReminderStatus,
)

logger = logging.getLogger(__name__)

REST_PATH = "/rest/v1"

# Default timeout for API requests
DEFAULT_TIMEOUT = 30.0


class SupabaseError(Exception):
    """Raised when the store rejects a request or stays unreachable."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def retry_after_seconds(value: str | None, default: float = 1) -> float:
    """Seconds to wait from a Retry-After header.

    The header is either a number of seconds or an HTTP date. Dates in the
    past give 0; unreadable values give ``default``.
    """
    if not value:
        return default
    try:
        return max(0, int(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        logger.warning(f"Unreadable Retry-After header: {value!r}")
        return default
    if when.tzinfo is None:
        when = when.replace(tzinfo=UTC)
    return max(0.0, (when - datetime.now(UTC)).total_seconds())


class SupabaseClient:
    def __init__(
        self,
        url: str | None = None,
        api_key: str | None = None,
        access_token: str | None = None,
    ):
        self.url = (url or settings.supabase_url).rstrip("/")
        self.api_key = api_key or settings.supabase_anon_key
        self.access_token = access_token or self.api_key
        self._client: httpx.AsyncClient | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.api_key)

    @property
    def headers(self) -> dict[str, str]:
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
            "Prefer": "return=representation",
        }

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=f"{self.url}{REST_PATH}",
                headers=self.headers,
                timeout=DEFAULT_TIMEOUT,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, str] | None = None,
        json_data: dict[str, Any] | None = None,
        retries: int = 3,
    ) -> list[dict[str, Any]]:
        client = await self._get_client()
        last_error: Exception | None = None

        for attempt in range(retries):
            try:
                response = await client.request(method, path, params=params, json=json_data)

                if response.status_code == 429:
                    retry_after = retry_after_seconds(
                        response.headers.get("Retry-After"), default=2**attempt
                    )
                    logger.warning(f"Rate limited on {path}, retrying in {retry_after}s")
                    await asyncio.sleep(retry_after)
                    continue

                response.raise_for_status()
                return response.json()

            except httpx.HTTPStatusError as e:
                last_error = e
                if e.response.status_code >= 500:
                    await asyncio.sleep(2**attempt)
                    continue
                raise SupabaseError(
                    f"{method} {path} failed: {e.response.text}",
                    status_code=e.response.status_code,
                ) from e

            except httpx.RequestError as e:
                last_error = e
                await asyncio.sleep(2**attempt)
                continue

        if last_error:
            raise SupabaseError(f"{method} {path} failed after {retries} attempts") from last_error

        raise SupabaseError(f"{method} {path} kept being rate limited")

    async def get_circle_id(self, user_id: str) -> str | None:
        rows = await self._request(
            "GET",
            "/circle_members",
            params={"select": "circle_id,user_id,role", "user_id": f"eq.{user_id}", "limit": "1"},
        )
        if not rows:
            return None
        return CircleMember.model_validate(rows[0]).circle_id

    async def create_reminder(self, reminder: ReminderCreate) -> Reminder:
        rows = await self._request("POST", "/reminders", json_data=reminder.model_dump(mode="json"))
        return Reminder.model_validate(rows[0])

    async def list_reminders(self, circle_id: str) -> list[Reminder]:
        rows = await self._request(
            "GET",
            "/reminders",
            params={"select": "*", "circle_id": f"eq.{circle_id}", "order": "due_at.asc"},
        )
        return [Reminder.model_validate(row) for row in rows]

    async def list_reminders_between(
        self, circle_id: str, start: str, end: str
    ) -> list[Reminder]:
        """Reminders not yet done with start <= due_at < end, by due time.

        Args:
            circle_id: Circle whose reminders to read
            start: ISO 8601 UTC lower bound, inclusive
            end: ISO 8601 UTC upper bound, exclusive
        """
        rows = await self._request(
            "GET",
            "/reminders",
            params={
                "select": "*",
                "circle_id": f"eq.{circle_id}",
                "status": f"neq.{ReminderStatus.DONE.value}",
                "and": f"(due_at.gte.{start},due_at.lt.{end})",
                "order": "due_at.asc",
            },
        )
        return [Reminder.model_validate(row) for row in rows]

    async def update_reminder(self, reminder_id: str, **fields: Any) -> Reminder:
        rows = await self._request(
            "PATCH",
            "/reminders",
            params={"id": f"eq.{reminder_id}"},
            json_data=fields,
        )
        if not rows:
            raise SupabaseError(f"Reminder {reminder_id} not found", status_code=404)
        return Reminder.model_validate(rows[0])

    async def send_message(self, message: MessageCreate) -> Message:
        rows = await self._request("POST", "/messages", json_data=message.model_dump(mode="json"))
        return Message.model_validate(rows[0])

    async def list_messages(self, circle_id: str) -> list[Message]:
        """Circle messages, oldest first."""
        rows = await self._request(
            "GET",
            "/messages",
            params={
                "select": "id,content,audio_url,sender_id,circle_id,created_at",
                "circle_id": f"eq.{circle_id}",
                "order": "created_at.asc",
            },
        )
        return [Message.model_validate(row) for row in rows]


_client: SupabaseClient | None = None


def get_supabase_client() -> SupabaseClient:
    """Get or create the shared store client from settings."""
    global _client
    if _client is None:
        _client = SupabaseClient()
    return _client
