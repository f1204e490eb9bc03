"""Timezone handling for reminders.

- "now" is captured once per request in the user's configured timezone
- Due times are stored as ISO 8601 UTC strings and read back in local time
"""

import logging
from datetime import UTC, datetime, time, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from compagnon.config import settings

logger = logging.getLogger(__name__)


class TimezoneService:
    """Local clock for the senior's reminders.

    Features:
    - User-configured default timezone from settings
    - Conversion between local wall-clock times and stored UTC timestamps
    """

    def __init__(self, default_timezone: str | None = None):
        """Initialize timezone service.

        Args:
            default_timezone: IANA timezone name. Defaults to settings.user_timezone.
        """
        self._default_tz_name = default_timezone or settings.user_timezone
        try:
            self._default_tz = ZoneInfo(self._default_tz_name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Unknown timezone '{self._default_tz_name}', falling back to UTC")
            self._default_tz_name = "UTC"
            self._default_tz = ZoneInfo("UTC")

    @property
    def default_timezone(self) -> str:
        """Get the default timezone name."""
        return self._default_tz_name

    def now(self) -> datetime:
        """Get current time in user's timezone."""
        return datetime.now(self._default_tz)

    def day_bounds(self, dt: datetime | None = None) -> tuple[datetime, datetime]:
        """Local midnight of the day containing dt and the next local midnight."""
        local = self.localize(dt) if dt is not None else self.now()
        start = datetime.combine(local.date(), time.min, tzinfo=self._default_tz)
        end = datetime.combine(local.date() + timedelta(days=1), time.min, tzinfo=self._default_tz)
        return start, end

    def localize(self, dt: datetime) -> datetime:
        """Attach the user's timezone to a naive datetime or convert an aware one.

        Naive datetimes are assumed to already be wall-clock time in the
        user's timezone.
        """
        if dt.tzinfo is None:
            return dt.replace(tzinfo=self._default_tz)
        return dt.astimezone(self._default_tz)

    def to_iso8601_utc(self, dt: datetime) -> str:
        """Format as ISO 8601 string in UTC.

        Example: 2024-01-02T09:00:00Z
        """
        return self.localize(dt).astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")

    def from_iso8601(self, value: str) -> datetime:
        """Parse a stored ISO 8601 timestamp into the user's timezone."""
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=UTC)
        return dt.astimezone(self._default_tz)


# Module-level singleton
_timezone_service: TimezoneService | None = None


def get_timezone_service(default_timezone: str | None = None) -> TimezoneService:
    """Get the singleton TimezoneService instance.

    Args:
        default_timezone: Optional timezone to use. Only used on first call.
    """
    global _timezone_service
    if _timezone_service is None:
        _timezone_service = TimezoneService(default_timezone)
    return _timezone_service


def reset_timezone_service() -> None:
    """Reset the singleton (useful for testing)."""
    global _timezone_service
    _timezone_service = None


def now() -> datetime:
    """Get current time in user's timezone."""
    return get_timezone_service().now()


def localize(dt: datetime) -> datetime:
    """Localize a datetime to the user's timezone."""
    return get_timezone_service().localize(dt)
