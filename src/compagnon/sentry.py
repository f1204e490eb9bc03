"""Sentry error tracking integration for Compagnon.

Usage:
    # Early in application startup
    from compagnon.sentry import init_sentry
    init_sentry()

    # When handling a user's voice request, add user context
    from compagnon.sentry import set_user_context
    set_user_context(user_id=user.id)

    # Capture exceptions manually
    from compagnon.sentry import capture_exception
    try:
        risky_operation()
    except Exception as e:
        capture_exception(e)
        raise
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Any, cast

import sentry_sdk
from sentry_sdk.integrations.logging import LoggingIntegration

if TYPE_CHECKING:
    from sentry_sdk._types import Event, Hint

logger = logging.getLogger(__name__)

# Module state
_initialized = False

SENSITIVE_KEYS = {
    "token",
    "access_token",
    "api_key",
    "apikey",
    "secret",
    "password",
    "authorization",
    "bearer",
    "supabase_anon_key",
    "sentry_dsn",
}


def init_sentry(
    dsn: str | None = None,
    environment: str = "production",
    release: str | None = None,
    traces_sample_rate: float = 0.1,
    debug: bool = False,
) -> bool:
    """Initialize Sentry SDK for error tracking.

    Args:
        dsn: Sentry DSN. If None, reads from SENTRY_DSN env var.
             Empty/None DSN disables Sentry (safe for development).
        environment: Environment name (production, staging, development).
        release: Release version. If None, auto-detected from package version.
        traces_sample_rate: Sample rate for performance tracing (0.0-1.0).
        debug: Enable Sentry debug mode for troubleshooting.

    Returns:
        True if Sentry was initialized, False if skipped.
    """
    global _initialized

    if _initialized:
        logger.debug("Sentry already initialized")
        return True

    if dsn is None:
        dsn = os.environ.get("SENTRY_DSN", "")

    # Empty DSN disables Sentry (expected in development)
    if not dsn:
        logger.info("No SENTRY_DSN configured, error tracking disabled")
        return False

    if release is None:
        from importlib.metadata import PackageNotFoundError, version

        try:
            release = f"compagnon@{version('compagnon')}"
        except PackageNotFoundError:
            release = "compagnon@unknown"

    logging_integration = LoggingIntegration(
        level=logging.INFO,  # Breadcrumbs
        event_level=logging.ERROR,  # Events
    )

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        release=release,
        traces_sample_rate=traces_sample_rate,
        debug=debug,
        integrations=[logging_integration],
        # Transcripts are personal data
        send_default_pii=False,
        attach_stacktrace=True,
        before_send=_before_send,
    )

    _initialized = True
    logger.info(f"Sentry initialized: environment={environment}, release={release}")
    return True


def _before_send(event: Event, hint: Hint) -> Event | None:
    """Drop expected network noise and scrub credentials before sending."""
    if "exc_info" in hint:
        exc_type, _, _ = hint["exc_info"]

        # Store calls are retried before they surface
        if exc_type.__name__ in ("TimeoutError", "ConnectionError"):
            return None

    if "request" in event:
        _scrub_dict(cast(dict[str, Any], event["request"]))

    if "breadcrumbs" in event:
        breadcrumbs = cast(dict[str, Any], event["breadcrumbs"])
        for breadcrumb in breadcrumbs.get("values", []):
            if "data" in breadcrumb:
                _scrub_dict(breadcrumb["data"])

    return event


def _scrub_dict(data: dict[str, Any]) -> None:
    """Scrub sensitive keys from a dictionary in-place."""
    for key in list(data.keys()):
        if key.lower() in SENSITIVE_KEYS:
            data[key] = "[REDACTED]"
        elif isinstance(data[key], dict):
            _scrub_dict(data[key])


def set_user_context(user_id: str | None = None, circle_id: str | None = None) -> None:
    """Attach the current user (and their circle) to subsequent events."""
    if not _initialized:
        return

    user_data: dict[str, Any] = {}
    if user_id is not None:
        user_data["id"] = str(user_id)
    if circle_id is not None:
        user_data["circle_id"] = str(circle_id)

    if user_data:
        sentry_sdk.set_user(user_data)


def capture_exception(exception: BaseException | None = None) -> str | None:
    """Capture an exception and send to Sentry.

    Returns:
        Event ID if captured, None otherwise.
    """
    if not _initialized:
        return None

    return sentry_sdk.capture_exception(exception)


def flush(timeout: float = 2.0) -> None:
    """Flush pending Sentry events before shutdown."""
    if not _initialized:
        return

    sentry_sdk.flush(timeout=timeout)


def is_enabled() -> bool:
    """Check if Sentry is enabled and initialized."""
    return _initialized
