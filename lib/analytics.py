# =============================================================================
# lib/analytics.py - Server-Side Analytics
# =============================================================================
# Sends product events to PostHog's /capture/ endpoint.
#
# Tracking is best effort: when POSTHOG_KEY is unset nothing is sent, and
# any network or HTTP error is logged and swallowed so analytics can never
# change an API response. Routes schedule it as a FastAPI background task.
#
# Usage:
#   from lib.analytics import AnalyticsEvent, track_server_event
#   background_tasks.add_task(
#       track_server_event, AnalyticsEvent.PROJECT_CONNECTED, {"repo_name": name}, user_id
#   )
# =============================================================================

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

import httpx

from app.config import settings
from lib.utils import utc_now

logger = logging.getLogger(__name__)

LIB_NAME = "server"
LIB_VERSION = "1.0.0"


class AnalyticsEvent(str, Enum):
    """Event names sent to PostHog."""

    # Projects
    PROJECT_CONNECTED = "project_connected"
    PROJECT_DELETED = "project_deleted"

    # Snapshots
    SNAPSHOT_GENERATED = "snapshot_generated"
    SNAPSHOT_VIEWED = "snapshot_viewed"
    SNAPSHOT_DELETED = "snapshot_deleted"

    # Tasks
    TASK_GENERATED = "task_generated"
    TASK_VIEWED = "task_viewed"
    TASK_DELETED = "task_deleted"

    # Drift Detection
    DRIFT_DETECTED = "drift_detected"

    # Billing
    CHECKOUT_STARTED = "checkout_started"
    SUBSCRIPTION_UPGRADED = "subscription_upgraded"
    SUBSCRIPTION_CANCELLED = "subscription_cancelled"


def build_capture_payload(
    event: str,
    properties: dict[str, Any] | None = None,
    user_id: str | None = None,
) -> dict[str, Any]:
    """
    Build the JSON body for PostHog's capture API.

    Args:
        event: Event name
        properties: Extra event properties
        user_id: Authenticated user, or None for anonymous events

    Returns:
        Capture payload dict
    """
    return {
        "api_key": settings.POSTHOG_KEY,
        "event": event,
        "properties": {
            **(properties or {}),
            "$lib": LIB_NAME,
            "$lib_version": LIB_VERSION,
        },
        "distinct_id": user_id or "anonymous",
        "timestamp": utc_now().isoformat(),
    }


def track_server_event(
    event: AnalyticsEvent | str,
    properties: dict[str, Any] | None = None,
    user_id: str | None = None,
    client: httpx.Client | None = None,
) -> None:
    """
    Send one event to PostHog, ignoring failures.

    Args:
        event: Event name
        properties: Extra event properties
        user_id: Authenticated user ID (distinct_id)
        client: Optional httpx client (tests pass one with a mock transport)
    """
    if not settings.POSTHOG_KEY:
        return

    event_name = event.value if isinstance(event, AnalyticsEvent) else event
    payload = build_capture_payload(event_name, properties, user_id)
    url = f"{settings.POSTHOG_HOST.rstrip('/')}/capture/"

    try:
        if client is not None:
            response = client.post(url, json=payload)
        else:
            with httpx.Client(timeout=settings.HTTP_TIMEOUT_SECONDS) as http:
                response = http.post(url, json=payload)
        response.raise_for_status()
        logger.debug(f"Tracked event {event_name} for {payload['distinct_id']}")
    except (httpx.HTTPError, TypeError, ValueError) as e:
        logger.warning(f"Failed to track server event {event_name}: {e}")
