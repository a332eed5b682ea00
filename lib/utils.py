# =============================================================================
# lib/utils.py - Shared Utilities
# =============================================================================
# Common utilities used across the application.
# =============================================================================

from datetime import datetime, timezone
from uuid import UUID


# =============================================================================
# UUID Utilities
# =============================================================================

def normalize_uuid(value: str | UUID) -> str:
    """
    Normalize a UUID to string format.

    Handles both string and UUID objects, ensuring consistent string output.

    Args:
        value: UUID as string or UUID object

    Returns:
        String representation of the UUID

    Example:
        project_id = normalize_uuid(uuid_obj)  # "550e8400-..."
        project_id = normalize_uuid("550e8400-...")  # "550e8400-..."
    """
    return str(value) if isinstance(value, UUID) else value


# =============================================================================
# Time Utilities
# =============================================================================

def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def start_of_month(now: datetime | None = None) -> datetime:
    """
    First instant of the current UTC month.

    Monthly plan limits count rows created at or after this moment.

    Example:
        start_of_month(datetime(2024, 3, 17, 9, 30, tzinfo=timezone.utc))
        # -> 2024-03-01 00:00:00+00:00
    """
    now = now or utc_now()
    return now.astimezone(timezone.utc).replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def from_unix_timestamp(value: int | float | None) -> str | None:
    """Convert a Stripe unix timestamp to an ISO-8601 UTC string."""
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc).isoformat()
