# =============================================================================
# lib/ - Standalone Utility Modules
# =============================================================================
# This package contains reusable utilities:
# - supabase_client.py: Typed Supabase wrapper for database operations
# - analytics.py: Best-effort PostHog event capture
# - utils.py: Shared utilities (UUID normalization, time helpers)
#
# These modules are self-contained and can be tested in isolation.
# =============================================================================

from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.analytics import AnalyticsEvent, track_server_event
from lib.utils import normalize_uuid, start_of_month, utc_now

__all__ = [
    # Supabase
    "SupabaseClient",
    "SupabaseClientError",
    # Analytics
    "AnalyticsEvent",
    "track_server_event",
    # Utils
    "normalize_uuid",
    "start_of_month",
    "utc_now",
]
