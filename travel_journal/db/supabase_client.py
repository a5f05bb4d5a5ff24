"""Supabase client initialization."""

from functools import lru_cache

from supabase import Client, create_client

from travel_journal.core.config import get_settings
from travel_journal.core.errors import StoreUnavailable


@lru_cache(maxsize=1)
def get_supabase() -> Client:
    """
    Get Supabase client instance (cached singleton).

    Returns:
        Supabase client configured with the anon key

    Raises:
        StoreUnavailable: If credentials are missing or client initialization fails
    """
    settings = get_settings()
    if not settings.supabase_configured:
        raise StoreUnavailable(
            StoreUnavailable.UNCONFIGURED,
            "set SUPABASE_URL and SUPABASE_ANON_KEY",
        )

    try:
        return create_client(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY)
    except Exception as e:
        raise StoreUnavailable(StoreUnavailable.UNREACHABLE, str(e)) from e
