"""Database connection and client."""
from functools import lru_cache

from supabase import Client, create_client

from clientpulse.config import get_settings


@lru_cache()
def get_supabase_client() -> Client:
    """Get Supabase client instance (service role, server-side only)."""
    settings = get_settings()
    return create_client(
        supabase_url=settings.supabase_url,
        supabase_key=settings.supabase_service_role_key
    )
