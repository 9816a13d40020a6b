"""
Supabase Client
===============
Configured Supabase client shared by the routers and the analysis
service.

Uses the service_role key because the backend writes analysis results
onto mood entries it does not own. Ownership for the manual retry is
checked explicitly in the router; RLS still protects direct client
access from the mobile app.
"""

from functools import lru_cache

from supabase import Client, create_client

from app.config import get_settings

MOOD_ENTRIES_TABLE = "mood_entries"


@lru_cache
def get_supabase_client() -> Client:
    settings = get_settings()
    return create_client(settings.supabase_url, settings.supabase_service_key)
