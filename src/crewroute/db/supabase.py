"""Supabase client used by the routing repository."""

import logging
from functools import lru_cache

from supabase import Client, ClientOptions, create_client

from ..config import settings

logger = logging.getLogger(__name__)


@lru_cache()
def get_supabase_client() -> Client | None:
    """Return the shared Supabase client, or ``None`` when it cannot be built.

    Missing credentials are not an error here: the API reports them as a
    503 when a route optimization is requested. Building the client does
    not open a connection, so query failures surface later as
    ``RepositoryError``.
    """
    if not settings.supabase_url or not settings.supabase_key:
        logger.warning("Supabase credentials not configured (CREWROUTE_SUPABASE_URL / CREWROUTE_SUPABASE_KEY)")
        return None

    options = ClientOptions(postgrest_client_timeout=settings.http_timeout_seconds)
    try:
        return create_client(settings.supabase_url, settings.supabase_key, options=options)
    except Exception as e:
        logger.error(f"Failed to create Supabase client for {settings.supabase_url}: {e}")
        return None
