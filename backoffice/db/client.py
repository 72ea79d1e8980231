"""
Supabase client factory.

Document search runs against the Supabase project configured in the
user's UserConfig (falling back to the server-wide SUPABASE_URL /
SUPABASE_ANON_KEY). The most recently used clients are cached per (url, key)
pair so repeated searches reuse the same connection pool.

SECURITY RULES:
1. Only the anon key is ever used; access is governed by the project's RLS
2. NEVER log the anon key
"""

import functools
import logging
from typing import Optional
from urllib.parse import urlparse

from supabase import Client, create_client

from backoffice.config import settings

logger = logging.getLogger(__name__)

CLIENT_CACHE_SIZE = 32


class SupabaseConfigError(ValueError):
    """Raised when the Supabase URL or key is missing or malformed."""


def is_valid_supabase_url(url: Optional[str]) -> bool:
    """
    Check that a URL looks like a Supabase project URL.

    Accepts https URLs whose host is a supabase.co domain or localhost.
    """
    if not url or not url.strip():
        return False
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    host = parsed.hostname or ""
    return parsed.scheme == "https" and ("supabase.co" in host or "localhost" in host)


@functools.lru_cache(maxsize=CLIENT_CACHE_SIZE)
def _create_client(url: str, anon_key: str) -> Client:
    client = create_client(supabase_url=url, supabase_key=anon_key)
    logger.debug(f"Created Supabase client for {urlparse(url).hostname}")
    return client


def get_supabase_client(url: Optional[str] = None, anon_key: Optional[str] = None) -> Client:
    """
    Return a cached Supabase client for the given project.

    Args:
        url: Supabase project URL (defaults to settings.SUPABASE_URL)
        anon_key: Supabase anon key (defaults to settings.SUPABASE_ANON_KEY)

    Returns:
        A Supabase client bound to the project.

    Raises:
        SupabaseConfigError: If the URL is not a valid https Supabase URL or
            the key is empty.
    """
    url = url or settings.SUPABASE_URL
    anon_key = anon_key or settings.SUPABASE_ANON_KEY

    if not is_valid_supabase_url(url):
        logger.error(f"Invalid Supabase URL: {url!r}")
        raise SupabaseConfigError(
            f"Invalid Supabase URL: {url!r}. The URL must use https:// and point to a Supabase project."
        )

    if not anon_key or not anon_key.strip():
        logger.error("Supabase anon key is empty")
        raise SupabaseConfigError("Supabase anon key must not be empty.")

    return _create_client(url, anon_key)


def clear_client_cache() -> None:
    """Drop cached clients (used after a user changes their Supabase settings)."""
    _create_client.cache_clear()
