"""Supabase client construction."""

from typing import Any, Dict

from supabase import Client, create_client

from ..errors import UpstreamError


def create_supabase_client(config: Dict[str, Any]) -> Client:
    """Create a service-role client for storage and auth admin calls."""
    url = config.get("url")
    key = config.get("service_role_key")
    if not url or not key:
        raise UpstreamError("Supabase URL or service role key is not configured")
    return create_client(url, key)
