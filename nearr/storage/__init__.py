"""Hosted object storage and auth adapters."""

from .auth import AuthProvider
from .client import create_supabase_client
from .objects import VCARD_CONTENT_TYPE, ObjectStore

__all__ = ["AuthProvider", "ObjectStore", "VCARD_CONTENT_TYPE", "create_supabase_client"]
