"""Database management for the NEARR backend."""

from .connection import Database, get_connection
from .init import init_database, validate_connection
from .memberships import MembershipStore
from .profiles import ProfileStore
from .registry import ClusterRegistry

__all__ = [
    "ClusterRegistry",
    "Database",
    "MembershipStore",
    "ProfileStore",
    "get_connection",
    "init_database",
    "validate_connection",
]
