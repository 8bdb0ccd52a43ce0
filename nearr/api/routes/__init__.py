"""API routers."""

from . import accounts, admin, cohorts

__all__ = ["accounts", "admin", "cohorts"]
