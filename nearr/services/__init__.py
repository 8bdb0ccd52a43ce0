"""Application services."""

from .accounts import AccountService
from .cohorts import ClusterStatsResult, CohortService, DownloadResult
from .context import AppContext, build_context

__all__ = [
    "AccountService",
    "AppContext",
    "ClusterStatsResult",
    "CohortService",
    "DownloadResult",
    "build_context",
]
