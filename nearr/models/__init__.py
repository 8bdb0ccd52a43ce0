"""Data models for the NEARR backend."""

from .cluster import Cluster, Cohort, CohortState, ExchangeArtifact
from .membership import CohortContact, CohortMember, Membership
from .profile import UserProfile, WaitlistSignup
from .status import CohortStatus

__all__ = [
    "Cluster",
    "Cohort",
    "CohortContact",
    "CohortMember",
    "CohortState",
    "CohortStatus",
    "ExchangeArtifact",
    "Membership",
    "UserProfile",
    "WaitlistSignup",
]
