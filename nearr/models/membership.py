"""Cohort membership models."""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from .base import DBModel


class Membership(DBModel):
    """A user's participation record in a cluster cohort."""

    id: Optional[int] = Field(None, description="Primary key")
    cluster_id: int = Field(..., description="Foreign key to clusters table")
    cohort_id: str = Field(..., description="Foreign key to cohorts table")
    user_id: str = Field(..., description="Auth user id")
    display_profession: bool = Field(False, description="Show profession to the cohort")
    joined_at: Optional[datetime] = Field(None)
    vcf_downloaded_at: Optional[datetime] = Field(None)

    @property
    def has_downloaded(self) -> bool:
        return self.vcf_downloaded_at is not None


class CohortMember(DBModel):
    """Membership row merged with the profile subset shown to the cohort."""

    user_id: str
    nickname: str = ""
    age: Optional[int] = None
    gender: str = ""
    country: str = ""
    profession: str = ""
    display_profession: bool = False
    friend_reasons: List[str] = Field(default_factory=list)
    services: List[str] = Field(default_factory=list)
    joined_at: Optional[datetime] = None


class CohortContact(CohortMember):
    """Full member record including contact details (exchange and admin only)."""

    email: Optional[str] = None
    whatsapp_number: Optional[str] = None
    vcf_downloaded_at: Optional[datetime] = None
