"""Cluster and cohort models."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from .base import DBModel


class CohortState(str, Enum):
    """Lifecycle of one cohort fill cycle."""

    OPEN = "open"
    FULL_PENDING_EXCHANGE = "full_pending_exchange"
    EXCHANGE_READY = "exchange_ready"
    RESET = "reset"


class Cluster(DBModel):
    """Long-lived topic bucket that repeatedly fills cohorts."""

    id: int = Field(..., description="Primary key")
    name: str = Field(..., description="Display name")
    category: str = Field("general", description="Cluster category")
    description: Optional[str] = Field(None, description="Free-form description")
    max_members: int = Field(..., description="Members per cohort", ge=1)


class Cohort(DBModel):
    """One generation of a cluster filling up; reopened by a leave while pending."""

    cohort_id: str = Field(..., description="Unique id minted when the cohort opens")
    cluster_id: int = Field(..., description="Foreign key to clusters table")
    state: CohortState = Field(CohortState.OPEN, description="Lifecycle state")
    current_members: int = Field(0, ge=0)
    max_members: int = Field(..., ge=1, description="Capacity snapshotted at open")
    vcf_file_name: Optional[str] = Field(None, description="Exchange artifact object name")
    vcf_generated_at: Optional[datetime] = Field(None)
    vcf_download_count: int = Field(0, ge=0)
    opened_at: Optional[datetime] = Field(None)
    full_at: Optional[datetime] = Field(None)
    fill_cycle: int = Field(0, ge=0, description="Times the cohort reached capacity")
    reset_at: Optional[datetime] = Field(None)

    @property
    def is_full(self) -> bool:
        """A full or published cohort accepts no joins until reset."""
        return self.state is not CohortState.OPEN or self.current_members >= self.max_members

    @property
    def exchange_ready(self) -> bool:
        return self.state is CohortState.EXCHANGE_READY

    @property
    def spots_left(self) -> int:
        return max(0, self.max_members - self.current_members)

    @property
    def artifact(self) -> Optional["ExchangeArtifact"]:
        """Published contact file, if any."""
        if not self.exchange_ready or not self.vcf_file_name:
            return None
        return ExchangeArtifact(
            cluster_id=self.cluster_id,
            cohort_id=self.cohort_id,
            file_name=self.vcf_file_name,
            generated_at=self.vcf_generated_at,
            download_count=self.vcf_download_count,
        )


class ExchangeArtifact(DBModel):
    """Generated contact-card document of a completed cohort."""

    cluster_id: int
    cohort_id: str
    file_name: str
    generated_at: Optional[datetime] = None
    download_count: int = 0
