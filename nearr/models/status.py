"""Derived cohort status returned to clients."""

from typing import Optional

from pydantic import BaseModel, Field

from .cluster import Cohort, CohortState


class CohortStatus(BaseModel):
    """Registry view of a cluster's active cohort for one user."""

    cluster_id: int
    cluster_name: str
    cohort_id: str
    state: CohortState
    is_full: bool
    current_members: int
    max_members: int
    spots_left: int
    user_is_member: bool = False
    user_has_downloaded: bool = False
    vcf_uploaded: bool = False
    vcf_file_name: Optional[str] = None
    vcf_download_count: int = Field(0, ge=0)

    @classmethod
    def from_cohort(
        cls,
        cohort: Cohort,
        cluster_name: str,
        user_is_member: bool = False,
        user_has_downloaded: bool = False,
    ) -> "CohortStatus":
        """Build the status view from the active cohort row."""
        return cls(
            cluster_id=cohort.cluster_id,
            cluster_name=cluster_name,
            cohort_id=cohort.cohort_id,
            state=cohort.state,
            is_full=cohort.is_full,
            current_members=cohort.current_members,
            max_members=cohort.max_members,
            spots_left=cohort.spots_left,
            user_is_member=user_is_member,
            user_has_downloaded=user_has_downloaded,
            vcf_uploaded=cohort.exchange_ready,
            vcf_file_name=cohort.vcf_file_name if cohort.exchange_ready else None,
            vcf_download_count=cohort.vcf_download_count,
        )

    @property
    def exchange_ready(self) -> bool:
        return self.vcf_uploaded
