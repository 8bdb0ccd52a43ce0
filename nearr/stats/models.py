"""Statistics models."""

from typing import Dict

from pydantic import BaseModel, Field


class ClusterStats(BaseModel):
    """Display statistics over a cohort's member profiles.

    Every mix maps a label to a whole-number percentage; buckets are rounded
    independently, so a mix does not necessarily sum to 100.
    """

    total_members: int = Field(0, ge=0)
    avg_age: int = Field(0, description="Mean over members with a known age")
    min_age: int = Field(0)
    max_age: int = Field(0)
    geographic_mix: Dict[str, int] = Field(default_factory=dict, description="Viewer's country vs Abroad")
    gender_mix: Dict[str, int] = Field(default_factory=dict)
    profession_mix: Dict[str, int] = Field(default_factory=dict, description="Share among members showing a profession")
    looking_for_mix: Dict[str, int] = Field(default_factory=dict)
    available_for_mix: Dict[str, int] = Field(default_factory=dict)
