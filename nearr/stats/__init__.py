"""Cohort statistics."""

from .aggregator import calculate_cluster_stats, geographic_mix, percentage_mix, round_half_up
from .models import ClusterStats

__all__ = [
    "ClusterStats",
    "calculate_cluster_stats",
    "geographic_mix",
    "percentage_mix",
    "round_half_up",
]
