"""Cohort statistics aggregation."""

import math
from collections import Counter
from typing import Dict, Iterable, List, Optional, Sequence, Union

from ..models import CohortMember
from .models import ClusterStats

ABROAD_KEY = "Abroad"
LOCAL_KEY = "Local"
UNKNOWN_COUNTRY = "Unknown"
NOT_SPECIFIED = "Not Specified"


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (not banker's rounding)."""
    return int(math.floor(value + 0.5))


def percentage_mix(counts: Dict[str, int], total: Optional[int] = None) -> Dict[str, int]:
    """Map each label to round(count / total * 100)."""
    if total is None:
        total = sum(counts.values())
    if total <= 0:
        return {}
    return {label: round_half_up(count / total * 100) for label, count in counts.items()}


def _clean_entries(values: Union[Sequence[str], str, None]) -> List[str]:
    if not values:
        return []
    if isinstance(values, str):
        values = values.split(",")
    return [entry.strip() for entry in values if entry and entry.strip()]


def _known_age(age) -> Optional[float]:
    if isinstance(age, bool) or not isinstance(age, (int, float)):
        return None
    return age


def geographic_mix(members: Sequence[CohortMember], viewer_country: Optional[str]) -> Dict[str, int]:
    """Share of members from the viewer's country versus abroad.

    Members without a country (or "Unknown") are excluded from the denominator.
    """
    viewer = (viewer_country or "").strip()
    viewer_key = viewer.lower()
    local = 0
    abroad = 0
    for member in members:
        country = (member.country or "").strip()
        if not country or country == UNKNOWN_COUNTRY:
            continue
        if viewer_key and country.lower() == viewer_key:
            local += 1
        else:
            abroad += 1

    known = local + abroad
    mix: Dict[str, int] = {}
    if known == 0:
        return mix
    if local > 0:
        mix[viewer or LOCAL_KEY] = round_half_up(local / known * 100)
        mix[ABROAD_KEY] = round_half_up(abroad / known * 100)
    elif abroad > 0:
        mix[ABROAD_KEY] = round_half_up(abroad / known * 100)
    return mix


def calculate_cluster_stats(
    members: Iterable[CohortMember],
    viewer_country: Optional[str] = None,
) -> ClusterStats:
    """
    Compute display statistics for a cohort.

    Args:
        members: Member profiles of the cohort
        viewer_country: Country of the requesting user, for the local/abroad split

    Returns:
        ClusterStats with all mixes as whole-number percentages
    """
    members = list(members)
    if not members:
        return ClusterStats()

    ages = [age for age in (_known_age(m.age) for m in members) if age is not None]

    genders = Counter((m.gender or "").strip() or NOT_SPECIFIED for m in members)
    professions = Counter(
        (m.profession or "").strip() or NOT_SPECIFIED
        for m in members
        if m.display_profession
    )
    looking_for = Counter(entry for m in members for entry in _clean_entries(m.friend_reasons))
    available_for = Counter(entry for m in members for entry in _clean_entries(m.services))

    return ClusterStats(
        total_members=len(members),
        avg_age=round_half_up(sum(ages) / len(ages)) if ages else 0,
        min_age=int(min(ages)) if ages else 0,
        max_age=int(max(ages)) if ages else 0,
        geographic_mix=geographic_mix(members, viewer_country),
        gender_mix=percentage_mix(dict(genders), total=len(members)),
        profession_mix=percentage_mix(dict(professions)),
        looking_for_mix=percentage_mix(dict(looking_for)),
        available_for_mix=percentage_mix(dict(available_for)),
    )
