"""Tests for cohort statistics."""

from nearr.models import CohortMember
from nearr.stats import calculate_cluster_stats, percentage_mix, round_half_up


def member(**fields) -> CohortMember:
    fields.setdefault("user_id", fields.get("nickname", "u"))
    return CohortMember(**fields)


def test_age_stats():
    stats = calculate_cluster_stats([member(age=20), member(age=30), member(age=40)])
    assert (stats.avg_age, stats.min_age, stats.max_age) == (30, 20, 40)


def test_empty_cohort():
    stats = calculate_cluster_stats([])
    assert (stats.avg_age, stats.min_age, stats.max_age) == (0, 0, 0)
    assert stats.geographic_mix == {}
    assert stats.gender_mix == {}
    assert stats.profession_mix == {}
    assert stats.looking_for_mix == {}
    assert stats.available_for_mix == {}


def test_missing_ages_are_excluded_not_zero():
    stats = calculate_cluster_stats([member(age=None), member(age=25), member(age=35)])
    assert stats.avg_age == 30
    assert stats.min_age == 25
    assert stats.total_members == 3


def test_profession_mix_counts_only_opted_in_members():
    stats = calculate_cluster_stats(
        [
            member(profession="Dev", display_profession=True),
            member(profession="Dev", display_profession=True),
            member(profession="Chef", display_profession=False),
        ]
    )
    assert stats.profession_mix == {"Dev": 100}


def test_gender_mix_defaults_and_denominator():
    stats = calculate_cluster_stats([member(gender="Female"), member(gender=""), member(gender="Male")])
    assert stats.gender_mix == {"Female": 33, "Not Specified": 33, "Male": 33}


def test_geographic_mix_local_and_abroad():
    members = [
        member(country="India"),
        member(country="India"),
        member(country="Canada"),
        member(country="Unknown"),
        member(country=""),
    ]
    stats = calculate_cluster_stats(members, viewer_country="India")
    assert stats.geographic_mix == {"India": 67, "Abroad": 33}


def test_geographic_mix_keeps_abroad_key_at_zero():
    stats = calculate_cluster_stats([member(country="India")], viewer_country="India")
    assert stats.geographic_mix == {"India": 100, "Abroad": 0}


def test_geographic_mix_without_known_countries():
    stats = calculate_cluster_stats([member(country="Unknown")], viewer_country="Spain")
    assert stats.geographic_mix == {}


def test_looking_for_and_available_for_flatten_entries():
    stats = calculate_cluster_stats(
        [
            member(friend_reasons=[" Hiking ", "Coffee"], services=["Tutoring", ""]),
            member(friend_reasons=["Hiking", "  "], services=["Tutoring"]),
        ]
    )
    assert stats.looking_for_mix == {"Hiking": 67, "Coffee": 33}
    assert stats.available_for_mix == {"Tutoring": 100}


def test_independent_half_up_rounding():
    assert round_half_up(2.5) == 3
    assert round_half_up(0.5) == 1
    assert percentage_mix({"a": 1, "b": 1, "c": 1}) == {"a": 33, "b": 33, "c": 33}
    assert percentage_mix({"a": 1, "b": 7}) == {"a": 13, "b": 88}
