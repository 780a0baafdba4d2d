"""Tests for program popularity metrics."""

import pytest

from allocation.popularity import (
    CapacityMismatchError,
    calculate_all_program_popularities,
    calculate_program_popularity,
    group_by_offering,
    rank_popularities,
)
from models import BUDGET_FUNDING, COMMERCIAL_FUNDING, PopularityMode, ProgramOffering

X = ProgramOffering("X", BUDGET_FUNDING)


def test_top_subset_is_twice_capacity(make_record):
    records = [
        make_record("A", 1, priority=1, score="5,0", places=1),
        make_record("B", 2, priority=3, score="4,0", places=1),
        make_record("C", 3, priority=5, score="3,0", places=1),
    ]

    p = calculate_program_popularity(X, records)

    assert p.available_places == 1
    assert p.total_eager_applicants == 3
    assert p.top_candidates_average_priority == 2.0
    assert p.top_subset_average_score == 4.5
    assert p.average_score == 4.0


def test_non_eager_excluded(make_record):
    records = [
        make_record("A", 1, priority=4, score="5,0", consent=False),
        make_record("B", 2, priority=2, score="3,0"),
    ]

    p = calculate_program_popularity(X, records)

    assert p.total_applications == 2
    assert p.total_eager_applicants == 1
    assert p.top_candidates_average_priority == 2.0
    assert p.average_score == 3.0
    assert [r.applicant_id for r in p.eager_applicants] == ["B"]


def test_unparseable_scores_skipped(make_record):
    records = [
        make_record("A", 1, score="—"),
        make_record("B", 2, score="4,5"),
    ]

    p = calculate_program_popularity(X, records)

    assert p.average_score == 4.5


def test_empty_offering_defaults(make_record):
    records = [make_record("A", 1, consent=False)]

    p = calculate_program_popularity(X, records)

    assert p.top_candidates_average_priority == 0.0
    assert p.average_score == 0.0


def test_zero_capacity_does_not_divide(make_record):
    records = [make_record("A", 1, places=0), make_record("B", 2, places=0)]

    p = calculate_program_popularity(X, records)

    assert p.applications_per_place == 0.0
    assert p.total_per_place == 0.0
    assert p.top_candidates_average_priority == 0.0


def test_inconsistent_capacity_is_error(make_record):
    records = [make_record("A", 1, places=2), make_record("B", 2, places=3)]

    with pytest.raises(CapacityMismatchError):
        calculate_program_popularity(X, records)


def test_ranked_by_top_priority(make_record):
    program_records = [
        ("Calm", [make_record("A", 1, priority=3, program="Calm")]),
        ("Hot", [make_record("B", 1, priority=1, program="Hot")]),
    ]

    ranking = calculate_all_program_popularities(program_records)

    assert [p.program_name for p in ranking] == ["Hot", "Calm"]


def test_better_ranked_high_priority_applicants_keep_average_low(make_record):
    base = [
        make_record("A", 3, priority=3, places=1),
        make_record("B", 4, priority=3, places=1),
    ]
    boosted = base + [
        make_record("C", 1, priority=1, places=1),
        make_record("D", 2, priority=1, places=1),
    ]

    before = calculate_program_popularity(X, base)
    after = calculate_program_popularity(X, boosted)

    assert after.top_candidates_average_priority <= before.top_candidates_average_priority


def test_applications_per_place_mode(make_record):
    program_records = [
        ("Few", [make_record("A", 1, program="Few", places=2)]),
        (
            "Many",
            [
                make_record("B", 1, program="Many", places=1),
                make_record("C", 2, program="Many", places=1),
            ],
        ),
    ]

    ranking = calculate_all_program_popularities(
        program_records, PopularityMode.APPLICATIONS_PER_PLACE
    )

    assert [p.program_name for p in ranking] == ["Many", "Few"]
    assert ranking[0].applications_per_place == 2.0


def test_group_by_offering_splits_funding(make_record):
    program_records = [
        (
            "X",
            [
                make_record("A", 1),
                make_record("B", 1, funding=COMMERCIAL_FUNDING, places=5),
            ],
        )
    ]

    groups = group_by_offering(program_records)

    assert set(groups) == {X, ProgramOffering("X", COMMERCIAL_FUNDING)}


def test_group_by_offering_skips_malformed(make_record):
    program_records = [("X", [make_record("A", 1, funding=" ")]), (" ", [make_record("B", 1)])]

    assert group_by_offering(program_records) == {}


def test_rank_popularities_is_stable(make_record):
    a = calculate_program_popularity(ProgramOffering("A", BUDGET_FUNDING), [make_record("1", 1)])
    b = calculate_program_popularity(ProgramOffering("B", BUDGET_FUNDING), [make_record("2", 1)])

    assert rank_popularities([a, b]) == [a, b]
    assert rank_popularities([b, a]) == [b, a]
