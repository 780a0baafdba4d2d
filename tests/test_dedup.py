"""Tests for record deduplication and the privileged score hook."""

from allocation.dedup import (
    deduplicate_records,
    is_record_better,
    privileged_by_rank,
    raise_privileged_scores,
)


def test_document_beats_consent(make_record):
    a = make_record("111-222", 5, priority=2, consent=False, document=True)
    b = make_record("111 222", 3, priority=1, consent=True, document=False)

    result = deduplicate_records([a, b])

    assert result == [a]


def test_consent_beats_priority(make_record):
    a = make_record("111", 1, priority=3, consent=True)
    b = make_record("111", 2, priority=1, consent=False)

    assert deduplicate_records([b, a]) == [a]


def test_lower_priority_number_wins(make_record):
    a = make_record("111", 1, priority=2)
    b = make_record("111", 2, priority=1)

    assert deduplicate_records([a, b]) == [b]


def test_full_tie_keeps_first(make_record):
    a = make_record("111", 1, priority=1)
    b = make_record("111", 2, priority=1)

    assert not is_record_better(b, a)
    assert deduplicate_records([a, b]) == [a]


def test_result_sorted_by_rank(make_record):
    records = [
        make_record("C", 3),
        make_record("A", 1),
        make_record("B", 2),
        make_record("a", 4, priority=5),
    ]

    result = deduplicate_records(records)

    assert [r.applicant_id for r in result] == ["A", "B", "C"]


def test_privileged_scores_raised_to_best_in_range(make_record):
    records = [
        make_record("A", 1, score="4,2"),
        make_record("B", 2, score="4,8"),
        make_record("C", 3, score="3,9"),
        make_record("D", 4, score="4,9"),
    ]

    adjusted = raise_privileged_scores(records, privileged_by_rank(3))

    assert [r.numeric_score for r in adjusted] == [4.8, 4.8, 4.8, 4.9]
    # originals untouched
    assert records[0].numeric_score == 4.2


def test_privileged_scores_per_offering(make_record):
    records = [
        make_record("A", 1, score="4,0", program="X"),
        make_record("B", 2, score="5,0", program="X"),
        make_record("C", 1, score="3,0", program="Y"),
        make_record("D", 2, score="3,5", program="Y"),
    ]

    adjusted = raise_privileged_scores(records, privileged_by_rank(2))

    assert [r.numeric_score for r in adjusted] == [5.0, 5.0, 3.5, 3.5]


def test_privileged_without_scores_unchanged(make_record):
    records = [make_record("A", 1, score="—"), make_record("B", 2, score="")]

    adjusted = raise_privileged_scores(records, privileged_by_rank(5))

    assert adjusted == records
