"""Tests for record helpers and offering keys."""

from models import BUDGET_FUNDING, ProgramOffering, parse_score


def test_parse_score_locale_format():
    assert parse_score("4,5263") == 4.5263
    assert parse_score(" 4.5 ") == 4.5
    assert parse_score("1\xa0234,5") == 1234.5


def test_parse_score_unparseable():
    for text in ["", None, "—", "нет", "nan", "inf"]:
        assert parse_score(text) is None


def test_record_flags(make_record):
    r = make_record("123-456 789 00", 1, consent=False, document=False)
    assert not r.is_eager
    assert r.normalized_id == "12345678900"
    assert r.offering == ProgramOffering("X", BUDGET_FUNDING)


def test_unparseable_score_is_none(make_record):
    r = make_record("A", 1, score="abc")
    assert r.numeric_score is None

