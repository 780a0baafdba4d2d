"""Tests for applicant identifier normalization."""

from allocation.identity import normalize_snils, same_applicant


def test_strips_punctuation_and_spaces():
    assert normalize_snils("123-456-789 00") == "12345678900"


def test_upper_cases_letters():
    assert normalize_snils("с25-00946") == "С2500946"


def test_idempotent():
    for value in ["123-456 789 00", "С25-00946", "  a.b/c  ", "", "---"]:
        once = normalize_snils(value)
        assert normalize_snils(once) == once


def test_case_and_punctuation_insensitive():
    assert same_applicant("123-456 789 00", "123456 78900")
    assert same_applicant("abc-1", "ABC 1")
    assert not same_applicant("123-456", "123-457")


def test_none_is_empty():
    assert normalize_snils(None) == ""
