"""Canonical form of applicant identifiers."""


def normalize_snils(snils: str) -> str:
    """Keep only letters and digits of an identifier and upper-case them.

    Args:
        snils: SNILS or personal code as published, e.g. "123-456-789 00"

    Returns:
        Canonical identifier used for every comparison, e.g. "12345678900"
    """
    return "".join(ch for ch in (snils or "") if ch.isalnum()).upper()


def same_applicant(first: str, second: str) -> bool:
    return normalize_snils(first) == normalize_snils(second)
