"""Record deduplication and score pre-processing."""

import dataclasses
import logging
from typing import Callable, Optional

from models import ApplicationRecord, ProgramOffering

logger = logging.getLogger(__name__)


def is_record_better(candidate: ApplicationRecord, existing: ApplicationRecord) -> bool:
    """Сравнивает две записи одного абитуриента.

    Порядок: оригинал документа > согласие > меньший номер приоритета.
    При полном равенстве остаётся уже найденная запись.
    """
    if candidate.has_original_document != existing.has_original_document:
        return candidate.has_original_document

    if candidate.consent != existing.consent:
        return candidate.consent

    return candidate.priority < existing.priority


def deduplicate_records(records: list[ApplicationRecord]) -> list[ApplicationRecord]:
    """Оставляет по одной лучшей записи на абитуриента, сортирует по месту в списке."""
    best: dict[str, ApplicationRecord] = {}

    for record in records:
        snils = record.normalized_id
        existing = best.get(snils)
        if existing is None or is_record_better(record, existing):
            best[snils] = record

    result = list(best.values())
    result.sort(key=lambda r: r.rank)
    return result


def privileged_by_rank(limit: int) -> Callable[[ApplicationRecord], bool]:
    """Predicate marking records within the first ``limit`` places of their list."""

    def is_privileged(record: ApplicationRecord) -> bool:
        return 1 <= record.rank <= limit

    return is_privileged


def raise_privileged_scores(
    records: list[ApplicationRecord],
    is_privileged: Callable[[ApplicationRecord], bool],
) -> list[ApplicationRecord]:
    """Raise every privileged record's score to the best privileged score of its offering.

    Records are not modified; adjusted copies carry ``score_override``.
    Offerings without a parseable privileged score are left as they are.

    Args:
        records: Deduplicated records, possibly of several offerings
        is_privileged: Decides which records belong to the privileged sub-range

    Returns:
        Records in the same order with adjusted scores
    """
    best_scores: dict[ProgramOffering, float] = {}
    for record in records:
        if not is_privileged(record):
            continue
        score = record.numeric_score
        if score is None:
            continue
        current: Optional[float] = best_scores.get(record.offering)
        if current is None or score > current:
            best_scores[record.offering] = score

    adjusted: list[ApplicationRecord] = []
    for record in records:
        best = best_scores.get(record.offering)
        score = record.numeric_score
        if best is not None and is_privileged(record) and (score is None or score < best):
            logger.debug(
                "Raised score of %s in %s to %.4f", record.applicant_id, record.offering, best
            )
            record = dataclasses.replace(record, score_override=best)
        adjusted.append(record)
    return adjusted
