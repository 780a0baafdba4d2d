"""Program popularity metrics and ranking."""

import logging

from models import (
    ApplicationRecord,
    PopularityMode,
    ProgramOffering,
    ProgramPopularity,
    ProgramRecords,
)

logger = logging.getLogger(__name__)

TOP_SUBSET_FACTOR = 2


class CapacityMismatchError(ValueError):
    """Records of one offering disagree on the number of available places."""


def _mean(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def offering_capacity(offering: ProgramOffering, records: list[ApplicationRecord]) -> int:
    """Return the capacity shared by all records of an offering.

    Raises:
        CapacityMismatchError: If the records carry different capacities
    """
    places = {r.available_places for r in records}
    if len(places) > 1:
        raise CapacityMismatchError(
            f"{offering}: inconsistent available places {sorted(places)}"
        )
    return places.pop() if places else 0


def group_by_offering(
    program_records: ProgramRecords,
) -> dict[ProgramOffering, list[ApplicationRecord]]:
    """Collect records per (program, funding) pair in encounter order.

    Records whose program name or funding source is blank are skipped.
    """
    groups: dict[ProgramOffering, list[ApplicationRecord]] = {}
    for program_name, records in program_records:
        for record in records:
            if not program_name.strip() or not record.funding_source.strip():
                logger.warning(
                    "Skipping record %s with malformed offering key %r/%r",
                    record.applicant_id,
                    program_name,
                    record.funding_source,
                )
                continue
            offering = ProgramOffering(program_name, record.funding_source)
            groups.setdefault(offering, []).append(record)
    return groups


def calculate_program_popularity(
    offering: ProgramOffering, records: list[ApplicationRecord]
) -> ProgramPopularity:
    """Compute the competitiveness metrics of one offering.

    The top subset is the first ``2 * available_places`` eager records by rank
    (or fewer if there are not enough). Its mean priority is the ranking key;
    the average score covers every eager record with a parseable score.
    """
    available_places = offering_capacity(offering, records)

    eager = [r for r in records if r.is_eager]
    eager.sort(key=lambda r: r.rank)

    top_count = min(available_places * TOP_SUBSET_FACTOR, len(eager))
    top = eager[:top_count]

    top_scores = [r.numeric_score for r in top if r.numeric_score is not None]
    all_scores = [r.numeric_score for r in eager if r.numeric_score is not None]

    return ProgramPopularity(
        offering=offering,
        study_form=records[0].study_form if records else "Unknown",
        available_places=available_places,
        total_applications=len(records),
        total_eager_applicants=len(eager),
        average_score=_mean(all_scores),
        top_candidates_average_priority=_mean([float(r.priority) for r in top]),
        top_subset_average_score=_mean(top_scores),
        eager_applicants=eager,
    )


def rank_popularities(
    popularities: list[ProgramPopularity],
    mode: PopularityMode = PopularityMode.PRIORITY,
) -> list[ProgramPopularity]:
    """Order offerings from most to least competitive."""
    if mode is PopularityMode.APPLICATIONS_PER_PLACE:
        return sorted(
            popularities,
            key=lambda p: (
                -p.applications_per_place,
                -p.top_subset_average_score,
                -p.total_applications,
            ),
        )
    return sorted(popularities, key=lambda p: p.top_candidates_average_priority)


def calculate_all_program_popularities(
    program_records: ProgramRecords,
    mode: PopularityMode = PopularityMode.PRIORITY,
) -> list[ProgramPopularity]:
    """Popularity of every offering found in the records, most competitive first."""
    groups = group_by_offering(program_records)
    popularities = [
        calculate_program_popularity(offering, records)
        for offering, records in groups.items()
    ]
    return rank_popularities(popularities, mode)


def capacity_map(popularities: list[ProgramPopularity]) -> dict[ProgramOffering, int]:
    return {p.offering: p.available_places for p in popularities}

