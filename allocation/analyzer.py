"""Entry points of the admission analysis."""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from allocation.outcome import target_outcomes
from allocation.popularity import calculate_all_program_popularities
from allocation.preferences import admission_queue, build_preferences
from allocation.simulator import (
    DEFAULT_FUNDING_ORDER,
    CarryOver,
    Observer,
    fill_remaining_seats,
    simulate_funding_priority_admission,
    simulate_priority_based_admission,
)
from models import (
    AdmissionAnalysis,
    AllocationPolicy,
    ApplicationRecord,
    PopularityMode,
    ProgramRecords,
)

logger = logging.getLogger(__name__)


@dataclass
class FundingRound:
    """One round of the funding-filter simulation."""

    funding_source: str
    program_records: ProgramRecords
    analysis: AdmissionAnalysis


def group_by_program_and_funding(
    program_records: ProgramRecords,
) -> dict[str, dict[str, list[ApplicationRecord]]]:
    """Group records as program name -> funding source -> records, for reporting."""
    grouped: dict[str, dict[str, list[ApplicationRecord]]] = {}
    for program_name, records in program_records:
        for record in records:
            grouped.setdefault(program_name, {}).setdefault(record.funding_source, []).append(
                record
            )
    return grouped


def filter_records_by_funding(
    program_records: ProgramRecords, funding_types: Iterable[str]
) -> ProgramRecords:
    """Keep only records of the given funding types; programs left empty are dropped."""
    funding_types = set(funding_types)
    filtered: ProgramRecords = []
    for program_name, records in program_records:
        kept = [r for r in records if r.funding_source in funding_types]
        if kept:
            filtered.append((program_name, kept))
    return filtered


def analyze(
    program_records: ProgramRecords,
    target_snils: str,
    *,
    policy: AllocationPolicy = AllocationPolicy.UNIFIED,
    popularity_mode: PopularityMode = PopularityMode.PRIORITY,
    carry_over: Optional[CarryOver] = None,
    observer: Optional[Observer] = None,
) -> AdmissionAnalysis:
    """Run popularity ranking, admission simulation and target analysis.

    Args:
        program_records: Deduplicated (program name, records) pairs
        target_snils: Applicant to analyze
        policy: Simulation variant
        popularity_mode: Ranking formulation of the offerings
        carry_over: Admissions of earlier funding rounds, only used by
            ``AllocationPolicy.FUNDING_ROUNDS``
        observer: Optional callback for every admit/reject decision

    Returns:
        The analysis with popularity ranking, admitted lists and target outcomes
    """
    popularities = calculate_all_program_popularities(program_records, popularity_mode)

    if policy is AllocationPolicy.FUNDING_PRIORITY:
        state = simulate_funding_priority_admission(
            program_records, popularities, observer=observer
        )
    else:
        queue = admission_queue(build_preferences(program_records))
        if policy is AllocationPolicy.FUNDING_ROUNDS:
            carry_over = carry_over or CarryOver(target_snils=target_snils)
        else:
            carry_over = None
        state = simulate_priority_based_admission(
            popularities, queue, carry_over=carry_over, observer=observer
        )
        if policy is AllocationPolicy.FUNDING_ROUNDS:
            fill_remaining_seats(
                state,
                program_records,
                [p.offering for p in popularities],
                carry_over=carry_over,
            )

    result = state.result()
    found, outcomes = target_outcomes(program_records, result, target_snils)
    logger.debug(
        "Policy %s: %d offerings, %d admitted",
        policy.value,
        len(popularities),
        sum(len(ids) for ids in result.values()),
    )

    return AdmissionAnalysis(
        policy=policy,
        program_popularities=popularities,
        final_admission_results=result,
        target_snils=target_snils,
        target_applicant_found=found,
        target_outcomes=outcomes,
    )


def analyze_funding_rounds(
    program_records: ProgramRecords,
    target_snils: str,
    funding_types: Iterable[str] = DEFAULT_FUNDING_ORDER,
    *,
    popularity_mode: PopularityMode = PopularityMode.PRIORITY,
    observer: Optional[Observer] = None,
) -> list[FundingRound]:
    """Simulate one funding type after another.

    Every round excludes the applicants admitted in the earlier rounds, except
    the target when reconsidered for a program they already hold a seat in.
    """
    carry_over = CarryOver(target_snils=target_snils)
    rounds: list[FundingRound] = []

    for funding in funding_types:
        records = filter_records_by_funding(program_records, [funding])
        analysis = analyze(
            records,
            target_snils,
            policy=AllocationPolicy.FUNDING_ROUNDS,
            popularity_mode=popularity_mode,
            carry_over=carry_over,
            observer=observer,
        )
        carry_over.add(analysis.final_admission_results)
        rounds.append(FundingRound(funding, records, analysis))

    return rounds
