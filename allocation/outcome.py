"""Cutoff scores, target position and admission status."""

from typing import Optional

from allocation.identity import normalize_snils, same_applicant
from allocation.popularity import group_by_offering
from models import (
    AdmissionAnalysis,
    AdmissionResult,
    AdmissionStatus,
    ApplicationRecord,
    ChanceAnalysis,
    ProgramRecords,
    TargetOutcome,
)


def cutoff_score(admitted: list[str], records: list[ApplicationRecord]) -> float:
    """Lowest score among admitted applicants of an offering.

    Args:
        admitted: Admitted applicant ids of the offering
        records: Records of the same offering

    Returns:
        The cutoff, or 0.0 if nobody is admitted or no admitted score parses
    """
    admitted_set = {normalize_snils(a) for a in admitted}
    scores = [
        r.numeric_score
        for r in records
        if r.normalized_id in admitted_set and r.numeric_score is not None
    ]
    return min(scores) if scores else 0.0


def admitted_position(snils: str, admitted: list[str]) -> Optional[int]:
    for i, applicant_id in enumerate(admitted):
        if same_applicant(applicant_id, snils):
            return i + 1
    return None


def classify(is_admitted: bool, target_score: float, cutoff: float) -> AdmissionStatus:
    if is_admitted:
        return AdmissionStatus.ADMITTED
    if cutoff > 0 and target_score > cutoff:
        return AdmissionStatus.ADMITTED_BY_SCORE_NOT_BY_PRIORITY
    return AdmissionStatus.NOT_ADMITTED


def applicants_between(
    snils: str, admitted: list[str], records: list[ApplicationRecord]
) -> int:
    """Eager applicants ranked after the last admitted applicant and before the target."""
    eager = sorted((r for r in records if r.is_eager), key=lambda r: r.rank)
    ids = [r.normalized_id for r in eager]
    target = normalize_snils(snils)
    if target not in ids:
        return 0
    target_index = ids.index(target)

    admitted_set = {normalize_snils(a) for a in admitted}
    admitted_indexes = [i for i, s in enumerate(ids) if s in admitted_set]
    last_admitted = max(admitted_indexes) if admitted_indexes else -1
    return max(0, target_index - last_admitted - 1)


def target_outcomes(
    program_records: ProgramRecords,
    result: AdmissionResult,
    target_snils: str,
) -> tuple[bool, list[TargetOutcome]]:
    """Outcome of the target on every offering they applied to.

    Returns:
        (found, outcomes); found is False if the target is in no record at all
    """
    target = normalize_snils(target_snils)
    if not target:
        return False, []
    found = False
    outcomes: list[TargetOutcome] = []

    for offering, records in group_by_offering(program_records).items():
        record = next((r for r in records if r.normalized_id == target), None)
        if record is None:
            continue
        found = True

        admitted = result.get(offering, [])
        position = admitted_position(target, admitted)
        cutoff = cutoff_score(admitted, records)
        target_score = record.numeric_score if record.numeric_score is not None else 0.0
        status = classify(position is not None, target_score, cutoff)

        outcomes.append(
            TargetOutcome(
                offering=offering,
                status=status,
                target_score=target_score,
                cutoff_score=cutoff,
                position=position,
                admitted_count=len(admitted),
                available_places=record.available_places,
                applicants_between=(
                    0 if position is not None else applicants_between(target, admitted, records)
                ),
            )
        )

    return found, outcomes


def analyze_target_chances(
    analysis: AdmissionAnalysis,
    programs_of_interest: Optional[list[str]] = None,
) -> ChanceAnalysis:
    """Summarize the target's outcomes into admitted/rejected lists and a recommendation."""
    outcomes = analysis.target_outcomes
    if programs_of_interest:
        outcomes = [o for o in outcomes if o.offering.program_name in programs_of_interest]

    admitted = [str(o.offering) for o in outcomes if o.admitted]
    by_score = [
        str(o.offering)
        for o in outcomes
        if o.status is AdmissionStatus.ADMITTED_BY_SCORE_NOT_BY_PRIORITY
    ]
    rejected = [str(o.offering) for o in outcomes if not o.admitted]

    if not analysis.target_applicant_found:
        recommendation = (
            f"Applicant {analysis.target_snils} was not found in any admission list. "
            "Check the SNILS and the data sources."
        )
    elif admitted:
        recommendation = (
            f"Likely admission to {admitted[0]}. Keep the consent and original document there."
        )
    elif by_score:
        recommendation = (
            f"Your score is above the cutoff for {', '.join(by_score)}, but the seats go to "
            "applicants who rank those programs higher. Consider raising their priority."
        )
    elif rejected:
        recommendation = (
            "Low chances in all analyzed programs. Consider programs with fewer "
            "applicants per place or another funding source."
        )
    else:
        recommendation = "The applicant did not apply to any of the programs of interest."

    return ChanceAnalysis(
        target_snils=analysis.target_snils,
        target_found=analysis.target_applicant_found,
        programs_admitted_to=admitted,
        programs_rejected_from=rejected,
        programs_admitted_by_score=by_score,
        final_recommendation=recommendation,
    )
