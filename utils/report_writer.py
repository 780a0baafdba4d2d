"""Text and CSV reports of an admission analysis."""

import csv
import logging
import shutil
from pathlib import Path

from allocation.analyzer import group_by_program_and_funding
from allocation.identity import normalize_snils
from allocation.popularity import calculate_all_program_popularities
from models import (
    BUDGET_FUNDING,
    COMMERCIAL_FUNDING,
    AdmissionAnalysis,
    AdmissionStatus,
    ApplicationRecord,
    ChanceAnalysis,
    PopularityMode,
    ProgramRecords,
)

logger = logging.getLogger(__name__)

RECORD_HEADERS = [
    "Rank",
    "SNILS",
    "Priority",
    "Consent",
    "Original_Document",
    "Average_Score",
    "Subject_Scores",
    "Psychological_Test",
    "Funding_Source",
    "Study_Form",
    "Available_Places",
]

REPORT_ITEMS = [
    "all_applicants.csv",
    "all_programs_popularity.txt",
    "chance_analysis.txt",
    "program_popularity.txt",
    "final_cutoff_analysis.txt",
    "final_cutoff_analysis.csv",
    "programs",
    "filtered_eager",
    "admitted_lists",
]

ADMISSION_LABELS = {
    BUDGET_FUNDING: "Admitted_Budget",
    COMMERCIAL_FUNDING: "Admitted_Commercial",
}


def safe_file_name(name: str) -> str:
    return name.replace("/", "_").replace("\\", "_").replace(" ", "_")


def _yes_no(flag: bool) -> str:
    return "Да" if flag else "Нет"


def _record_row(record: ApplicationRecord) -> list[str]:
    return [
        str(record.rank),
        record.applicant_id,
        str(record.priority),
        _yes_no(record.consent),
        _yes_no(record.has_original_document),
        record.score_text,
        record.subject_scores,
        record.psychological_test,
        record.funding_source,
        record.study_form,
        str(record.available_places),
    ]


def _open_csv(path: Path):
    return open(path, "w", encoding="utf-8", newline="")


def clean_output_directory(output_dir: str) -> list[str]:
    """Remove reports of a previous run; other files are left alone.

    Returns:
        Names of the removed items
    """
    output_path = Path(output_dir)
    removed: list[str] = []
    if not output_path.exists():
        return removed

    for item in REPORT_ITEMS:
        item_path = output_path / item
        if item_path.is_file():
            item_path.unlink()
            removed.append(item)
        elif item_path.is_dir():
            shutil.rmtree(item_path)
            removed.append(item)
    return removed


def generate_program_popularity_report(analysis: AdmissionAnalysis, output_dir: str):
    lines = ["Program Popularity Analysis", "==========================", ""]
    for i, p in enumerate(analysis.program_popularities, start=1):
        lines += [
            f"{i}. Program: {p.offering}",
            f"Top candidates average priority: {p.top_candidates_average_priority:.2f}",
            f"Average score of eager applicants: {p.average_score:.4f}",
            f"Eager applicants per place: {p.applications_per_place:.2f}",
            f"Total applications per place: {p.total_per_place:.2f}",
            f"Available places: {p.available_places}",
            f"Total applications: {p.total_applications}",
            f"Total eager applicants: {p.total_eager_applicants}",
            "",
        ]
    (Path(output_dir) / "program_popularity.txt").write_text("\n".join(lines), encoding="utf-8")


def generate_all_programs_popularity(program_records: ProgramRecords, output_dir: str):
    """Programs ordered by applicants per place, each with budget seats listed first."""
    popularities = calculate_all_program_popularities(
        program_records, PopularityMode.APPLICATIONS_PER_PLACE
    )

    by_program: dict[str, list] = {}
    for p in popularities:
        by_program.setdefault(p.program_name, []).append(p)
    for entries in by_program.values():
        entries.sort(key=lambda p: p.funding_source != BUDGET_FUNDING)

    lines = [
        "All Programs Popularity Chain",
        "============================",
        "",
        "Programs ordered from most to least popular (by funding type):",
        "",
    ]
    counter = 1
    for program_name, entries in by_program.items():
        for p in entries:
            lines += [
                f"{counter}. Program: {program_name} ({p.funding_source})",
                f"Applications per place: {p.applications_per_place:.2f}",
                f"Total applications per place: {p.total_per_place:.2f}",
                f"Top candidates average score: {p.top_subset_average_score:.2f}",
                f"Available places: {p.available_places}",
                f"Total applications: {p.total_applications}",
                f"Total eager applicants: {p.total_eager_applicants}",
                "",
            ]
            counter += 1
    (Path(output_dir) / "all_programs_popularity.txt").write_text(
        "\n".join(lines), encoding="utf-8"
    )


def generate_chance_analysis_report(chance: ChanceAnalysis, output_dir: str):
    lines = [
        f"Admission Chances Analysis for SNILS: {chance.target_snils}",
        "==========================================",
        "",
    ]
    if chance.programs_admitted_to:
        lines.append("✅ Programs with admission chances:")
        lines += [f"   - {p}" for p in chance.programs_admitted_to]
        lines.append("")
    if chance.programs_admitted_by_score:
        lines.append("⚠️  Programs passing by score but not by priority:")
        lines += [f"   - {p}" for p in chance.programs_admitted_by_score]
        lines.append("")
    if chance.programs_rejected_from:
        lines.append("❌ Programs with low chances:")
        lines += [f"   - {p}" for p in chance.programs_rejected_from]
        lines.append("")
    lines += ["Recommendation:", chance.final_recommendation, ""]
    (Path(output_dir) / "chance_analysis.txt").write_text("\n".join(lines), encoding="utf-8")


def generate_detailed_csv(program_records: ProgramRecords, output_dir: str):
    with _open_csv(Path(output_dir) / "all_applicants.csv") as f:
        writer = csv.writer(f)
        writer.writerow(["Program"] + RECORD_HEADERS)
        for program_name, records in program_records:
            for record in records:
                writer.writerow([program_name] + _record_row(record))


def generate_individual_program_csvs(program_records: ProgramRecords, output_dir: str):
    programs_dir = Path(output_dir) / "programs"
    programs_dir.mkdir(parents=True, exist_ok=True)

    for program_name, fundings in group_by_program_and_funding(program_records).items():
        with _open_csv(programs_dir / f"{safe_file_name(program_name)}.csv") as f:
            writer = csv.writer(f)
            writer.writerow(RECORD_HEADERS)
            for records in fundings.values():
                for record in records:
                    writer.writerow(_record_row(record))


def generate_filtered_eager_csvs(
    analysis: AdmissionAnalysis, program_records: ProgramRecords, output_dir: str
):
    """Per program list with eager flag and whether the applicant took a seat elsewhere."""
    filtered_dir = Path(output_dir) / "filtered_eager"
    filtered_dir.mkdir(parents=True, exist_ok=True)

    admitted_to: dict[str, set] = {}
    for offering, admitted in analysis.final_admission_results.items():
        for applicant_id in admitted:
            admitted_to.setdefault(normalize_snils(applicant_id), set()).add(offering)

    grouped = group_by_program_and_funding(program_records)
    for program_name, fundings in grouped.items():
        path = filtered_dir / f"{safe_file_name(program_name)}_filtered_eager.csv"
        with _open_csv(path) as f:
            writer = csv.writer(f)
            writer.writerow(RECORD_HEADERS + ["Is_Eager", "Excluded_By_Higher_Priority"])
            for records in fundings.values():
                for record in records:
                    elsewhere = admitted_to.get(record.normalized_id, set()) - {record.offering}
                    writer.writerow(
                        _record_row(record)
                        + [_yes_no(record.is_eager), _yes_no(bool(elsewhere))]
                    )


def generate_admitted_lists_csvs(
    analysis: AdmissionAnalysis, program_records: ProgramRecords, output_dir: str
):
    """Admitted applicants of every offering, in admission order."""
    admitted_dir = Path(output_dir) / "admitted_lists"
    admitted_dir.mkdir(parents=True, exist_ok=True)

    grouped = group_by_program_and_funding(program_records)
    for offering, admitted in analysis.final_admission_results.items():
        records = grouped.get(offering.program_name, {}).get(offering.funding_source, [])
        by_snils = {r.normalized_id: r for r in records}
        label = ADMISSION_LABELS.get(offering.funding_source, "Admitted_Other")

        with _open_csv(admitted_dir / f"{safe_file_name(offering.key)}_admitted.csv") as f:
            writer = csv.writer(f)
            writer.writerow(RECORD_HEADERS + ["Admission_Status"])
            for applicant_id in admitted:
                record = by_snils.get(normalize_snils(applicant_id))
                if record is None:
                    logger.warning("No record of %s in %s", applicant_id, offering)
                    continue
                writer.writerow(_record_row(record) + [label])


def generate_final_cutoff_analysis(analysis: AdmissionAnalysis, output_dir: str):
    lines = [
        f"Final Cutoff Analysis for SNILS: {analysis.target_snils}",
        "==========================================",
        "",
    ]
    if not analysis.target_applicant_found:
        lines += ["Target applicant not found in any program list", ""]

    with _open_csv(Path(output_dir) / "final_cutoff_analysis.csv") as f:
        writer = csv.writer(f)
        writer.writerow(
            [
                "Program",
                "Funding_Type",
                "Position_In_Admitted",
                "Available_Places",
                "Target_Score",
                "Cutoff_Score",
                "Admission_Status",
            ]
        )
        for outcome in analysis.target_outcomes:
            if outcome.position is not None:
                position = f"Position {outcome.position} of {outcome.admitted_count}"
                position_line = (
                    f"Position in admitted list: {outcome.position} "
                    f"(of {outcome.admitted_count} admitted)"
                )
            else:
                position = "Not in list"
                position_line = ""

            detail = ""
            if (
                outcome.status is AdmissionStatus.NOT_ADMITTED
                and outcome.applicants_between > 0
            ):
                detail = f" ({outcome.applicants_between} applicants ahead outside the list)"

            lines.append(f"Program: {outcome.offering.program_name}")
            lines.append(f"Funding: {outcome.offering.funding_source}")
            if position_line:
                lines.append(position_line)
            lines += [
                f"Available places: {outcome.available_places}",
                f"Target score: {outcome.target_score:.4f}",
                f"Cutoff score: {outcome.cutoff_score:.4f}",
                f"Status: {outcome.status.value}{detail}",
                "",
            ]
            writer.writerow(
                [
                    outcome.offering.program_name,
                    outcome.offering.funding_source,
                    position,
                    outcome.available_places,
                    f"{outcome.target_score:.4f}",
                    f"{outcome.cutoff_score:.4f}",
                    outcome.status.value,
                ]
            )

    (Path(output_dir) / "final_cutoff_analysis.txt").write_text(
        "\n".join(lines), encoding="utf-8"
    )


def write_all_reports(
    analysis: AdmissionAnalysis,
    chance: ChanceAnalysis,
    program_records: ProgramRecords,
    output_dir: str,
):
    Path(output_dir).mkdir(parents=True, exist_ok=True)
    generate_program_popularity_report(analysis, output_dir)
    generate_chance_analysis_report(chance, output_dir)
    generate_detailed_csv(program_records, output_dir)
    generate_all_programs_popularity(program_records, output_dir)
    generate_individual_program_csvs(program_records, output_dir)
    generate_filtered_eager_csvs(analysis, program_records, output_dir)
    generate_admitted_lists_csvs(analysis, program_records, output_dir)
    generate_final_cutoff_analysis(analysis, output_dir)
