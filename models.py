"""Data models for admission list analysis."""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from allocation.identity import normalize_snils

BUDGET_FUNDING = "Бюджетное финансирование"
COMMERCIAL_FUNDING = "Коммерческое финансирование"

KEY_SEPARATOR = "_"


class AllocationPolicy(str, Enum):
    """Selectable admission simulation variants."""

    UNIFIED = "unified"
    FUNDING_PRIORITY = "funding_priority"
    FUNDING_ROUNDS = "funding_rounds"


class PopularityMode(str, Enum):
    """Selectable program ranking formulations."""

    PRIORITY = "priority"
    APPLICATIONS_PER_PLACE = "applications_per_place"


class AdmissionStatus(str, Enum):
    ADMITTED = "Admitted"
    ADMITTED_BY_SCORE_NOT_BY_PRIORITY = "Admitted_ByScore_NotByPriority"
    NOT_ADMITTED = "Not_Admitted"


def parse_score(text: Optional[str]) -> Optional[float]:
    """Parse a locale formatted decimal like ``"4,5263"``.

    Args:
        text: Raw score cell text

    Returns:
        Parsed value or None if the text is empty or not a finite number
    """
    if not text:
        return None
    cleaned = text.strip().replace("\xa0", "").replace(" ", "").replace(",", ".")
    try:
        value = float(cleaned)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


@dataclass(frozen=True)
class ProgramOffering:
    """A program together with its funding source.

    Attributes:
        program_name: Name of the educational program
        funding_source: Capacity pool of the program (budget, commercial)
    """

    program_name: str
    funding_source: str

    @property
    def key(self) -> str:
        return f"{self.program_name}{KEY_SEPARATOR}{self.funding_source}"

    def __str__(self) -> str:
        return f"{self.program_name} ({self.funding_source})"


@dataclass(frozen=True)
class ProgramInfo:
    """Header block of one program on an admission list page.

    Attributes:
        name: Name of the program
        funding_source: Funding source of the listed seats
        study_form: Study form (full-time, part-time)
        available_places: Number of seats
    """

    name: str
    funding_source: str
    study_form: str
    available_places: int


@dataclass(frozen=True)
class ApplicationRecord:
    """One row of a program's published ranked list.

    Attributes:
        rank: Position within the program list, starting at 1
        applicant_id: Applicant SNILS or personal code as published
        priority: Applicant's preference order for this program, lower is better
        consent: Whether consent to enrollment was given
        has_original_document: Whether the original document was submitted
        score_text: Average score as published, e.g. "4,5263"
        program_name: Name of the program
        funding_source: Funding source of the seat pool
        study_form: Study form
        available_places: Capacity of the program/funding combination
        subject_scores: Subject scores column as published
        psychological_test: Psychological test column as published
        score_override: Adjusted score set by the privileged score policy
    """

    rank: int
    applicant_id: str
    priority: int
    consent: bool
    has_original_document: bool
    score_text: str
    program_name: str
    funding_source: str
    study_form: str = "Unknown"
    available_places: int = 0
    subject_scores: str = ""
    psychological_test: str = "-"
    score_override: Optional[float] = None

    @property
    def numeric_score(self) -> Optional[float]:
        if self.score_override is not None:
            return self.score_override
        return parse_score(self.score_text)

    @property
    def is_eager(self) -> bool:
        return self.has_original_document or self.consent

    @property
    def normalized_id(self) -> str:
        return normalize_snils(self.applicant_id)

    @property
    def offering(self) -> ProgramOffering:
        return ProgramOffering(self.program_name, self.funding_source)


ProgramRecords = list[tuple[str, list[ApplicationRecord]]]
AdmissionResult = dict[ProgramOffering, list[str]]


@dataclass
class ProgramPopularity:
    """Competitiveness metrics of one program offering.

    Attributes:
        offering: Program and funding source
        study_form: Study form of the program
        available_places: Capacity of the offering
        total_applications: Number of records of the offering
        total_eager_applicants: Number of eager records
        average_score: Mean score over all eager records
        top_candidates_average_priority: Mean priority of the top eager records
        top_subset_average_score: Mean score of the top eager records
        eager_applicants: Eager records sorted by rank
    """

    offering: ProgramOffering
    study_form: str
    available_places: int
    total_applications: int
    total_eager_applicants: int
    average_score: float
    top_candidates_average_priority: float
    top_subset_average_score: float
    eager_applicants: list[ApplicationRecord] = field(default_factory=list)

    @property
    def program_name(self) -> str:
        return self.offering.program_name

    @property
    def funding_source(self) -> str:
        return self.offering.funding_source

    @property
    def applications_per_place(self) -> float:
        """Eager applicants per seat, 0.0 when the offering has no seats."""
        if self.available_places <= 0:
            return 0.0
        return self.total_eager_applicants / self.available_places

    @property
    def total_per_place(self) -> float:
        if self.available_places <= 0:
            return 0.0
        return self.total_applications / self.available_places


@dataclass
class ApplicantPreferences:
    """All eager applications of one applicant.

    Attributes:
        snils: Normalized applicant identifier
        applications: Eager records sorted by priority
        average_rank: Mean rank over the applications
        average_score: Mean score over the applications, missing scores count as 0
    """

    snils: str
    applications: list[ApplicationRecord]
    average_rank: float
    average_score: float


@dataclass(frozen=True)
class AdmissionDecision:
    """One admit/reject decision of a simulation run."""

    applicant_id: str
    offering: ProgramOffering
    admitted: bool
    seats_taken: int
    capacity: int
    reason: str = ""


@dataclass
class TargetOutcome:
    """Target applicant's outcome on one offering.

    Attributes:
        offering: Program and funding source
        status: Admission status classification
        target_score: Target's score in this offering, 0.0 if absent
        cutoff_score: Lowest score among admitted applicants, 0.0 if undefined
        position: 1-based position in the admitted list, None if not admitted
        admitted_count: Number of admitted applicants
        available_places: Capacity of the offering
        applicants_between: Eager applicants ranked between the last admitted
            applicant and the target
    """

    offering: ProgramOffering
    status: AdmissionStatus
    target_score: float
    cutoff_score: float
    position: Optional[int]
    admitted_count: int
    available_places: int
    applicants_between: int = 0

    @property
    def admitted(self) -> bool:
        return self.status is AdmissionStatus.ADMITTED


@dataclass
class AdmissionAnalysis:
    """Result of one analysis run.

    Attributes:
        policy: Simulation variant used
        program_popularities: Offerings from most to least competitive
        final_admission_results: Offering -> admitted applicant ids in admission order
        target_snils: Target applicant as given
        target_applicant_found: Whether the target appears in any record
        target_outcomes: Target outcome per offering the target applied to
    """

    policy: AllocationPolicy
    program_popularities: list[ProgramPopularity]
    final_admission_results: AdmissionResult
    target_snils: str
    target_applicant_found: bool
    target_outcomes: list[TargetOutcome] = field(default_factory=list)

    @property
    def target_status_per_offering(self) -> dict[ProgramOffering, AdmissionStatus]:
        return {o.offering: o.status for o in self.target_outcomes}


@dataclass
class ChanceAnalysis:
    """Human readable summary of the target's chances."""

    target_snils: str
    target_found: bool
    programs_admitted_to: list[str]
    programs_rejected_from: list[str]
    programs_admitted_by_score: list[str]
    final_recommendation: str
