"""Greedy admission simulation.

The simulation is a single pass: an applicant takes the most preferred offering
that still has room and is never re-seated afterwards, even if a better seat
frees up later. This approximates the real admission process and is not a
deferred acceptance (stable matching) algorithm.
"""

import logging
from typing import Callable, Iterable, Optional

from allocation.identity import normalize_snils
from allocation.popularity import capacity_map, group_by_offering
from models import (
    BUDGET_FUNDING,
    COMMERCIAL_FUNDING,
    AdmissionDecision,
    AdmissionResult,
    ApplicantPreferences,
    ApplicationRecord,
    ProgramOffering,
    ProgramPopularity,
    ProgramRecords,
)

logger = logging.getLogger(__name__)

Observer = Callable[[AdmissionDecision], None]

DEFAULT_FUNDING_ORDER = (BUDGET_FUNDING, COMMERCIAL_FUNDING)


class AdmissionState:
    """Admitted lists and admitted identifiers of one simulation run.

    Args:
        capacities: Seats per offering; offerings missing here can not admit anyone
        observer: Optional callback notified about every decision
    """

    def __init__(
        self,
        capacities: dict[ProgramOffering, int],
        observer: Optional[Observer] = None,
    ):
        self.capacities = dict(capacities)
        self.admission_lists: AdmissionResult = {o: [] for o in self.capacities}
        self.admitted: set[str] = set()
        self.observer = observer

    def seats_taken(self, offering: ProgramOffering) -> int:
        return len(self.admission_lists.get(offering, []))

    def has_room(self, offering: ProgramOffering) -> bool:
        return self.seats_taken(offering) < self.capacities.get(offering, 0)

    def is_admitted(self, snils: str) -> bool:
        return normalize_snils(snils) in self.admitted

    def admit(self, applicant_id: str, offering: ProgramOffering) -> None:
        self.admission_lists[offering].append(applicant_id)
        self.admitted.add(normalize_snils(applicant_id))
        self.notify(applicant_id, offering, True)

    def reject(self, applicant_id: str, offering: ProgramOffering, reason: str) -> None:
        self.notify(applicant_id, offering, False, reason)

    def notify(
        self, applicant_id: str, offering: ProgramOffering, admitted: bool, reason: str = ""
    ) -> None:
        if self.observer is None:
            return
        self.observer(
            AdmissionDecision(
                applicant_id=applicant_id,
                offering=offering,
                admitted=admitted,
                seats_taken=self.seats_taken(offering),
                capacity=self.capacities.get(offering, 0),
                reason=reason,
            )
        )

    def result(self) -> AdmissionResult:
        return {o: list(ids) for o, ids in self.admission_lists.items()}


class CarryOver:
    """Applicants admitted in earlier funding rounds.

    They are excluded from every offering of the next round, except the target
    applicant, who stays eligible for the programs they already hold a seat in.

    Args:
        previous: Results of the earlier rounds
        target_snils: Target applicant as given
    """

    def __init__(self, previous: Iterable[AdmissionResult] = (), target_snils: str = ""):
        self.target = normalize_snils(target_snils)
        self.programs: dict[str, set[str]] = {}
        for result in previous:
            self.add(result)

    def add(self, result: AdmissionResult) -> None:
        for offering, admitted in result.items():
            for applicant_id in admitted:
                self.programs.setdefault(normalize_snils(applicant_id), set()).add(
                    offering.program_name
                )

    def excludes(self, snils: str, offering: ProgramOffering) -> bool:
        snils = normalize_snils(snils)
        programs = self.programs.get(snils)
        if programs is None:
            return False
        if snils == self.target and offering.program_name in programs:
            return False
        return True


def trace_applicant(snils: str, log: Optional[logging.Logger] = None) -> Observer:
    """Observer that logs every decision about one applicant."""
    target = normalize_snils(snils)
    log = log or logger

    def observe(decision: AdmissionDecision) -> None:
        if normalize_snils(decision.applicant_id) != target:
            return
        if decision.admitted:
            log.info(
                "Admitted %s to %s (%d/%d)",
                decision.applicant_id,
                decision.offering,
                decision.seats_taken,
                decision.capacity,
            )
        else:
            log.info(
                "Rejected %s from %s (%d/%d): %s",
                decision.applicant_id,
                decision.offering,
                decision.seats_taken,
                decision.capacity,
                decision.reason,
            )

    return observe


def simulate_priority_based_admission(
    popularities: list[ProgramPopularity],
    queue: list[ApplicantPreferences],
    *,
    carry_over: Optional[CarryOver] = None,
    observer: Optional[Observer] = None,
) -> AdmissionState:
    """
    Основной алгоритм: абитуриенты идут в порядке очереди, каждый занимает место
    на первом по приоритету направлении, где ещё есть места. Зачисленный один раз
    больше не рассматривается.

    Args:
        popularities: Offerings with their capacities
        queue: Applicants in admission order
        carry_over: Exclusions from earlier funding rounds
        observer: Optional decision callback

    Returns:
        Final state with the admitted lists
    """
    state = AdmissionState(capacity_map(popularities), observer)

    for applicant in queue:
        snils = applicant.snils
        if state.is_admitted(snils):
            continue

        for application in applicant.applications:
            offering = application.offering
            if offering not in state.capacities:
                logger.warning("No capacity known for %s, skipping application", offering)
                continue

            if carry_over is not None and carry_over.excludes(snils, offering):
                state.reject(application.applicant_id, offering, "admitted in earlier round")
                continue

            if state.has_room(offering):
                state.admit(application.applicant_id, offering)
                break

            state.reject(application.applicant_id, offering, "no places left")

    return state


def fill_remaining_seats(
    state: AdmissionState,
    program_records: ProgramRecords,
    order: list[ProgramOffering],
    *,
    carry_over: Optional[CarryOver] = None,
) -> AdmissionState:
    """Fill seats left free by eager applicants with non-eager records in rank order.

    Anyone already admitted in this run or excluded by ``carry_over`` is skipped.
    """
    groups = group_by_offering(program_records)

    for offering in order:
        if not state.has_room(offering):
            continue
        candidates = sorted(
            (r for r in groups.get(offering, []) if not r.is_eager), key=lambda r: r.rank
        )
        for record in candidates:
            if not state.has_room(offering):
                break
            if state.is_admitted(record.applicant_id):
                continue
            if carry_over is not None and carry_over.excludes(record.applicant_id, offering):
                state.reject(record.applicant_id, offering, "admitted in earlier round")
                continue
            state.admit(record.applicant_id, offering)

    return state


def _funding_order(fundings: list[str], preferred: Iterable[str]) -> list[str]:
    preferred = list(preferred)
    first = [f for f in preferred if f in fundings]
    return first + [f for f in fundings if f not in first]


def _admit_in_rank_order(
    state: AdmissionState,
    offering: ProgramOffering,
    records: list[ApplicationRecord],
    excluded: set[str],
) -> None:
    for record in records:
        if not state.has_room(offering):
            return
        snils = record.normalized_id
        if snils in excluded:
            state.reject(record.applicant_id, offering, "admitted to another funding")
            continue
        state.admit(record.applicant_id, offering)
        excluded.add(snils)


def simulate_funding_priority_admission(
    program_records: ProgramRecords,
    popularities: list[ProgramPopularity],
    *,
    funding_order: Iterable[str] = DEFAULT_FUNDING_ORDER,
    observer: Optional[Observer] = None,
) -> AdmissionState:
    """
    Вариант с приоритетом финансирования: внутри каждого направления сначала
    бюджетные места (по месту в списке), затем коммерческие. Уже зачисленные
    на это направление исключаются, исключение действует только внутри направления.
    Оставшиеся места заполняются заявлениями без согласия и оригинала.
    """
    state = AdmissionState(capacity_map(popularities), observer)
    groups = group_by_offering(program_records)

    fundings_by_program: dict[str, list[str]] = {}
    for popularity in popularities:
        fundings_by_program.setdefault(popularity.program_name, []).append(
            popularity.funding_source
        )

    for program_name, fundings in fundings_by_program.items():
        excluded: set[str] = set()
        for funding in _funding_order(fundings, funding_order):
            offering = ProgramOffering(program_name, funding)
            records = sorted(groups.get(offering, []), key=lambda r: r.rank)
            eager = [r for r in records if r.is_eager]
            rest = [r for r in records if not r.is_eager]
            _admit_in_rank_order(state, offering, eager, excluded)
            _admit_in_rank_order(state, offering, rest, excluded)

    return state
