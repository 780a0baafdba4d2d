"""Per-applicant preference lists and the global admission queue."""

from models import ApplicantPreferences, ApplicationRecord, ProgramRecords


def build_preferences(program_records: ProgramRecords) -> list[ApplicantPreferences]:
    """
    Для каждого абитуриента -> список его заявлений с согласием или оригиналом,
    отсортированный по приоритету (1, 2, 3). Заявления без согласия и оригинала
    не учитываются вовсе.
    """
    grouped: dict[str, list[ApplicationRecord]] = {}
    for _, records in program_records:
        for record in records:
            if not record.is_eager:
                continue
            grouped.setdefault(record.normalized_id, []).append(record)

    prefs: list[ApplicantPreferences] = []
    for snils, applications in grouped.items():
        # сортировка устойчивая: при равном приоритете сохраняется порядок появления
        applications.sort(key=lambda r: r.priority)
        average_rank = sum(r.rank for r in applications) / len(applications)
        average_score = sum(
            r.numeric_score if r.numeric_score is not None else 0.0
            for r in applications
        ) / len(applications)
        prefs.append(
            ApplicantPreferences(
                snils=snils,
                applications=applications,
                average_rank=average_rank,
                average_score=average_score,
            )
        )
    return prefs


def admission_queue(prefs: list[ApplicantPreferences]) -> list[ApplicantPreferences]:
    """Очередь зачисления: баллы по убыванию, затем средняя позиция по возрастанию."""
    return sorted(prefs, key=lambda p: (-p.average_score, p.average_rank))
