import pytest

from models import BUDGET_FUNDING, ApplicationRecord


def record(
    snils,
    rank,
    priority=1,
    score="4,0",
    *,
    program="X",
    funding=BUDGET_FUNDING,
    places=2,
    consent=True,
    document=False,
):
    return ApplicationRecord(
        rank=rank,
        applicant_id=snils,
        priority=priority,
        consent=consent,
        has_original_document=document,
        score_text=score,
        program_name=program,
        funding_source=funding,
        study_form="Очная",
        available_places=places,
    )


@pytest.fixture
def make_record():
    return record
