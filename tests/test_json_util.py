"""Tests for the parsed records cache."""

import json

from utils.json_util import load_from_json, save_to_json


def test_save_and_load(tmp_path, make_record):
    filename = str(tmp_path / "applicants.json")
    program_records = [
        ("ОП СПО Фармация", [make_record("123-456-789 00", 1, score="4,5", program="ОП СПО Фармация")]),
    ]

    save_to_json(program_records, filename)
    loaded = load_from_json(filename)

    assert loaded == program_records


def test_cache_is_readable_json(tmp_path, make_record):
    filename = tmp_path / "applicants.json"
    save_to_json([("X", [make_record("A", 1)])], str(filename))

    data = json.loads(filename.read_text(encoding="utf-8"))

    assert data[0]["program_name"] == "X"
    assert data[0]["records"][0]["applicant_id"] == "A"


def test_missing_file_is_empty(tmp_path):
    assert load_from_json(str(tmp_path / "missing.json")) == []


def test_unknown_fields_ignored(tmp_path):
    filename = tmp_path / "applicants.json"
    filename.write_text(
        json.dumps(
            [
                {
                    "program_name": "X",
                    "records": [
                        {
                            "rank": 1,
                            "applicant_id": "A",
                            "priority": 1,
                            "consent": True,
                            "has_original_document": False,
                            "score_text": "4,0",
                            "program_name": "X",
                            "funding_source": "Бюджетное финансирование",
                            "legacy_field": "ignored",
                        }
                    ],
                }
            ]
        ),
        encoding="utf-8",
    )

    (name, records), = load_from_json(str(filename))

    assert name == "X"
    assert records[0].numeric_score == 4.0
