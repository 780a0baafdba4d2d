"""Utilities for JSON serialization of parsed admission lists."""

import json
import os
from dataclasses import asdict, fields

from models import ApplicationRecord, ProgramRecords

RECORD_FIELDS = {f.name for f in fields(ApplicationRecord)}


def save_to_json(program_records: ProgramRecords, filename: str = "applicants.json"):
    """Save parsed records to JSON file.

    Args:
        program_records: (program name, records) pairs
        filename: Output filename (default: applicants.json)
    """
    data = [
        {"program_name": name, "records": [asdict(r) for r in records]}
        for name, records in program_records
    ]
    with open(filename, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)


def load_from_json(filename: str = "applicants.json") -> ProgramRecords:
    """Load parsed records from JSON file.

    Args:
        filename: Input filename (default: applicants.json)

    Returns:
        (program name, records) pairs; empty if the file does not exist
    """
    if not os.path.exists(filename):
        return []

    with open(filename, "r", encoding="utf-8") as f:
        raw = json.load(f)

    program_records: ProgramRecords = []
    for entry in raw:
        records = [
            ApplicationRecord(**{k: v for k, v in rec.items() if k in RECORD_FIELDS})
            for rec in entry.get("records", [])
        ]
        program_records.append((entry["program_name"], records))
    return program_records
