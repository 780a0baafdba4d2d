"""Analyzer configuration stored in a TOML file."""

import tomllib
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from models import BUDGET_FUNDING, COMMERCIAL_FUNDING, AllocationPolicy, PopularityMode


class ConfigError(ValueError):
    """Configuration file is unreadable or contains invalid values."""


class DataSourceMode(str, Enum):
    LOCAL = "local"
    INTERNET = "internet"
    BOTH = "both"


DEFAULT_CONFIG_TEMPLATE = f"""\
# Admission analyzer configuration

# SNILS or personal code of the applicant to analyze
target_snils = ""

# Programs reported in the chance analysis; remove to report all programs
programs_of_interest = ["ОП СПО Лечебное дело", "ОП СПО Фармация"]

# Funding rounds, simulated in this order
target_funding_types = [
    "{BUDGET_FUNDING}",
    # "{COMMERCIAL_FUNDING}",
]

# Where admission lists come from: "local", "internet" or "both"
data_source_mode = "local"
data_directory = "data-source"
internet_urls = []
output_directory = "output"

# Parsed records are cached here; delete the file to parse the sources again
# cache_file = "applicants.json"

# "unified", "funding_priority" or "funding_rounds"
allocation_policy = "funding_rounds"

# "priority" or "applications_per_place"
popularity_mode = "priority"

# Only bold paragraph headers starting with this prefix are treated as programs
program_name_prefix = "ОП СПО"

# Raise scores of the first N places of every list to their best score
# privileged_rank_limit = 0

request_timeout = 30
request_retries = 3
"""


@dataclass
class Config:
    """Settings of one analyzer run.

    Attributes:
        target_snils: Applicant to analyze
        programs_of_interest: Programs reported in the chance analysis, None for all
        target_funding_types: Funding types analyzed, in round order
        data_source_mode: Local files, internet pages or both
        data_directory: Directory with saved HTML pages
        internet_urls: Admission list pages to fetch
        output_directory: Directory for reports
        cache_file: JSON cache of parsed records
        allocation_policy: Simulation variant
        popularity_mode: Ranking formulation of the programs
        program_name_prefix: Prefix of program headers on the pages
        privileged_rank_limit: Privileged score adjustment for the first N places
        request_timeout: HTTP timeout in seconds
        request_retries: HTTP attempts per page
    """

    target_snils: str = ""
    programs_of_interest: Optional[list[str]] = None
    target_funding_types: list[str] = field(default_factory=lambda: [BUDGET_FUNDING])
    data_source_mode: DataSourceMode = DataSourceMode.LOCAL
    data_directory: Optional[str] = "data-source"
    internet_urls: list[str] = field(default_factory=list)
    output_directory: Optional[str] = "output"
    cache_file: Optional[str] = None
    allocation_policy: AllocationPolicy = AllocationPolicy.FUNDING_ROUNDS
    popularity_mode: PopularityMode = PopularityMode.PRIORITY
    program_name_prefix: str = "ОП СПО"
    privileged_rank_limit: Optional[int] = None
    request_timeout: int = 30
    request_retries: int = 3

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        """Build a config from parsed TOML; unknown keys are ignored.

        Raises:
            ConfigError: If an enum, numeric or list value is invalid
        """
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        try:
            if "data_source_mode" in known:
                known["data_source_mode"] = DataSourceMode(known["data_source_mode"])
            if "allocation_policy" in known:
                known["allocation_policy"] = AllocationPolicy(known["allocation_policy"])
            if "popularity_mode" in known:
                known["popularity_mode"] = PopularityMode(known["popularity_mode"])
        except ValueError as e:
            raise ConfigError(str(e)) from e

        for key in ("privileged_rank_limit", "request_timeout", "request_retries"):
            value = known.get(key)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ConfigError(f"{key} must be a non-negative integer, got {value!r}")

        for key in ("programs_of_interest", "target_funding_types", "internet_urls"):
            value = known.get(key)
            if value is None:
                continue
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                raise ConfigError(f"{key} must be a list of strings, got {value!r}")

        return cls(**known)

    @classmethod
    def load_from_file(cls, file_path: str) -> "Config":
        try:
            with open(file_path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"{file_path}: {e}") from e
        return cls.from_dict(data)


def write_default_config(file_path: str) -> None:
    Path(file_path).write_text(DEFAULT_CONFIG_TEMPLATE, encoding="utf-8")
