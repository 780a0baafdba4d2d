"""Web parser utilities for scraping admission list pages."""

import logging
import re
import time
from pathlib import Path
from typing import Optional

import requests
from bs4 import BeautifulSoup, NavigableString, Tag

from models import ApplicationRecord, ProgramInfo

logger = logging.getLogger(__name__)

TABLE_HEADERS = {
    "snils": "снилс",
    "priority": "приоритет",
    "consent": "согласие",
    "document": "оригинал",
    "score": "средний балл",
    "subjects": "предмет",
    "psychological_test": "психолог",
}

# Column layout of the published tables when the header does not say otherwise
DEFAULT_COLUMNS = {
    "rank": 0,
    "snils": 2,
    "priority": 3,
    "consent": 4,
    "document": 5,
    "score": 6,
    "subjects": 7,
    "psychological_test": 8,
}
MIN_CELLS = 8

PROGRAM_LABELS = {
    "funding_source": "источник финансирования",
    "study_form": "форма обучения",
    "available_places": "количество мест",
}

YES_MARK = "да"
SNILS_PREFIX = "СНИЛС:"
SNILS_RE = re.compile(r"\b\d{3}-\d{3}-\d{3}[ -]?\d{2}\b")
UNKNOWN = "Unknown"

USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/127.0 Safari/537.36"
)


def normalize_header(text: str) -> str:
    """Normalize table header text for consistent matching.

    Args:
        text: Raw header text from HTML

    Returns:
        Normalized header text
    """
    t = (text or "").lower()
    t = t.replace("\n", " ").replace("\r", " ").replace("\t", " ")
    t = re.sub(r"\(.*?\)", "", t)
    t = re.sub(r"\s+", " ", t).strip()
    return t


def build_header_index(table: Tag) -> dict[str, int]:
    """Build mapping from column types to indices.

    Columns not recognized in the header keep their default position.

    Args:
        table: HTML table element

    Returns:
        Dictionary mapping column keys to column indices
    """
    idx = dict(DEFAULT_COLUMNS)
    thead = table.find("thead")
    if not thead:
        return idx

    ths = thead.find_all("th")
    normalized = [normalize_header(th.get_text(" ", strip=True)) for th in ths]
    for key, needle in TABLE_HEADERS.items():
        for i, h in enumerate(normalized):
            if needle in h:
                idx[key] = i
                break
    return idx


def extract_int(cell_text: Optional[str], default: int = 0) -> int:
    """Extract integer value from cell text.

    Args:
        cell_text: Text content of table cell
        default: Value returned when no integer is found

    Returns:
        Integer value or default if not found/parseable
    """
    cell_text = (cell_text or "").strip().replace("\xa0", " ")
    m = re.search(r"-?\d+", cell_text)
    if m:
        try:
            return int(m.group(0))
        except ValueError:
            return default
    return default


def extract_snils(cell: Tag) -> str:
    """Extract applicant SNILS or personal code from a table cell.

    The cell may hold a "СНИЛС: ..." line, a bare identifier, or an identifier
    followed by other text.
    """
    lines = [line.strip() for line in cell.get_text("\n").splitlines() if line.strip()]

    for line in lines:
        if line.startswith(SNILS_PREFIX):
            return line[len(SNILS_PREFIX):].strip()

    for line in lines:
        match = SNILS_RE.search(line)
        if match:
            return match.group(0)

    for line in lines:
        if len(line) <= 3:
            continue
        first = line.split(" ", 1)[0]
        if " " in line:
            if len(first) > 5:
                return first
        elif len(line) > 5:
            return line

    return lines[0] if lines else UNKNOWN


def is_yes(cell_text: Optional[str]) -> bool:
    return YES_MARK in (cell_text or "").lower()


def _cell_text(cells: list[Tag], header_idx: dict[str, int], key: str) -> Optional[str]:
    """Extract text content from table cell if column exists."""
    i = header_idx.get(key)
    if i is not None and i < len(cells):
        return cells[i].get_text(" ", strip=True)
    return None


def extract_program_info(block: Tag, program_name: str) -> ProgramInfo:
    """Read funding source, study form and seats from a program header block.

    Values follow their labels in italics, e.g.
    ``Источник финансирования: <i>Бюджетное финансирование</i>``.
    """
    values: dict[str, str] = {}
    for italic in block.find_all("i"):
        label = italic.previous_sibling
        if not isinstance(label, NavigableString):
            continue
        label_text = normalize_header(str(label))
        for key, needle in PROGRAM_LABELS.items():
            if key not in values and needle in label_text:
                values[key] = italic.get_text(" ", strip=True)

    places_text = values.get("available_places", "")
    places = int(places_text) if places_text.isdigit() else 0

    return ProgramInfo(
        name=program_name,
        funding_source=values.get("funding_source") or UNKNOWN,
        study_form=values.get("study_form") or UNKNOWN,
        available_places=places,
    )


def _process_table_row(
    cells: list[Tag], header_idx: dict[str, int], program: ProgramInfo
) -> Optional[ApplicationRecord]:
    """Process a single table row to extract one application."""
    if len(cells) < MIN_CELLS:
        return None

    return ApplicationRecord(
        rank=extract_int(_cell_text(cells, header_idx, "rank")),
        applicant_id=extract_snils(cells[header_idx["snils"]]),
        priority=extract_int(_cell_text(cells, header_idx, "priority")),
        consent=is_yes(_cell_text(cells, header_idx, "consent")),
        has_original_document=is_yes(_cell_text(cells, header_idx, "document")),
        score_text=_cell_text(cells, header_idx, "score") or "",
        program_name=program.name,
        funding_source=program.funding_source,
        study_form=program.study_form,
        available_places=program.available_places,
        subject_scores=_cell_text(cells, header_idx, "subjects") or "",
        psychological_test=_cell_text(cells, header_idx, "psychological_test") or "-",
    )


def extract_records(table: Tag, program: ProgramInfo) -> list[ApplicationRecord]:
    header_idx = build_header_index(table)
    records: list[ApplicationRecord] = []
    for tr in table.select("tbody tr.srt"):
        record = _process_table_row(tr.find_all("td"), header_idx, program)
        if record:
            records.append(record)
    return records


def _is_program_header(tag: Tag, prefix: str) -> bool:
    return (
        tag.name == "strong"
        and tag.parent is not None
        and tag.parent.name == "p"
        and tag.get_text(strip=True).startswith(prefix)
    )


def _is_list_table(tag: Tag) -> bool:
    return tag.name == "table" and "table-bordered" in (tag.get("class") or [])


def parse_html_content(
    html: str, program_prefix: str = "ОП СПО"
) -> list[tuple[ProgramInfo, list[ApplicationRecord]]]:
    """Extract every program with its ranked list from a page.

    Each program header is paired with the first list table that follows it
    before the next program header. Programs without a table or rows are skipped.

    Args:
        html: Page content
        program_prefix: Text every program header starts with

    Returns:
        List of (program info, records) pairs in page order
    """
    soup = BeautifulSoup(html, "html.parser")
    elements = soup.find_all(
        lambda tag: _is_program_header(tag, program_prefix) or _is_list_table(tag)
    )

    programs: list[tuple[ProgramInfo, list[ApplicationRecord]]] = []
    current: Optional[ProgramInfo] = None
    for element in elements:
        if element.name == "strong":
            name = element.get_text(" ", strip=True)
            block = element.parent.parent or element.parent
            current = extract_program_info(block, name)
            continue
        if current is None:
            continue
        records = extract_records(element, current)
        if records:
            programs.append((current, records))
        current = None

    return programs


def fetch_html(url: str, *, retries: int = 3, timeout: int = 30) -> str:
    """Fetch HTML content from URL with retry logic.

    Args:
        url: URL to fetch
        retries: Number of retry attempts (default: 3)
        timeout: Request timeout in seconds (default: 30)

    Returns:
        HTML content as string

    Raises:
        RuntimeError: If all retry attempts fail
    """
    last_err = None
    for attempt in range(1, retries + 1):
        try:
            resp = requests.get(url, headers={"User-Agent": USER_AGENT}, timeout=timeout)
            resp.raise_for_status()
            return resp.text
        except requests.RequestException as e:
            last_err = e
            logger.warning("Attempt %d/%d for %s failed: %s", attempt, retries, url, e)
            if attempt < retries:
                time.sleep(1.0 * attempt)
    raise RuntimeError(f"Failed to fetch {url}: {last_err}")


def scrape_file(
    file_path: str, program_prefix: str = "ОП СПО"
) -> list[tuple[ProgramInfo, list[ApplicationRecord]]]:
    """Parse a saved admission list page.

    Raises:
        RuntimeError: If the file can not be read
    """
    try:
        html = Path(file_path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise RuntimeError(f"Failed to read file {file_path}: {e}") from e

    programs = parse_html_content(html, program_prefix)
    if not programs:
        logger.warning("No programs found in %s", file_path)
    return programs


def scrape_url(
    url: str,
    program_prefix: str = "ОП СПО",
    *,
    retries: int = 3,
    timeout: int = 30,
) -> list[tuple[ProgramInfo, list[ApplicationRecord]]]:
    """Fetch and parse an admission list page.

    Only the ``div.data-wrap`` section is parsed when the page has one.
    """
    html = fetch_html(url, retries=retries, timeout=timeout)
    soup = BeautifulSoup(html, "html.parser")
    data_wrap = soup.select_one("div.data-wrap")
    if data_wrap is not None:
        html = str(data_wrap)
    else:
        logger.info("No data-wrap section on %s, parsing entire document", url)

    programs = parse_html_content(html, program_prefix)
    if not programs:
        logger.warning("No programs found on %s", url)
    return programs
