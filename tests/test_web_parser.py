"""Tests for admission list page parsing."""

import pytest
import requests
from bs4 import BeautifulSoup

from models import BUDGET_FUNDING, COMMERCIAL_FUNDING
from utils import web_parser
from utils.web_parser import (
    build_header_index,
    extract_int,
    extract_snils,
    normalize_header,
    parse_html_content,
    scrape_file,
    scrape_url,
)

PAGE = """
<html><body>
<div class="data-wrap">
  <div>
    <p><strong>ОП СПО Лечебное дело</strong></p>
    <p>Источник финансирования: <i>Бюджетное финансирование</i><br>
    Форма обучения: <i>Очная</i><br>
    Количество мест: <i>2</i></p>
  </div>
  <table class="table table-bordered">
    <thead><tr>
      <th>№</th><th>ФИО</th><th>СНИЛС / код</th><th>Приоритет</th>
      <th>Согласие на зачисление</th><th>Оригинал документа</th>
      <th>Средний балл</th><th>Оценки по предметам</th><th>Психологическое тестирование</th>
    </tr></thead>
    <tbody>
      <tr class="srt"><td>1</td><td>Иванов</td><td>123-456-789 00</td><td>1</td>
        <td>Да</td><td>Нет</td><td>4,8000</td><td>5 5 4</td><td>Прошёл</td></tr>
      <tr class="srt"><td>2</td><td>Петров</td><td>Петров П.П.<br>СНИЛС: 111-222-333 44</td>
        <td>2</td><td>Нет</td><td>Да</td><td>4,5000</td><td>5 4 4</td></tr>
      <tr class="srt"><td>3</td><td>short row</td></tr>
      <tr><td>4</td><td>Not a list row</td><td>999-999</td><td>1</td>
        <td>Да</td><td>Да</td><td>5,0</td><td>5 5 5</td></tr>
    </tbody>
  </table>

  <div>
    <p><strong>Примечание</strong></p>
  </div>

  <div>
    <p><strong>ОП СПО Фармация</strong></p>
    <p>Источник финансирования: <i>Коммерческое финансирование</i><br>
    Количество мест: <i>10</i></p>
  </div>
  <div>
    <p><strong>ОП СПО Без списка</strong></p>
    <p>Источник финансирования: <i>Бюджетное финансирование</i></p>
  </div>
  <table class="table-bordered">
    <tbody>
      <tr class="srt"><td>1</td><td>Сидоров</td><td>С25-00946</td><td>3</td>
        <td>нет</td><td>нет</td><td>—</td><td>-</td></tr>
    </tbody>
  </table>
</div>
</body></html>
"""

OUTSIDE_DATA_WRAP = """
<div><p><strong>ОП СПО Снаружи</strong></p></div>
<table class="table-bordered"><tbody>
  <tr class="srt"><td>1</td><td>X</td><td>555-555-555 55</td><td>1</td>
    <td>Да</td><td>Да</td><td>5,0</td><td>5</td></tr>
</tbody></table>
"""


def test_parses_programs_with_their_tables():
    programs = parse_html_content(PAGE)

    assert [p.name for p, _ in programs] == ["ОП СПО Лечебное дело", "ОП СПО Без списка"]

    info, records = programs[0]
    assert info.funding_source == BUDGET_FUNDING
    assert info.study_form == "Очная"
    assert info.available_places == 2
    assert [r.applicant_id for r in records] == ["123-456-789 00", "111-222-333 44"]


def test_record_fields():
    _, records = parse_html_content(PAGE)[0]
    first, second = records

    assert first.rank == 1
    assert first.priority == 1
    assert first.consent and not first.has_original_document
    assert first.numeric_score == 4.8
    assert first.subject_scores == "5 5 4"
    assert first.psychological_test == "Прошёл"
    assert first.program_name == "ОП СПО Лечебное дело"
    assert first.available_places == 2

    assert second.priority == 2
    assert not second.consent and second.has_original_document
    assert second.psychological_test == "-"


def test_program_without_table_takes_nothing_from_the_next():
    programs = dict((p.name, (p, r)) for p, r in parse_html_content(PAGE))

    assert "ОП СПО Фармация" not in programs
    info, records = programs["ОП СПО Без списка"]
    assert info.available_places == 0
    assert info.study_form == "Unknown"
    assert records[0].applicant_id == "С25-00946"
    assert records[0].numeric_score is None
    assert not records[0].is_eager


def test_program_prefix_is_configurable():
    assert parse_html_content(PAGE, program_prefix="ОП ВО") == []


def test_header_index_falls_back_to_default_layout():
    soup = BeautifulSoup("<table><tbody></tbody></table>", "html.parser")

    idx = build_header_index(soup.table)

    assert idx["snils"] == 2
    assert idx["score"] == 6


def test_header_index_follows_header_order():
    soup = BeautifulSoup(
        "<table><thead><tr><th>№</th><th>Средний балл (аттестат)</th>"
        "<th>СНИЛС</th></tr></thead></table>",
        "html.parser",
    )

    idx = build_header_index(soup.table)

    assert idx["score"] == 1
    assert idx["snils"] == 2


def test_extract_snils_variants():
    def cell(html):
        return BeautifulSoup(f"<td>{html}</td>", "html.parser").td

    assert extract_snils(cell("123-456-789 00")) == "123-456-789 00"
    assert extract_snils(cell("Иванов<br>СНИЛС: 111-222")) == "111-222"
    assert extract_snils(cell("С25-00946 (заочно)")) == "С25-00946"
    assert extract_snils(cell("")) == "Unknown"


def test_helpers():
    assert normalize_header("Средний\nбалл (аттестат)") == "средний балл"
    assert extract_int(" 12 ") == 12
    assert extract_int("—") == 0
    assert extract_int(None, default=-1) == -1


def test_scrape_file(tmp_path):
    path = tmp_path / "list.html"
    path.write_text(PAGE, encoding="utf-8")

    assert len(scrape_file(str(path))) == 2


def test_scrape_file_missing(tmp_path):
    with pytest.raises(RuntimeError):
        scrape_file(str(tmp_path / "missing.html"))


def test_scrape_url_uses_data_wrap(monkeypatch):
    page = PAGE.replace("ОП СПО Без списка", "ОП СПО Вне блока", 1)
    page = page.replace("</div>\n</body>", "</div>\n" + OUTSIDE_DATA_WRAP + "</body>")
    monkeypatch.setattr(web_parser, "fetch_html", lambda url, **kwargs: page)

    programs = scrape_url("https://example.com/list")

    assert [p.name for p, _ in programs] == ["ОП СПО Лечебное дело", "ОП СПО Вне блока"]


def test_fetch_html_gives_up_after_retries(monkeypatch):
    calls = []

    def failing_get(url, **kwargs):
        calls.append(url)
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(web_parser.requests, "get", failing_get)
    monkeypatch.setattr(web_parser.time, "sleep", lambda seconds: None)

    with pytest.raises(RuntimeError):
        web_parser.fetch_html("https://example.com", retries=3)
    assert len(calls) == 3


def test_commercial_funding_parsed():
    page = PAGE.replace("Бюджетное финансирование", "Коммерческое финансирование", 1)

    info, _ = parse_html_content(page)[0]

    assert info.funding_source == COMMERCIAL_FUNDING
