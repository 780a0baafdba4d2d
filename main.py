import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from allocation.analyzer import analyze, analyze_funding_rounds, filter_records_by_funding
from allocation.dedup import deduplicate_records, privileged_by_rank, raise_privileged_scores
from allocation.outcome import analyze_target_chances
from allocation.popularity import CapacityMismatchError
from allocation.simulator import trace_applicant
from config import Config, ConfigError, DataSourceMode, write_default_config
from models import (
    BUDGET_FUNDING,
    COMMERCIAL_FUNDING,
    AdmissionAnalysis,
    AllocationPolicy,
    ChanceAnalysis,
    ProgramRecords,
)
from utils.json_util import load_from_json, save_to_json
from utils.report_writer import clean_output_directory, safe_file_name, write_all_reports
from utils.web_parser import scrape_file, scrape_url

logger = logging.getLogger(__name__)

FUNDING_DIRS = {BUDGET_FUNDING: "budget", COMMERCIAL_FUNDING: "commercial"}


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="abitur-analyzer",
        description="Оценка шансов на зачисление по опубликованным конкурсным спискам",
    )
    p.add_argument("-c", "--config", default="config.toml", help="путь к файлу настроек")
    p.add_argument("--snils", default=None, help="СНИЛС или код абитуриента (вместо настроек)")
    p.add_argument(
        "--policy",
        choices=[policy.value for policy in AllocationPolicy],
        default=None,
        help="вариант симуляции зачисления",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="подробный журнал решений")
    return p.parse_args(argv)


def scrape_sources(config: Config) -> list:
    """Разбираем все источники; ошибка одного источника не останавливает остальные."""
    programs = []

    if config.data_source_mode in (DataSourceMode.LOCAL, DataSourceMode.BOTH):
        data_dir = Path(config.data_directory or "data-source")
        if not data_dir.is_dir():
            print(f"❌ Каталог с данными не найден: {data_dir}")
        else:
            for path in sorted(data_dir.glob("*.html")):
                print(f"📄 Обрабатываем: {path.name}")
                try:
                    programs += scrape_file(str(path), config.program_name_prefix)
                except RuntimeError as e:
                    print(f"   ❌ Ошибка обработки файла: {e}")

    if config.data_source_mode in (DataSourceMode.INTERNET, DataSourceMode.BOTH):
        for url in config.internet_urls:
            print(f"🌐 Загружаем: {url}")
            try:
                programs += scrape_url(
                    url,
                    config.program_name_prefix,
                    retries=config.request_retries,
                    timeout=config.request_timeout,
                )
            except RuntimeError as e:
                print(f"   ❌ Ошибка загрузки: {e}")

    return programs


def collect_program_records(config: Config) -> ProgramRecords:
    program_records: ProgramRecords = []
    for program, records in scrape_sources(config):
        print(f"   ✅ Найдено {len(records)} заявлений: {program.name} ({program.funding_source})")
        deduplicated = deduplicate_records(records)
        removed = len(records) - len(deduplicated)
        if removed > 0:
            print(f"   🔄 Удалено дубликатов СНИЛС: {removed}")
        program_records.append((program.name, deduplicated))
    return program_records


def load_program_records(config: Config) -> ProgramRecords:
    if config.cache_file and os.path.exists(config.cache_file):
        print("Загружаем данные из JSON...")
        return load_from_json(config.cache_file)

    print("Парсим страницы...")
    program_records = collect_program_records(config)
    if config.cache_file and program_records:
        save_to_json(program_records, config.cache_file)
    return program_records


def apply_privileged_scores(program_records: ProgramRecords, config: Config) -> ProgramRecords:
    if not config.privileged_rank_limit:
        return program_records
    is_privileged = privileged_by_rank(config.privileged_rank_limit)
    return [
        (name, raise_privileged_scores(records, is_privileged))
        for name, records in program_records
    ]


def run_analysis(
    program_records: ProgramRecords, config: Config, verbose: bool = False
) -> list[tuple[Optional[str], ProgramRecords, AdmissionAnalysis]]:
    """
    Возвращает список (подкаталог отчёта, записи, анализ).
    Для раунда финансирования подкаталог задаётся типом финансирования.
    """
    observer = trace_applicant(config.target_snils) if verbose else None
    policy = config.allocation_policy

    if policy is AllocationPolicy.FUNDING_ROUNDS:
        rounds = analyze_funding_rounds(
            program_records,
            config.target_snils,
            config.target_funding_types,
            popularity_mode=config.popularity_mode,
            observer=observer,
        )
        return [
            (
                FUNDING_DIRS.get(r.funding_source, safe_file_name(r.funding_source)),
                r.program_records,
                r.analysis,
            )
            for r in rounds
        ]

    records = filter_records_by_funding(program_records, config.target_funding_types)
    analysis = analyze(
        records,
        config.target_snils,
        policy=policy,
        popularity_mode=config.popularity_mode,
        observer=observer,
    )
    return [(None, records, analysis)]


def print_summary(title: str, analysis: AdmissionAnalysis, chance: ChanceAnalysis):
    print(f"\n📊 {title}")
    print("📈 Популярность направлений (от самых конкурентных):")
    for i, p in enumerate(analysis.program_popularities, start=1):
        print(
            f"   {i}. {p.offering} - средний приоритет лидеров {p.top_candidates_average_priority:.2f}, "
            f"{p.applications_per_place:.1f} заявл./место, средний балл {p.average_score:.2f}"
        )

    print("\n🎯 Результаты абитуриента:")
    if not analysis.target_applicant_found:
        print("   ❓ Абитуриент не найден в списках")
    for outcome in analysis.target_outcomes:
        position = f"место #{outcome.position}, " if outcome.position else ""
        print(
            f"   - {outcome.offering}: {position}баллы {outcome.target_score:.4f}, "
            f"проходной {outcome.cutoff_score:.4f} → {outcome.status.value}"
        )
    print(f"\n💡 Рекомендация: {chance.final_recommendation}")


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s - %(message)s",
    )

    if not os.path.exists(args.config):
        write_default_config(args.config)
        print(f"📝 Создан файл настроек по умолчанию: {args.config}")
        print(f"⚠️  Укажите target_snils в {args.config} и запустите программу снова.")
        return 0

    try:
        config = Config.load_from_file(args.config)
    except ConfigError as e:
        print(f"❌ Ошибка в файле настроек: {e}")
        return 2

    if args.snils:
        config.target_snils = args.snils
    if args.policy:
        config.allocation_policy = AllocationPolicy(args.policy)

    if not config.target_snils:
        print(f"❌ target_snils не задан. Укажите его в {args.config} или через --snils")
        return 2

    print(f"🔍 Анализ для СНИЛС: {config.target_snils}")
    print(f"💰 Финансирование: {', '.join(config.target_funding_types)}")
    print(f"⚙️  Вариант симуляции: {config.allocation_policy.value}")

    program_records = load_program_records(config)
    if not program_records:
        print("❌ Не найдено ни одного конкурсного списка")
        return 1
    print(f"Направлений в данных: {len(program_records)}")

    program_records = apply_privileged_scores(program_records, config)

    try:
        results = run_analysis(program_records, config, verbose=args.verbose)
    except CapacityMismatchError as e:
        print(f"❌ Ошибка в данных: {e}")
        return 1

    output_dir = config.output_directory or "output"
    for subdir, records, analysis in results:
        report_dir = os.path.join(output_dir, subdir) if subdir else output_dir
        os.makedirs(report_dir, exist_ok=True)
        removed = clean_output_directory(report_dir)
        if removed:
            logger.info("Removed previous reports in %s: %s", report_dir, ", ".join(removed))

        chance = analyze_target_chances(analysis, config.programs_of_interest)
        write_all_reports(analysis, chance, records, report_dir)
        print_summary(subdir.upper() if subdir else "ИТОГИ", analysis, chance)
        print(f"📂 Отчёты: {report_dir}")

    print("\n✅ Анализ завершён!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
