from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from ..excel.reader import UnreadableFileError, read_raw_grid
from ..logging.init import log_summary, set_debug, setup_logging
from ..models.config_models import ReconcileConfig
from ..models.processing_result import ProcessingResult, RunOutcome
from ..services.aggregator import build_class_report
from ..services.column_classifier import guess_mapping, preview_rows
from ..services.orchestrator import ProcessingError, process_all, process_files, scan_source_files
from ..services.summary import render_summary_line
from ..services.value_classifier import ValueClassifier

"""CLI entrypoint.

Flow: load .env -> load config -> collect input files -> process -> optional
JSON export / per-student report -> SUMMARY line -> exit code.
"""

__all__ = [
    "EXIT_OK",
    "EXIT_FATAL",
    "EXIT_FILES_FAILED",
    "EXIT_NO_DATA",
    "CONFIG_ENV_VAR",
    "main",
]

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_FILES_FAILED = 2
EXIT_NO_DATA = 3

CONFIG_ENV_VAR = "GRADEBOOK_MERGE_CONFIG"


def _load_env_file(path: Path) -> None:
    """Load .env without overriding variables already set in the process."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=False)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="gradebook-merge",
        description="Merge loosely structured grade book spreadsheets into one student record set",
    )
    p.add_argument("paths", nargs="*", type=Path, help="Spreadsheet files or directories (default: source_directory)")
    p.add_argument("--config", type=Path, default=None, help=f"Config YAML (default: {DEFAULT_CONFIG_PATH})")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect-data", action="store_true", help="Print guessed column mappings and preview rows then exit")
    p.add_argument("--output", type=Path, default=None, help="Write students and class report as JSON")
    p.add_argument("--report", action="store_true", help="Log average and trend per student")
    return p.parse_args(argv)


def _resolve_config(args: argparse.Namespace) -> ReconcileConfig:
    if args.config is not None:
        return load_config(args.config, required=True)
    env_path = os.getenv(CONFIG_ENV_VAR)
    if env_path:
        return load_config(Path(env_path), required=True)
    return load_config(DEFAULT_CONFIG_PATH)


def _collect_paths(paths: list[Path], cfg: ReconcileConfig) -> list[Path]:
    """Expand directories (sorted scan); files are kept in the given order."""
    collected: list[Path] = []
    for p in paths:
        if p.is_dir():
            collected.extend(scan_source_files(p, cfg.file_suffixes))
        elif p.is_file():
            collected.append(p)
        else:
            raise ProcessingError(f"Input not found: {p}")
    return collected


def _inspect_data(paths: list[Path], cfg: ReconcileConfig) -> int:
    if not paths:
        print("inspect: no input files")
        return EXIT_OK
    for f in paths:
        print(f"FILE: {f.name}")
        try:
            grid = read_raw_grid(f)
        except UnreadableFileError as e:
            print(f"  read_error: {e}")
            continue
        mapping = cfg.mappings.get(f.name) or guess_mapping(grid, cfg)
        print(f"  rows={len(grid)} mapping={mapping.to_dict()}")
        for row in preview_rows(grid, mapping):
            print(f"    {json.dumps(row, ensure_ascii=False)}")
    return EXIT_OK


def _write_output(path: Path, result: ProcessingResult, cfg: ReconcileConfig) -> None:
    report = build_class_report(result.students, ValueClassifier(cfg.keywords), cfg.trend_threshold)
    payload = {
        "students": [s.to_dict(cfg.default_language) for s in result.students],
        "report": report.to_dict(),
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2, default=str), encoding="utf-8")


def _log_report(logger, result: ProcessingResult, cfg: ReconcileConfig) -> None:
    report = build_class_report(result.students, ValueClassifier(cfg.keywords), cfg.trend_threshold)
    if report.class_average is not None:
        logger.info(f"class average={report.class_average:.1f} grades={report.distribution.total}")
    for s in report.students:
        logger.info(
            f"student={s.full_name} average={s.average:.1f} grades={s.grade_count} "
            f"trend={s.trend.trend} diff={s.trend.diff:+.1f} "
            f"positive={s.positive_events} negative={s.negative_events}"
        )


def _exit_code(result: ProcessingResult) -> int:
    outcome = result.outcome
    if outcome is RunOutcome.NO_DATA:
        return EXIT_NO_DATA
    if outcome is RunOutcome.FILES_FAILED or result.failed_files > 0:
        return EXIT_FILES_FAILED
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # only read sys.argv when no list was passed ([] means "no arguments")
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)

    if args.debug:
        set_debug()
        logger.debug("debug mode enabled")

    _load_env_file(Path(".env"))

    try:
        cfg = _resolve_config(args)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    try:
        if args.paths:
            paths = _collect_paths(args.paths, cfg)
        elif args.inspect_data:
            if not cfg.source_directory:
                raise ProcessingError("no source_directory configured and no input paths given")
            paths = scan_source_files(Path(cfg.source_directory), cfg.file_suffixes)
        else:
            paths = None
    except ProcessingError as e:
        logger.error(f"input: {e}")
        return EXIT_FATAL

    if args.inspect_data:
        return _inspect_data(paths or [], cfg)

    try:
        result = process_files(paths, cfg) if paths is not None else process_all(cfg)
    except ProcessingError as e:
        logger.error(f"processing: {e}")
        return EXIT_FATAL

    if result.outcome is RunOutcome.NO_DATA:
        logger.warning("no student data found: check that each file has a student name column")
    elif result.outcome is RunOutcome.FILES_FAILED:
        logger.warning("no student data found: every readable file failed, check the files themselves")

    if args.report:
        _log_report(logger, result, cfg)

    if args.output is not None:
        try:
            _write_output(args.output, result, cfg)
        except OSError as e:
            logger.error(f"output: {e}")
            return EXIT_FATAL
        logger.info(f"wrote {args.output}")

    summary_line = render_summary_line(result)
    # log_summary adds the "SUMMARY " label itself
    log_summary(summary_line.removeprefix("SUMMARY "))

    return _exit_code(result)
