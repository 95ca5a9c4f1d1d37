"""
Command line entry point.

    python -m schedule_health current.xer [--baseline base.xer] [--json out.json] [--csv-dir out/]
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import pandas as pd

from schedule_health.analysis.chart_engine import build_chart_data
from schedule_health.analysis.dcma_engine import DcmaAnalyzer
from schedule_health.analysis.reporting import (
    build_report,
    metrics_to_frame,
    report_to_json,
    write_csv_tables,
)
from schedule_health.analysis.task_status import StatusPolicy
from schedule_health.analysis.variance_engine import compare, look_ahead, variance_summary
from schedule_health.config.settings import settings
from schedule_health.narrative.client import NarrativeClient, NarrativeError
from schedule_health.narrative.prompt import build_narrative_prompt, build_project_summary
from schedule_health.p6.loader import read_schedule_file
from schedule_health.p6.xer_reader import FormatError
from schedule_health.utils.logger import configure_logging
from schedule_health.validation.schedule_validator import validate_upload

logger = logging.getLogger("schedule_health.cli")


def _parse_date(value: str) -> pd.Timestamp:
    ts = pd.to_datetime(value, errors="coerce")
    if pd.isna(ts):
        raise argparse.ArgumentTypeError(f"invalid date '{value}', expected YYYY-MM-DD")
    return pd.Timestamp(ts)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="schedule-health",
        description="DCMA 14-point health check for Primavera P6 schedules",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("current", help="Current schedule (.xer or .xml)")
    parser.add_argument("--baseline", help="Baseline schedule for CPLI/BEI, comparison and variance")
    parser.add_argument("--data-date", type=_parse_date, help="Override the schedule data date (YYYY-MM-DD)")
    parser.add_argument(
        "--status-policy",
        choices=[p.value for p in StatusPolicy],
        default=StatusPolicy.ACTUAL.value,
        help="How task completion is decided",
    )
    parser.add_argument("--lookahead", type=int, default=settings.LOOKAHEAD_DAYS, help="Look-ahead window in days")
    parser.add_argument("--json", dest="json_out", help="Write the full report as JSON to this path ('-' for stdout)")
    parser.add_argument("--csv-dir", help="Write flat CSV tables into this directory")
    parser.add_argument("--narrative", action="store_true", help="Request a narrative summary from the text service")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    return parser


def _load(path_str: str):
    path = Path(path_str)
    issues = validate_upload(path.name, path.stat().st_size)
    if issues:
        raise FormatError("; ".join(i["Description"] for i in issues))
    return read_schedule_file(path)


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging(level=args.log_level)

    try:
        current = _load(args.current)
        baseline = _load(args.baseline) if args.baseline else None
    except FileNotFoundError as exc:
        logger.error("Schedule file not found: %s", exc.filename)
        return 1
    except FormatError as exc:
        logger.error("Could not read schedule: %s", exc)
        return 2

    policy = StatusPolicy(args.status_policy)
    analyzer = DcmaAnalyzer(current, baseline, data_date=args.data_date, policy=policy)
    metrics = analyzer.analyze()
    charts = build_chart_data(current.tasks, as_of=analyzer.data_date, policy=policy)
    lookahead = look_ahead(current, baseline, window_days=args.lookahead, anchor=args.data_date)

    differences = variance = None
    if baseline is not None:
        differences = compare(current, baseline)
        variance = variance_summary(current, baseline)

    narrative = None
    if args.narrative:
        client = NarrativeClient.from_settings(settings)
        prompt = build_narrative_prompt(
            build_project_summary(current, variance, as_of=analyzer.data_date)
        )
        try:
            narrative = client.send_message([{"role": "user", "content": prompt}])
        except NarrativeError as exc:
            logger.error("Narrative unavailable: %s", exc)

    report = build_report(
        current,
        metrics,
        charts=charts,
        differences=differences,
        variance=variance,
        lookahead=lookahead,
        narrative=narrative,
    )

    if args.json_out == "-":
        print(report_to_json(report))
    elif args.json_out:
        Path(args.json_out).write_text(report_to_json(report), encoding="utf-8")
        logger.info("Wrote %s", args.json_out)

    if args.csv_dir:
        for path in write_csv_tables(args.csv_dir, metrics, differences, lookahead):
            logger.info("Wrote %s", path)

    if not args.json_out:
        table = metrics_to_frame(metrics)[["Check", "Value", "Threshold", "Status"]]
        print(table.to_string(index=False))

    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
