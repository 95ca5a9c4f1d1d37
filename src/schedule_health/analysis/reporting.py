# schedule_health/analysis/reporting.py

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from schedule_health.analysis.chart_engine import Series
from schedule_health.analysis.dcma_engine import Metric, summarize
from schedule_health.analysis.variance_engine import (
    LookAhead,
    TaskDifference,
    VarianceSummary,
    differences_to_frame,
)
from schedule_health.p6.schedule import ScheduleSnapshot

METRIC_COLUMNS = ["Check", "Value", "Threshold", "Status", "Description", "Details", "Recommendation"]


def metrics_to_frame(metrics: Dict[str, Metric]) -> pd.DataFrame:
    """One row per DCMA check, in analyzer order."""
    rows = [
        {
            "Check": key,
            "Value": m.value,
            "Threshold": m.threshold,
            "Status": m.status,
            "Description": m.description,
            "Details": m.details,
            "Recommendation": m.recommendation,
        }
        for key, m in metrics.items()
    ]
    return pd.DataFrame(rows, columns=METRIC_COLUMNS)


def _jsonable(value: Any) -> Any:
    """Timestamps to ISO dates, NaN/NaT to None, numpy scalars to Python."""
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, pd.Timestamp):
        return value.isoformat()
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    if hasattr(value, "item"):
        return value.item()
    return value


def frame_records(df: pd.DataFrame) -> List[Dict[str, Any]]:
    return [_jsonable(r) for r in df.to_dict("records")]


def build_report(
    snapshot: ScheduleSnapshot,
    metrics: Dict[str, Metric],
    charts: Optional[Dict[str, Series]] = None,
    differences: Optional[List[TaskDifference]] = None,
    variance: Optional[VarianceSummary] = None,
    lookahead: Optional[LookAhead] = None,
    narrative: Optional[str] = None,
) -> Dict[str, Any]:
    """Everything produced for one run, as a JSON-ready dict."""
    project = snapshot.project
    report: Dict[str, Any] = {
        "source": snapshot.source,
        "project": {
            "id": project.project_id,
            "name": project.short_name,
            "dataDate": project.data_date,
            "planStart": project.plan_start,
            "planFinish": project.plan_finish,
        },
        "taskCount": int(len(snapshot.tasks)),
        "relationshipCount": int(len(snapshot.relationships)),
        "dcma": {key: m.to_dict() for key, m in metrics.items()},
        "dcmaSummary": summarize(metrics),
    }
    if charts is not None:
        report["charts"] = {key: s.to_dict() for key, s in charts.items()}
    if differences is not None:
        report["differences"] = [d.to_dict() for d in differences]
    if variance is not None:
        report["variance"] = variance.to_dict()
    if lookahead is not None:
        report["lookahead"] = {
            "windowStart": lookahead.window_start,
            "windowEnd": lookahead.window_end,
            "summary": lookahead.summary,
            "activities": frame_records(lookahead.activities),
        }
    if narrative is not None:
        report["narrative"] = narrative
    return _jsonable(report)


def report_to_json(report: Dict[str, Any], indent: int = 2) -> str:
    return json.dumps(report, indent=indent, ensure_ascii=False)


def write_csv_tables(
    out_dir,
    metrics: Dict[str, Metric],
    differences: Optional[List[TaskDifference]] = None,
    lookahead: Optional[LookAhead] = None,
) -> List[Path]:
    """Write the flat tables as CSV files; returns the written paths."""
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)

    written = []
    path = out / "dcma_metrics.csv"
    metrics_to_frame(metrics).to_csv(path, index=False)
    written.append(path)

    if differences is not None:
        path = out / "schedule_differences.csv"
        differences_to_frame(differences).to_csv(path, index=False)
        written.append(path)

    if lookahead is not None:
        path = out / "lookahead.csv"
        lookahead.activities.to_csv(path, index=False)
        written.append(path)

    return written
