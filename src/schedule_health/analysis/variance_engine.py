# schedule_health/analysis/variance_engine.py

"""
Cross-schedule comparison: task differences, float-adjusted delay and the
look-ahead window.

Tasks are matched on TaskCode. When a code appears more than once in a
snapshot, the last row wins.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from schedule_health.p6.schedule import HOURS_PER_DAY, ScheduleSnapshot

logger = logging.getLogger(__name__)

ADDED = "added"
REMOVED = "removed"
MODIFIED = "modified"

# (display name, column)
COMPARED_FIELDS = [
    ("Name", "Name"),
    ("Start Date", "TargetStart"),
    ("End Date", "TargetFinish"),
    ("Critical Path", "Driving"),
    ("Task Type", "TaskType"),
]

SECONDS_PER_DAY = 86400.0


@dataclass(frozen=True)
class FieldChange:
    field: str
    before: Any
    after: Any


@dataclass(frozen=True)
class TaskDifference:
    task_code: str
    task_name: str
    change_type: str
    changes: List[FieldChange] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "task_code": self.task_code,
            "task_name": self.task_name,
            "change_type": self.change_type,
            "changes": [
                {"field": c.field, "before": _display(c.before), "after": _display(c.after)}
                for c in self.changes
            ],
        }


def _display(value) -> Any:
    if value is None or (not isinstance(value, (bool, np.bool_)) and pd.isna(value)):
        return ""
    if isinstance(value, pd.Timestamp):
        return value.date().isoformat()
    if isinstance(value, (bool, np.bool_)):
        return "Yes" if value else "No"
    return value


def _same(a, b) -> bool:
    """Equality where NaT == NaT."""
    a_missing = not isinstance(a, (bool, np.bool_)) and pd.isna(a)
    b_missing = not isinstance(b, (bool, np.bool_)) and pd.isna(b)
    if a_missing or b_missing:
        return a_missing and b_missing
    return a == b


def index_by_code(tasks: pd.DataFrame) -> pd.DataFrame:
    """Tasks keyed by TaskCode; duplicate codes keep the last row."""
    return tasks.drop_duplicates("TaskCode", keep="last").set_index("TaskCode", drop=False)


def _days_between(later: pd.Series, earlier: pd.Series) -> pd.Series:
    return (later - earlier).dt.total_seconds() / SECONDS_PER_DAY


# ---------------------------------------------------------
# COMPARE
# ---------------------------------------------------------

def compare(current: ScheduleSnapshot, baseline: ScheduleSnapshot) -> List[TaskDifference]:
    """
    Added / removed / modified tasks between two snapshots.

    Unchanged tasks produce no entry. Order: current tasks in file order,
    then removed baseline tasks in file order.
    """
    cur = index_by_code(current.tasks)
    base = index_by_code(baseline.tasks)

    diffs: List[TaskDifference] = []

    for code, row in cur.iterrows():
        if code not in base.index:
            diffs.append(TaskDifference(code, row["Name"], ADDED))
            continue

        before = base.loc[code]
        changes = [
            FieldChange(label, before[col], row[col])
            for label, col in COMPARED_FIELDS
            if not _same(before[col], row[col])
        ]
        if changes:
            diffs.append(TaskDifference(code, row["Name"], MODIFIED, changes))

    for code, row in base.iterrows():
        if code not in cur.index:
            diffs.append(TaskDifference(code, row["Name"], REMOVED))

    logger.info(
        "Compared %s against %s: %d differences",
        current.source or "<current>", baseline.source or "<baseline>", len(diffs),
    )
    return diffs


def differences_to_frame(diffs: List[TaskDifference]) -> pd.DataFrame:
    """Flat CSV-ready table of differences."""
    rows = []
    for d in diffs:
        rows.append({
            "Task Code": d.task_code,
            "Task Name": d.task_name,
            "Change Type": d.change_type,
            "Changes": "; ".join(
                f"{c.field}: {_display(c.before)} → {_display(c.after)}" for c in d.changes
            ),
        })
    return pd.DataFrame(rows, columns=["Task Code", "Task Name", "Change Type", "Changes"])


# ---------------------------------------------------------
# VARIANCE SUMMARY
# ---------------------------------------------------------

@dataclass(frozen=True)
class VarianceSummary:
    activity_count_difference: int
    total_delay_days: float
    critical_path_delay_days: float
    matched_tasks: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "activityCountDifference": self.activity_count_difference,
            "totalDelayDays": self.total_delay_days,
            "criticalPathDelayDays": self.critical_path_delay_days,
            "matchedTasks": self.matched_tasks,
        }


def delay_days(current: ScheduleSnapshot, baseline: ScheduleSnapshot) -> pd.DataFrame:
    """
    Float-adjusted delay per matched task:

        DelayDays = max(0, (finish_current - finish_baseline) in days - max(0, TF_current) in days)

    Negative float is not credited back as delay. Tasks missing either finish
    date contribute 0.
    """
    cur = index_by_code(current.tasks)
    base = index_by_code(baseline.tasks)
    common = cur.index.intersection(base.index)

    df = cur.loc[common, ["TaskCode", "TargetFinish", "TotalFloatHrs", "Driving"]].copy()
    df["BaselineFinish"] = base.loc[common, "TargetFinish"]
    df["FinishDiffDays"] = _days_between(df["TargetFinish"], df["BaselineFinish"])
    df["FloatDays"] = df["TotalFloatHrs"].clip(lower=0) / HOURS_PER_DAY
    dated = df["FinishDiffDays"].notna()
    df["DelayDays"] = np.where(dated, (df["FinishDiffDays"] - df["FloatDays"]).clip(lower=0.0), 0.0)
    return df.reset_index(drop=True)


def variance_summary(current: ScheduleSnapshot, baseline: ScheduleSnapshot) -> VarianceSummary:
    delays = delay_days(current, baseline)
    return VarianceSummary(
        activity_count_difference=len(current.tasks) - len(baseline.tasks),
        total_delay_days=round(float(delays["DelayDays"].sum()), 2),
        critical_path_delay_days=round(float(delays.loc[delays["Driving"], "DelayDays"].sum()), 2),
        matched_tasks=len(delays),
    )


# ---------------------------------------------------------
# LOOK-AHEAD
# ---------------------------------------------------------

LOOKAHEAD_COLUMNS = [
    "TaskCode", "Name", "TargetStart", "TargetFinish",
    "Driving", "TotalFloatHrs",
    "StartsInWindow", "FinishesInWindow",
    "BaselineStart", "BaselineFinish",
    "StartVarianceDays", "FinishVarianceDays",
]


@dataclass(frozen=True)
class LookAhead:
    activities: pd.DataFrame
    summary: Dict[str, Any]
    window_start: pd.Timestamp
    window_end: pd.Timestamp


def look_ahead(
    current: ScheduleSnapshot,
    baseline: Optional[ScheduleSnapshot] = None,
    window_days: int = 28,
    anchor: Optional[pd.Timestamp] = None,
    through_end_of_day: bool = False,
) -> LookAhead:
    """
    Activities planned to start or finish within [anchor, anchor + window_days].

    With a baseline, same-code matches carry baseline dates and signed
    start/finish variance in days (positive = later than baseline). Mean
    variances in the summary are over matched tasks only.

    With `through_end_of_day`, the window runs to 23:59:59 on its last day.
    """
    anchor = pd.Timestamp(anchor) if anchor is not None else pd.Timestamp.now()
    window_end = anchor + pd.Timedelta(days=window_days)
    if through_end_of_day:
        window_end = window_end.normalize() + pd.Timedelta(days=1) - pd.Timedelta(seconds=1)

    t = current.tasks
    starts = t["TargetStart"].between(anchor, window_end)
    finishes = t["TargetFinish"].between(anchor, window_end)

    df = t.loc[starts | finishes, ["TaskCode", "Name", "TargetStart", "TargetFinish", "Driving", "TotalFloatHrs"]].copy()
    df["StartsInWindow"] = starts[starts | finishes]
    df["FinishesInWindow"] = finishes[starts | finishes]

    if baseline is not None:
        base = index_by_code(baseline.tasks)
        df["BaselineStart"] = pd.to_datetime(df["TaskCode"].map(base["TargetStart"]))
        df["BaselineFinish"] = pd.to_datetime(df["TaskCode"].map(base["TargetFinish"]))
        df["StartVarianceDays"] = _days_between(df["TargetStart"], df["BaselineStart"])
        df["FinishVarianceDays"] = _days_between(df["TargetFinish"], df["BaselineFinish"])
        df["Matched"] = df["TaskCode"].isin(base.index)
    else:
        df["BaselineStart"] = pd.NaT
        df["BaselineFinish"] = pd.NaT
        df["StartVarianceDays"] = np.nan
        df["FinishVarianceDays"] = np.nan
        df["Matched"] = False

    df = df.sort_values(["TargetStart", "TaskCode"], kind="stable").reset_index(drop=True)
    matched = df[df["Matched"].astype(bool)]

    def _mean(col: str) -> float:
        vals = matched[col].dropna()
        return round(float(vals.mean()), 2) if len(vals) else 0.0

    summary = {
        "total": int(len(df)),
        "starting": int(df["StartsInWindow"].sum()),
        "finishing": int(df["FinishesInWindow"].sum()),
        "critical": int(df["Driving"].sum()),
        "matched": int(len(matched)),
        "meanStartVarianceDays": _mean("StartVarianceDays"),
        "meanFinishVarianceDays": _mean("FinishVarianceDays"),
    }

    return LookAhead(
        activities=df[LOOKAHEAD_COLUMNS],
        summary=summary,
        window_start=anchor,
        window_end=window_end,
    )
