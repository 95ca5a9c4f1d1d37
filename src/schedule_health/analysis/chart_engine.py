# schedule_health/analysis/chart_engine.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import pandas as pd

from schedule_health.analysis.task_status import (
    DEFAULT_POLICY,
    STATUS_ORDER,
    StatusPolicy,
    classify,
)

# -----------------------------------------------------------
# Visual constants
# -----------------------------------------------------------
CURRENT_COLOR = "#118DFF"
BASELINE_COLOR = "#FFD700"

STATUS_COLORS = [
    "rgba(255, 159, 67, 0.8)",   # Not Started
    "rgba(17, 141, 255, 0.8)",   # In Progress
    "rgba(46, 213, 115, 0.8)",   # Completed
]

TYPE_COLORS = [
    "rgba(17, 141, 255, 0.8)",
    "rgba(59, 161, 255, 0.8)",
    "rgba(100, 181, 255, 0.8)",
    "rgba(255, 107, 107, 0.8)",
    "rgba(255, 159, 67, 0.8)",
    "rgba(46, 213, 115, 0.8)",
    "rgba(165, 94, 234, 0.8)",
    "rgba(45, 152, 218, 0.8)",
]

MONTH_LABEL_FORMAT = "%b %Y"


@dataclass(frozen=True)
class Series:
    """
    One chart dataset.

    labels[i] pairs with values[i]; activities[i] (timeline only) lists the
    tasks finishing inside bucket i.
    """

    label: str
    labels: List[str] = field(default_factory=list)
    values: List[float] = field(default_factory=list)
    activities: List[List[Dict[str, Any]]] = field(default_factory=list)
    colors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "labels": list(self.labels),
            "values": list(self.values),
            "activities": [list(a) for a in self.activities],
            "colors": list(self.colors),
        }

    @property
    def is_empty(self) -> bool:
        return not self.labels


# ---------------------------------------------------------
# CUMULATIVE TIMELINE
# ---------------------------------------------------------

def build_timeline(tasks: pd.DataFrame, is_baseline: bool = False) -> Series:
    """
    Monthly cumulative share of activities planned to be finished.

    For each calendar month between the earliest and latest planned finish:

        value = |codes with TargetFinish <= month end| / |distinct codes| * 100

    rounded to 2 dp. The set of finished codes only grows month to month,
    so the series is non-decreasing.
    """
    label = "Baseline Progress" if is_baseline else "Current Progress"
    color = BASELINE_COLOR if is_baseline else CURRENT_COLOR

    total_codes = tasks["TaskCode"].nunique() if len(tasks) else 0
    dated = tasks[tasks["TargetFinish"].notna()].sort_values("TargetFinish", kind="stable")

    if total_codes == 0 or dated.empty:
        return Series(label=label, colors=[color])

    months = pd.period_range(
        dated["TargetFinish"].min().to_period("M"),
        dated["TargetFinish"].max().to_period("M"),
        freq="M",
    )
    finish_month = dated["TargetFinish"].dt.to_period("M")

    labels, values, activities = [], [], []
    done_codes: set = set()

    for month in months:
        in_month = dated[finish_month == month]
        done_codes.update(in_month["TaskCode"])

        labels.append(month.strftime(MONTH_LABEL_FORMAT))
        values.append(round(len(done_codes) / total_codes * 100, 2))
        activities.append([
            {
                "code": r["TaskCode"],
                "name": r["Name"],
                "date": r["TargetFinish"].date().isoformat(),
            }
            for r in in_month.to_dict("records")
        ])

    return Series(label=label, labels=labels, values=values, activities=activities, colors=[color])


# ---------------------------------------------------------
# DISTRIBUTIONS
# ---------------------------------------------------------

def build_status_distribution(
    tasks: pd.DataFrame,
    as_of: Optional[pd.Timestamp] = None,
    policy: StatusPolicy = DEFAULT_POLICY,
) -> Series:
    """Counts of Not Started / In Progress / Completed."""
    status = classify(tasks, as_of=as_of, policy=policy)
    counts = status.value_counts()
    return Series(
        label="Status",
        labels=list(STATUS_ORDER),
        values=[int(counts.get(s, 0)) for s in STATUS_ORDER],
        colors=list(STATUS_COLORS),
    )


def build_type_distribution(tasks: pd.DataFrame) -> Series:
    """Counts per TaskType in first-seen order; blanks count as 'Undefined'."""
    types = tasks["TaskType"].fillna("").astype(str).replace("", "Undefined")
    order = pd.unique(types)
    counts = types.value_counts()
    return Series(
        label="Task Types",
        labels=[str(t) for t in order],
        values=[int(counts[t]) for t in order],
        colors=TYPE_COLORS[: max(len(order), 1)],
    )


def build_chart_data(
    tasks: pd.DataFrame,
    is_baseline: bool = False,
    as_of: Optional[pd.Timestamp] = None,
    policy: StatusPolicy = DEFAULT_POLICY,
) -> Dict[str, Series]:
    """All three series keyed the way the narrative chart directives name them."""
    return {
        "timeline": build_timeline(tasks, is_baseline=is_baseline),
        "progress": build_status_distribution(tasks, as_of=as_of, policy=policy),
        "taskTypes": build_type_distribution(tasks),
    }
