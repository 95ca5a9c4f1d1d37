# schedule_health/narrative/prompt.py

"""
Deterministic prompt construction for the narrative report, and extraction
of the optional chart directive from the reply.

The reply is treated as opaque markdown. The only structure read from it is
a fenced block of the form

    ```chart
    bar,taskTypes
    ```
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from schedule_health.analysis.task_status import COMPLETED, classify
from schedule_health.analysis.variance_engine import VarianceSummary
from schedule_health.p6.schedule import ScheduleSnapshot

CHART_TYPES = ("line", "bar", "pie", "radar")
CHART_DATA_KEYS = ("timeline", "progress", "taskTypes")

_CHART_BLOCK_RE = re.compile(r"```chart\s*\n(.*?)\n?```", re.DOTALL)


@dataclass(frozen=True)
class ChartDirective:
    chart_type: str
    data_key: str


def _fmt_date(ts) -> str:
    return "" if ts is None or pd.isna(ts) else pd.Timestamp(ts).date().isoformat()


def build_project_summary(
    snapshot: ScheduleSnapshot,
    variance: Optional[VarianceSummary] = None,
    as_of: Optional[pd.Timestamp] = None,
) -> Dict[str, Any]:
    """Summary statistics embedded in the narrative prompt."""
    t = snapshot.tasks
    start, end = (None, None)
    if len(t):
        start = t["TargetStart"].min()
        end = t["TargetFinish"].max()

    types = t["TaskType"].replace("", "Undefined")
    task_types: List[Tuple[str, int]] = [
        (str(k), int(v)) for k, v in types.value_counts().sort_index().items()
    ]

    summary = {
        "project": snapshot.project.short_name or snapshot.source,
        "totalTasks": int(len(t)),
        "startDate": _fmt_date(start),
        "endDate": _fmt_date(end),
        "criticalTasks": int(t["Driving"].sum()),
        "milestones": int(t["TaskType"].isin(["TT_Mile", "TT_FinMile"]).sum()),
        "completedTasks": int((classify(t, as_of=as_of) == COMPLETED).sum()),
        "taskTypes": task_types,
    }
    if variance is not None:
        summary["variance"] = variance.to_dict()
    return summary


def build_narrative_prompt(summary: Dict[str, Any]) -> str:
    type_lines = "\n".join(f"- {name}: {count}" for name, count in summary["taskTypes"]) or "- None"

    variance_block = ""
    if summary.get("variance"):
        v = summary["variance"]
        variance_block = (
            "\n### Baseline Variance\n"
            f"- Activity Count Difference: {v['activityCountDifference']}\n"
            f"- Total Delay (days, float-adjusted): {v['totalDelayDays']}\n"
            f"- Critical Path Delay (days): {v['criticalPathDelayDays']}\n"
        )

    return (
        "As a project management expert, analyze this project schedule data and provide "
        "a markdown-formatted summary with the following structure:\n"
        "\n"
        "## Project Overview\n"
        "[Provide a brief overview of the project timeline and scope]\n"
        "\n"
        "### Key Statistics\n"
        f"- Start Date: {summary['startDate']}\n"
        f"- End Date: {summary['endDate']}\n"
        f"- Total Tasks: {summary['totalTasks']}\n"
        f"- Critical Path Tasks: {summary['criticalTasks']}\n"
        f"- Milestones: {summary['milestones']}\n"
        f"- Completed Tasks: {summary['completedTasks']}\n"
        "\n"
        "### Task Distribution\n"
        f"{type_lines}\n"
        f"{variance_block}"
        "\n"
        "## Analysis\n"
        "[Provide analysis of schedule characteristics, risk areas, and patterns]\n"
        "\n"
        "## Recommendations\n"
        "[List 2-3 key recommendations based on the schedule structure]\n"
        "\n"
        "Please format the response maintaining the markdown structure, but replace the "
        "bracketed sections with actual analysis. Keep the total response concise but informative."
    )


def extract_chart_directive(text: str) -> Tuple[Optional[ChartDirective], str]:
    """
    Return (directive, text without the chart block).

    directive is None unless the block names a known chart type and data key;
    unknown blocks are left in the text untouched.
    """
    match = _CHART_BLOCK_RE.search(text or "")
    if not match:
        return None, text or ""

    parts = [p.strip() for p in match.group(1).strip().split(",")]
    if len(parts) != 2:
        return None, text
    chart_type, data_key = parts
    if chart_type.lower() not in CHART_TYPES or data_key not in CHART_DATA_KEYS:
        return None, text

    stripped = (text[: match.start()] + text[match.end():]).strip()
    return ChartDirective(chart_type.lower(), data_key), stripped
