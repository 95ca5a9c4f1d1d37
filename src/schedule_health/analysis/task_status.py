# schedule_health/analysis/task_status.py

from __future__ import annotations

from enum import Enum
from typing import Optional

import numpy as np
import pandas as pd

NOT_STARTED = "Not Started"
IN_PROGRESS = "In Progress"
COMPLETED = "Completed"

STATUS_ORDER = [NOT_STARTED, IN_PROGRESS, COMPLETED]


class StatusPolicy(str, Enum):
    """
    How "is this task complete / started" is decided.

    ACTUAL:  status code, actual dates and physical % complete
    PLANNED: planned dates against an anchor date
    """

    ACTUAL = "actual"
    PLANNED = "planned"


DEFAULT_POLICY = StatusPolicy.ACTUAL


def _status_text(tasks: pd.DataFrame) -> pd.Series:
    return tasks["Status"].fillna("").astype(str).str.lower()


def planned_anchor(tasks: pd.DataFrame, now: Optional[pd.Timestamp] = None) -> pd.Timestamp:
    """min(now, latest planned finish)."""
    now = now if now is not None else pd.Timestamp.now()
    latest = tasks["TargetFinish"].max() if len(tasks) else pd.NaT
    if pd.isna(latest):
        return now
    return min(now, pd.Timestamp(latest))


def classify(
    tasks: pd.DataFrame,
    as_of: Optional[pd.Timestamp] = None,
    policy: StatusPolicy = DEFAULT_POLICY,
) -> pd.Series:
    """
    Classify every task as Not Started / In Progress / Completed.

    The three buckets are mutually exclusive. Returns a Series aligned with
    tasks.index.
    """
    if tasks.empty:
        return pd.Series([], index=tasks.index, dtype=object)

    policy = StatusPolicy(policy)

    if policy is StatusPolicy.PLANNED:
        anchor = as_of if as_of is not None else planned_anchor(tasks)
        start = tasks["TargetStart"]
        finish = tasks["TargetFinish"]
        status = np.where(
            finish < anchor, COMPLETED,
            np.where(start > anchor, NOT_STARTED, IN_PROGRESS),
        )
        return pd.Series(status, index=tasks.index, dtype=object)

    as_of = as_of if as_of is not None else pd.Timestamp.now()
    text = _status_text(tasks)

    done = (
        text.str.contains("complete") | text.str.contains("finished")
        | (tasks["ActualFinish"].notna() & (tasks["ActualFinish"] <= as_of))
        | (tasks["PhysPct"] >= 100)
    )
    started = (
        text.str.contains("active") | text.str.contains("progress")
        | (tasks["ActualStart"].notna() & (tasks["ActualStart"] <= as_of))
    )

    status = np.where(done, COMPLETED, np.where(started, IN_PROGRESS, NOT_STARTED))
    return pd.Series(status, index=tasks.index, dtype=object)


def is_complete(
    tasks: pd.DataFrame,
    as_of: Optional[pd.Timestamp] = None,
    policy: StatusPolicy = DEFAULT_POLICY,
) -> pd.Series:
    return classify(tasks, as_of, policy) == COMPLETED


def has_started(
    tasks: pd.DataFrame,
    as_of: Optional[pd.Timestamp] = None,
    policy: StatusPolicy = DEFAULT_POLICY,
) -> pd.Series:
    return classify(tasks, as_of, policy) != NOT_STARTED
