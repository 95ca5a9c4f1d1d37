# schedule_health/p6/schedule.py

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import pandas as pd

logger = logging.getLogger(__name__)


# ---------------------------------------------------------
# CANONICAL COLUMNS
# ---------------------------------------------------------

TASK_COLUMNS = [
    "TaskID", "TaskCode", "Name",
    "TargetStart", "TargetFinish",
    "ActualStart", "ActualFinish",
    "DurationHrs", "RemainingHrs",
    "TotalFloatHrs", "FreeFloatHrs",
    "TaskType", "Status",
    "Constraint1", "ConstraintDate1",
    "Constraint2", "ConstraintDate2",
    "Driving",
    "PhysPct", "ActWorkQty", "RemainWorkQty",
    "WBS",
]

TASK_DATE_COLUMNS = [
    "TargetStart", "TargetFinish",
    "ActualStart", "ActualFinish",
    "ConstraintDate1", "ConstraintDate2",
]

TASK_NUMERIC_COLUMNS = [
    "DurationHrs", "RemainingHrs",
    "TotalFloatHrs", "FreeFloatHrs",
    "PhysPct", "ActWorkQty", "RemainWorkQty",
]

RELATIONSHIP_COLUMNS = ["PredTaskID", "TaskID", "RelType", "LagHrs"]

RESOURCE_COLUMNS = [
    "TaskID", "ResourceID",
    "TargetQty", "RemainQty",
    "TargetCost", "RemainCost",
]

RESOURCE_NUMERIC_COLUMNS = ["TargetQty", "RemainQty", "TargetCost", "RemainCost"]

REL_TYPES = ("FS", "SS", "FF", "SF")

HOURS_PER_DAY = 8.0


def normalize_rel_type(value) -> str:
    """
    Map P6 relationship codes onto FS / SS / FF / SF.

      "PR_FS" -> "FS", "ss" -> "SS", "" -> "FS", unknown -> "FS"
    """
    text = str(value or "").strip().upper()
    if text.startswith("PR_"):
        text = text[3:]
    return text if text in REL_TYPES else "FS"


# ---------------------------------------------------------
# FRAME NORMALIZATION (best-effort coercion, never raises)
# ---------------------------------------------------------

def empty_tasks() -> pd.DataFrame:
    return normalize_tasks(pd.DataFrame(columns=TASK_COLUMNS))


def normalize_tasks(df_input: pd.DataFrame) -> pd.DataFrame:
    """
    Coerce a task frame onto the canonical schema.

    Guarantees:
      - every column in TASK_COLUMNS exists
      - TaskID / TaskCode / text fields are str ("" when missing)
      - numeric fields are float (0.0 when missing or malformed)
      - date fields are datetime64 (NaT when missing or malformed)
      - Driving is bool
    """
    df = df_input.copy()

    for col in TASK_COLUMNS:
        if col not in df.columns:
            df[col] = None

    for col in TASK_NUMERIC_COLUMNS:
        df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0.0).astype(float)

    for col in TASK_DATE_COLUMNS:
        df[col] = pd.to_datetime(df[col], errors="coerce")

    text_cols = [
        c for c in TASK_COLUMNS
        if c not in TASK_NUMERIC_COLUMNS and c not in TASK_DATE_COLUMNS and c != "Driving"
    ]
    for col in text_cols:
        df[col] = df[col].fillna("").astype(str).str.strip()

    if df["Driving"].dtype != bool:
        df["Driving"] = (
            df["Driving"].fillna("").astype(str).str.strip().str.upper().isin(["Y", "TRUE", "1"])
        )

    return df[TASK_COLUMNS].reset_index(drop=True)


def normalize_relationships(df_input: pd.DataFrame) -> pd.DataFrame:
    df = df_input.copy()
    for col in RELATIONSHIP_COLUMNS:
        if col not in df.columns:
            df[col] = None

    df["PredTaskID"] = df["PredTaskID"].fillna("").astype(str).str.strip()
    df["TaskID"] = df["TaskID"].fillna("").astype(str).str.strip()
    df["RelType"] = df["RelType"].map(normalize_rel_type)
    df["LagHrs"] = pd.to_numeric(df["LagHrs"], errors="coerce").fillna(0.0).astype(float)

    # An edge needs both ends; rows without ids carry no logic
    df = df[(df["PredTaskID"] != "") & (df["TaskID"] != "")]
    return df[RELATIONSHIP_COLUMNS].reset_index(drop=True)


def normalize_resources(df_input: pd.DataFrame) -> pd.DataFrame:
    df = df_input.copy()
    for col in RESOURCE_COLUMNS:
        if col not in df.columns:
            df[col] = None

    df["TaskID"] = df["TaskID"].fillna("").astype(str).str.strip()
    df["ResourceID"] = df["ResourceID"].fillna("").astype(str).str.strip()
    for col in RESOURCE_NUMERIC_COLUMNS:
        df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0.0).astype(float)

    return df[RESOURCE_COLUMNS].reset_index(drop=True)


# ---------------------------------------------------------
# PROJECT INFO
# ---------------------------------------------------------

@dataclass(frozen=True)
class ProjectInfo:
    project_id: str = ""
    short_name: str = ""
    plan_start: Optional[pd.Timestamp] = None
    plan_finish: Optional[pd.Timestamp] = None
    forecast_finish: Optional[pd.Timestamp] = None
    data_date: Optional[pd.Timestamp] = None
    baseline_project_id: str = ""


def to_timestamp(value) -> Optional[pd.Timestamp]:
    ts = pd.to_datetime(value, errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    return pd.Timestamp(ts)


# ---------------------------------------------------------
# SNAPSHOT
# ---------------------------------------------------------

Edge = Tuple[str, str, float]   # (other task id, rel type, lag hours)


@dataclass(frozen=True, eq=False)
class ScheduleSnapshot:
    """
    Immutable aggregate of one parsed schedule file.

    tasks:          one row per activity (TASK_COLUMNS)
    relationships:  one row per logic edge (RELATIONSHIP_COLUMNS)
    resources:      one row per resource assignment (RESOURCE_COLUMNS)
    project:        ProjectInfo

    predecessor / successor / resource indexes are derived once from the
    frames above, so both edge directions always agree.
    """

    tasks: pd.DataFrame
    relationships: pd.DataFrame
    resources: pd.DataFrame
    project: ProjectInfo = field(default_factory=ProjectInfo)
    source: str = ""

    _preds: Dict[str, List[Edge]] = field(init=False, repr=False, compare=False)
    _succs: Dict[str, List[Edge]] = field(init=False, repr=False, compare=False)
    _rsrcs: Dict[str, List[dict]] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        preds = defaultdict(list)
        succs = defaultdict(list)
        for pred, succ, rel_type, lag in self.relationships[RELATIONSHIP_COLUMNS].itertuples(index=False):
            preds[succ].append((pred, rel_type, float(lag)))
            succs[pred].append((succ, rel_type, float(lag)))

        rsrcs = defaultdict(list)
        for rec in self.resources.to_dict("records"):
            rsrcs[rec["TaskID"]].append(rec)

        object.__setattr__(self, "_preds", dict(preds))
        object.__setattr__(self, "_succs", dict(succs))
        object.__setattr__(self, "_rsrcs", dict(rsrcs))

    @classmethod
    def from_frames(cls, tasks=None, relationships=None, resources=None,
                    project: Optional[ProjectInfo] = None, source: str = "") -> "ScheduleSnapshot":
        """Build a snapshot from raw frames, coercing each onto the canonical schema."""
        tasks = normalize_tasks(tasks if tasks is not None else pd.DataFrame())
        relationships = normalize_relationships(
            relationships if relationships is not None else pd.DataFrame()
        )
        resources = normalize_resources(resources if resources is not None else pd.DataFrame())
        return cls(
            tasks=tasks,
            relationships=relationships,
            resources=resources,
            project=project or ProjectInfo(),
            source=source,
        )

    # ---- indexes ----

    def predecessors_of(self, task_id: str) -> List[Edge]:
        return list(self._preds.get(str(task_id), []))

    def successors_of(self, task_id: str) -> List[Edge]:
        return list(self._succs.get(str(task_id), []))

    def resources_of(self, task_id: str) -> List[dict]:
        return list(self._rsrcs.get(str(task_id), []))

    def predecessor_counts(self) -> pd.Series:
        """Number of predecessor edges per task, aligned with tasks.index."""
        return self.tasks["TaskID"].map(lambda t: len(self._preds.get(t, []))).astype(int)

    def successor_counts(self) -> pd.Series:
        return self.tasks["TaskID"].map(lambda t: len(self._succs.get(t, []))).astype(int)

    # ---- derived values ----

    def date_range(self, now: Optional[pd.Timestamp] = None) -> Tuple[pd.Timestamp, pd.Timestamp]:
        """
        (earliest TargetStart, latest TargetFinish).
        Both fall back to `now` when there are no usable dates.
        """
        now = now if now is not None else pd.Timestamp.now()
        min_start = self.tasks["TargetStart"].min() if len(self.tasks) else pd.NaT
        max_end = self.tasks["TargetFinish"].max() if len(self.tasks) else pd.NaT
        return (
            now if pd.isna(min_start) else pd.Timestamp(min_start),
            now if pd.isna(max_end) else pd.Timestamp(max_end),
        )

    def resolve_data_date(self, now: Optional[pd.Timestamp] = None) -> Tuple[pd.Timestamp, str]:
        """
        Return (data_date, source).

        source is "project" when the file carries a data date and "clock"
        when it had to fall back to wall-clock time.
        """
        if self.project.data_date is not None:
            return pd.Timestamp(self.project.data_date), "project"
        now = now if now is not None else pd.Timestamp.now()
        logger.warning(
            "Schedule %s has no data date; anchoring analysis to wall-clock time %s",
            self.source or "<memory>", now.isoformat(),
        )
        return now, "clock"

    def equals(self, other: "ScheduleSnapshot") -> bool:
        """Structural equality over every frame and the project record."""
        return (
            isinstance(other, ScheduleSnapshot)
            and self.tasks.equals(other.tasks)
            and self.relationships.equals(other.relationships)
            and self.resources.equals(other.resources)
            and self.project == other.project
        )

    @property
    def is_empty(self) -> bool:
        return self.tasks.empty
