"""
XER reader for Primavera P6 schedule exports.

XER format:
- Tab-delimited text
- ERMHDR (file header) followed by %T (table), %F (fields), %R (rows)
- %E marks the end of the file

Rows are zipped positionally with the most recent %F header of the most
recent %T table, in one pass. Tables are allowed to interleave; there is no
global schema to validate against.
"""

import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

import pandas as pd

from schedule_health.p6.schedule import (
    ProjectInfo,
    ScheduleSnapshot,
    to_timestamp,
)

logger = logging.getLogger(__name__)


class FormatError(ValueError):
    """Input is not a recognizable schedule file; no snapshot is produced."""


CONSUMED_TABLES = ("TASK", "TASKPRED", "TASKRSRC", "PROJECT")

TASK_FIELD_MAP = {
    "task_id": "TaskID",
    "task_code": "TaskCode",
    "task_name": "Name",
    "target_start_date": "TargetStart",
    "target_end_date": "TargetFinish",
    "act_start_date": "ActualStart",
    "act_end_date": "ActualFinish",
    "target_drtn_hr_cnt": "DurationHrs",
    "remain_drtn_hr_cnt": "RemainingHrs",
    "total_float_hr_cnt": "TotalFloatHrs",
    "free_float_hr_cnt": "FreeFloatHrs",
    "task_type": "TaskType",
    "status_code": "Status",
    "cstr_type": "Constraint1",
    "cstr_date": "ConstraintDate1",
    "cstr_type2": "Constraint2",
    "cstr_date2": "ConstraintDate2",
    "driving_path_flag": "Driving",
    "phys_complete_pct": "PhysPct",
    "act_work_qty": "ActWorkQty",
    "remain_work_qty": "RemainWorkQty",
    "wbs_id": "WBS",
}

TASKPRED_FIELD_MAP = {
    "pred_task_id": "PredTaskID",
    "task_id": "TaskID",
    "pred_type": "RelType",
    "lag_hr_cnt": "LagHrs",
}

TASKRSRC_FIELD_MAP = {
    "task_id": "TaskID",
    "rsrc_id": "ResourceID",
    "target_qty": "TargetQty",
    "remain_qty": "RemainQty",
    "target_cost": "TargetCost",
    "remain_cost": "RemainCost",
}

# Preference order for the project's as-of date
DATA_DATE_FIELDS = ["last_recalc_date", "data_date", "next_data_date"]

ProgressCallback = Callable[[int], None]


def decode_bytes(raw: bytes) -> str:
    """XER exports are usually cp1252; newer ones are UTF-8."""
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw.decode("cp1252", errors="replace")


class XERReader:
    """Parse XER text into raw per-table DataFrames."""

    def __init__(self, text: str, on_progress: Optional[ProgressCallback] = None):
        self.text = text
        self.on_progress = on_progress
        self.header: Dict[str, List[str]] = {}
        self.tables: Dict[str, pd.DataFrame] = {}
        self.skipped_rows = 0

    def read(self) -> Dict[str, pd.DataFrame]:
        if "\x00" in self.text:
            raise FormatError("File contains binary data; expected a tab-delimited XER export.")

        lines = self.text.splitlines()
        total = max(len(lines), 1)
        step = max(total // 20, 1)

        current_table = None
        current_fields: List[str] = []
        rows: Dict[str, List[dict]] = {}
        saw_table = False

        for i, raw in enumerate(lines):
            if self.on_progress and i % step == 0:
                self.on_progress(int(i * 100 / total))

            line = raw.rstrip("\r\n")
            if not line.strip():
                continue

            if line.startswith("ERMHDR"):
                self.header["ERMHDR"] = line.split("\t")[1:]

            elif line.startswith("%T"):
                parts = line.split("\t")
                current_table = parts[1].strip() if len(parts) > 1 else None
                current_fields = []
                saw_table = True
                if current_table:
                    rows.setdefault(current_table, [])

            elif line.startswith("%F"):
                current_fields = [f.strip() for f in line.split("\t")[1:]]
                if current_table:
                    rows.setdefault(current_table, [])

            elif line.startswith("%R"):
                if not current_table or not current_fields:
                    self.skipped_rows += 1
                    continue
                values = line.split("\t")[1:]
                # Pad short rows, truncate long rows
                if len(values) < len(current_fields):
                    values = values + [""] * (len(current_fields) - len(values))
                rows[current_table].append(
                    {f: v.strip() for f, v in zip(current_fields, values)}
                )

            elif line.startswith("%E"):
                break

        if not saw_table:
            raise FormatError("No %T table markers found; not an XER file.")

        for name, table_rows in rows.items():
            self.tables[name] = pd.DataFrame(table_rows)

        if self.skipped_rows:
            logger.debug("Skipped %d %%R rows that preceded a table/field header", self.skipped_rows)

        logger.info(
            "Read %d XER tables (%s)",
            len(self.tables),
            ", ".join(f"{k}={len(v)}" for k, v in self.tables.items()),
        )
        return self.tables


def _select(df: Optional[pd.DataFrame], field_map: Dict[str, str]) -> pd.DataFrame:
    """Keep mapped XER fields and rename them onto canonical names."""
    if df is None or df.empty:
        return pd.DataFrame(columns=list(field_map.values()))
    present = {k: v for k, v in field_map.items() if k in df.columns}
    return df[list(present)].rename(columns=present)


def project_info_from_table(project_df: Optional[pd.DataFrame]) -> ProjectInfo:
    if project_df is None or project_df.empty:
        return ProjectInfo()

    row = project_df.iloc[0]

    data_date = None
    for col in DATA_DATE_FIELDS:
        if col in project_df.columns:
            data_date = to_timestamp(row.get(col))
            if data_date is not None:
                break

    return ProjectInfo(
        project_id=str(row.get("proj_id", "") or ""),
        short_name=str(row.get("proj_short_name", "") or ""),
        plan_start=to_timestamp(row.get("plan_start_date")),
        plan_finish=to_timestamp(row.get("plan_end_date")),
        forecast_finish=to_timestamp(row.get("scd_end_date")),
        data_date=data_date,
        baseline_project_id=str(row.get("sum_base_proj_id", "") or ""),
    )


def snapshot_from_tables(tables: Dict[str, pd.DataFrame], source: str = "") -> ScheduleSnapshot:
    """Coerce raw XER tables into a ScheduleSnapshot."""
    unknown = sorted(set(tables) - set(CONSUMED_TABLES))
    if unknown:
        logger.debug("Ignoring XER tables: %s", ", ".join(unknown))

    tasks = _select(tables.get("TASK"), TASK_FIELD_MAP)
    preds = _select(tables.get("TASKPRED"), TASKPRED_FIELD_MAP)
    rsrcs = _select(tables.get("TASKRSRC"), TASKRSRC_FIELD_MAP)
    project = project_info_from_table(tables.get("PROJECT"))

    snapshot = ScheduleSnapshot.from_frames(
        tasks=tasks,
        relationships=preds,
        resources=rsrcs,
        project=project,
        source=source,
    )

    if snapshot.is_empty:
        logger.info("Schedule %s has an empty TASK table", source or "<memory>")
    return snapshot


def parse_xer(
    raw: Union[str, bytes],
    on_progress: Optional[ProgressCallback] = None,
    source: str = "",
) -> ScheduleSnapshot:
    """
    Parse XER content into a ScheduleSnapshot.

    Raises:
        FormatError: the content has no recognizable table structure
    """
    text = decode_bytes(raw) if isinstance(raw, (bytes, bytearray)) else raw
    tables = XERReader(text, on_progress=on_progress).read()
    snapshot = snapshot_from_tables(tables, source=source)
    if on_progress:
        on_progress(100)
    return snapshot


def read_xer_file(path, on_progress: Optional[ProgressCallback] = None) -> ScheduleSnapshot:
    path = Path(path)
    return parse_xer(path.read_bytes(), on_progress=on_progress, source=path.name)
