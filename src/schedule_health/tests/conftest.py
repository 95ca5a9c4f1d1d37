import pandas as pd
import pytest

from schedule_health.p6.schedule import ProjectInfo, ScheduleSnapshot


TASK_FIELDS = [
    "task_id", "proj_id", "wbs_id", "task_code", "task_name", "task_type", "status_code",
    "target_start_date", "target_end_date", "act_start_date", "act_end_date",
    "target_drtn_hr_cnt", "remain_drtn_hr_cnt", "total_float_hr_cnt", "free_float_hr_cnt",
    "cstr_type", "cstr_date", "driving_path_flag",
]


def _xer_table(name, fields, rows):
    lines = [f"%T\t{name}", "%F\t" + "\t".join(fields)]
    for row in rows:
        lines.append("%R\t" + "\t".join(str(row.get(f, "")) for f in fields))
    return lines


def build_xer(tasks=(), preds=(), rsrcs=(), project=None, extra_lines=()):
    """
    Render minimal XER text.

    tasks / preds / rsrcs are lists of dicts keyed by XER field names.
    """
    lines = ["ERMHDR\t19.12\t2024-01-01\tProject\tadmin\tdb\tProject Management\tUSD"]
    lines += _xer_table(
        "PROJECT",
        ["proj_id", "proj_short_name", "plan_start_date", "last_recalc_date"],
        [project] if project else [],
    )
    lines += _xer_table("TASK", TASK_FIELDS, tasks)
    lines += _xer_table("TASKPRED", ["task_pred_id", "task_id", "pred_task_id", "pred_type", "lag_hr_cnt"], preds)
    lines += _xer_table(
        "TASKRSRC",
        ["taskrsrc_id", "task_id", "rsrc_id", "target_qty", "remain_qty", "target_cost", "remain_cost"],
        rsrcs,
    )
    lines += list(extra_lines)
    lines.append("%E")
    return "\n".join(lines) + "\n"


@pytest.fixture
def xer_builder():
    return build_xer


def make_snapshot(tasks, relationships=None, resources=None, data_date=None, source="test"):
    """
    Snapshot straight from canonical-column dicts.

    Tasks default to a 5-day TT_Task with planned dates in January 2024.
    """
    defaults = {
        "TaskType": "TT_Task",
        "Status": "TK_NotStart",
        "TargetStart": "2024-01-01",
        "TargetFinish": "2024-01-05",
        "DurationHrs": 40,
    }
    rows = []
    for i, t in enumerate(tasks):
        row = dict(defaults)
        row.update({"TaskID": str(i + 1), "TaskCode": f"A{i + 1}", "Name": f"Task {i + 1}"})
        row.update(t)
        rows.append(row)

    return ScheduleSnapshot.from_frames(
        tasks=pd.DataFrame(rows),
        relationships=pd.DataFrame(relationships or []),
        resources=pd.DataFrame(resources or []),
        project=ProjectInfo(data_date=pd.Timestamp(data_date) if data_date else None),
        source=source,
    )


@pytest.fixture
def snapshot_builder():
    return make_snapshot


@pytest.fixture
def sample_xer(xer_builder):
    """Three-task FS chain with one resource assignment and a data date."""
    return xer_builder(
        tasks=[
            {"task_id": "100", "task_code": "A1000", "task_name": "Mobilize", "task_type": "TT_Mile",
             "status_code": "TK_Complete", "target_start_date": "2024-01-02 08:00",
             "target_end_date": "2024-01-02 08:00", "act_start_date": "2024-01-02 08:00",
             "act_end_date": "2024-01-02 08:00", "target_drtn_hr_cnt": "0",
             "total_float_hr_cnt": "0", "driving_path_flag": "Y"},
            {"task_id": "101", "task_code": "A1010", "task_name": "Excavate", "task_type": "TT_Task",
             "status_code": "TK_Active", "target_start_date": "2024-01-03 08:00",
             "target_end_date": "2024-02-14 17:00", "act_start_date": "2024-01-03 08:00",
             "target_drtn_hr_cnt": "240", "remain_drtn_hr_cnt": "120",
             "total_float_hr_cnt": "0", "free_float_hr_cnt": "0", "driving_path_flag": "Y"},
            {"task_id": "102", "task_code": "A1020", "task_name": "Pour footings", "task_type": "TT_Task",
             "status_code": "TK_NotStart", "target_start_date": "2024-02-15 08:00",
             "target_end_date": "2024-03-20 17:00", "target_drtn_hr_cnt": "200",
             "total_float_hr_cnt": "16", "free_float_hr_cnt": "8", "cstr_type": "CS_MSO",
             "cstr_date": "2024-02-15 08:00", "driving_path_flag": "N"},
        ],
        preds=[
            {"task_pred_id": "1", "task_id": "101", "pred_task_id": "100", "pred_type": "PR_FS", "lag_hr_cnt": "0"},
            {"task_pred_id": "2", "task_id": "102", "pred_task_id": "101", "pred_type": "PR_SS", "lag_hr_cnt": "16"},
        ],
        rsrcs=[
            {"taskrsrc_id": "1", "task_id": "101", "rsrc_id": "9", "target_qty": "240",
             "remain_qty": "120", "target_cost": "0", "remain_cost": "0"},
        ],
        project={"proj_id": "1", "proj_short_name": "DEMO", "plan_start_date": "2024-01-02 08:00",
                 "last_recalc_date": "2024-02-01 08:00"},
    )
