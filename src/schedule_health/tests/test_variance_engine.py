import pandas as pd

from schedule_health.analysis.variance_engine import (
    ADDED,
    MODIFIED,
    REMOVED,
    compare,
    delay_days,
    differences_to_frame,
    look_ahead,
    variance_summary,
)


# ----------------------------------------------------------------
# 1. COMPARE
# ----------------------------------------------------------------
def test_identical_snapshots_have_no_differences(snapshot_builder):
    tasks = [{}, {"Driving": "Y"}, {"TargetStart": None}]
    current = snapshot_builder(tasks)
    baseline = snapshot_builder(tasks)

    assert compare(current, baseline) == []
    summary = variance_summary(current, baseline)
    assert summary.activity_count_difference == 0
    assert summary.total_delay_days == 0


def test_added_removed_and_modified(snapshot_builder):
    baseline = snapshot_builder([
        {"TaskCode": "A1", "Name": "Dig"},
        {"TaskCode": "A2", "Name": "Pour"},
        {"TaskCode": "A3", "Name": "Cure"},
    ])
    current = snapshot_builder([
        {"TaskCode": "A1", "Name": "Dig"},
        {"TaskCode": "A2", "Name": "Pour slab", "TargetFinish": "2024-01-08", "Driving": "Y"},
        {"TaskCode": "A4", "Name": "Inspect"},
    ])
    diffs = {d.task_code: d for d in compare(current, baseline)}

    assert set(diffs) == {"A2", "A3", "A4"}
    assert diffs["A4"].change_type == ADDED
    assert diffs["A3"].change_type == REMOVED
    assert diffs["A2"].change_type == MODIFIED

    changed = {c.field: (c.before, c.after) for c in diffs["A2"].changes}
    assert set(changed) == {"Name", "End Date", "Critical Path"}
    assert changed["Name"] == ("Pour", "Pour slab")
    assert changed["End Date"] == (pd.Timestamp("2024-01-05"), pd.Timestamp("2024-01-08"))


def test_duplicate_codes_last_row_wins(snapshot_builder):
    baseline = snapshot_builder([{"TaskCode": "A1", "Name": "New"}])
    current = snapshot_builder([
        {"TaskCode": "A1", "Name": "Old"},
        {"TaskCode": "A1", "Name": "New"},
    ])

    assert compare(current, baseline) == []


def test_differences_to_frame(snapshot_builder):
    baseline = snapshot_builder([{"TaskCode": "A1", "Driving": "N"}])
    current = snapshot_builder([{"TaskCode": "A1", "Driving": "Y"}, {"TaskCode": "B1"}])
    table = differences_to_frame(compare(current, baseline))

    assert list(table.columns) == ["Task Code", "Task Name", "Change Type", "Changes"]
    assert table.loc[0, "Changes"] == "Critical Path: No → Yes"
    assert table.loc[1, "Change Type"] == "added"
    assert differences_to_frame([]).empty


# ----------------------------------------------------------------
# 2. FLOAT-ADJUSTED DELAY
# ----------------------------------------------------------------
def test_delay_subtracts_total_float(snapshot_builder):
    baseline = snapshot_builder([{"TaskCode": "A1", "TargetFinish": "2024-01-05"}])
    current = snapshot_builder([{"TaskCode": "A1", "TargetFinish": "2024-01-15", "TotalFloatHrs": 24}])

    assert variance_summary(current, baseline).total_delay_days == 7.0


def test_delay_is_never_negative(snapshot_builder):
    baseline = snapshot_builder([{"TaskCode": "A1", "TargetFinish": "2024-01-15"}, {"TaskCode": "A2"}])
    current = snapshot_builder([
        {"TaskCode": "A1", "TargetFinish": "2024-01-05"},
        {"TaskCode": "A2", "TargetFinish": "2024-01-06", "TotalFloatHrs": 80},
    ])
    delays = delay_days(current, baseline)

    assert (delays["DelayDays"] >= 0).all()
    assert variance_summary(current, baseline).total_delay_days == 0


def test_negative_float_on_unmoved_task_is_not_delay(snapshot_builder):
    tasks = [{"TaskCode": "A1", "TotalFloatHrs": -40}]
    current = snapshot_builder(tasks)
    baseline = snapshot_builder(tasks)

    assert compare(current, baseline) == []
    assert variance_summary(current, baseline).total_delay_days == 0


def test_slip_is_not_increased_by_negative_float(snapshot_builder):
    baseline = snapshot_builder([{"TaskCode": "A1", "TargetFinish": "2024-01-05"}])
    current = snapshot_builder([{"TaskCode": "A1", "TargetFinish": "2024-01-08", "TotalFloatHrs": -80}])

    assert variance_summary(current, baseline).total_delay_days == 3.0


def test_missing_finish_date_contributes_no_delay(snapshot_builder):
    baseline = snapshot_builder([{"TaskCode": "A1", "TargetFinish": None}])
    current = snapshot_builder([{"TaskCode": "A1", "TotalFloatHrs": -80}])
    delays = delay_days(current, baseline)

    assert delays.loc[0, "DelayDays"] == 0
    assert variance_summary(current, baseline).total_delay_days == 0


def test_critical_path_delay_only_counts_driving_tasks(snapshot_builder):
    baseline = snapshot_builder([{"TaskCode": "A1"}, {"TaskCode": "A2"}, {"TaskCode": "A3"}])
    current = snapshot_builder([
        {"TaskCode": "A1", "TargetFinish": "2024-01-09", "Driving": "Y"},
        {"TaskCode": "A2", "TargetFinish": "2024-01-07"},
        {"TaskCode": "A4"},
    ])
    summary = variance_summary(current, baseline)

    assert summary.activity_count_difference == 0
    assert summary.total_delay_days == 6.0
    assert summary.critical_path_delay_days == 4.0
    assert summary.matched_tasks == 2


# ----------------------------------------------------------------
# 3. LOOK-AHEAD
# ----------------------------------------------------------------
ANCHOR = pd.Timestamp("2024-02-01")


def test_look_ahead_window_is_inclusive(snapshot_builder):
    current = snapshot_builder([
        {"TaskCode": "S", "TargetStart": "2024-02-01", "TargetFinish": "2024-04-01"},
        {"TaskCode": "F", "TargetStart": "2024-01-01", "TargetFinish": "2024-02-29"},
        {"TaskCode": "OUT", "TargetStart": "2024-03-01", "TargetFinish": "2024-03-05"},
        {"TaskCode": "BOTH", "TargetStart": "2024-02-05", "TargetFinish": "2024-02-10", "Driving": "Y"},
    ])
    result = look_ahead(current, window_days=28, anchor=ANCHOR)

    assert set(result.activities["TaskCode"]) == {"S", "F", "BOTH"}
    assert result.summary["total"] == 3
    assert result.summary["starting"] == 2
    assert result.summary["finishing"] == 2
    assert result.summary["critical"] == 1
    assert result.window_end == pd.Timestamp("2024-02-29")


def test_look_ahead_through_end_of_last_day(snapshot_builder):
    current = snapshot_builder([
        {"TaskCode": "PM", "TargetStart": "2024-01-20", "TargetFinish": "2024-02-29 17:00"},
    ])

    assert look_ahead(current, window_days=28, anchor=ANCHOR).activities.empty

    result = look_ahead(current, window_days=28, anchor=ANCHOR, through_end_of_day=True)
    assert list(result.activities["TaskCode"]) == ["PM"]
    assert result.window_end == pd.Timestamp("2024-02-29 23:59:59")


def test_look_ahead_variance_over_matched_tasks_only(snapshot_builder):
    baseline = snapshot_builder([
        {"TaskCode": "A1", "TargetStart": "2024-02-01", "TargetFinish": "2024-02-05"},
        {"TaskCode": "A2", "TargetStart": "2024-02-10", "TargetFinish": "2024-02-14"},
    ])
    current = snapshot_builder([
        {"TaskCode": "A1", "TargetStart": "2024-02-03", "TargetFinish": "2024-02-09"},
        {"TaskCode": "A2", "TargetStart": "2024-02-10", "TargetFinish": "2024-02-14"},
        {"TaskCode": "NEW", "TargetStart": "2024-02-12", "TargetFinish": "2024-02-20"},
    ])
    result = look_ahead(current, baseline, window_days=28, anchor=ANCHOR)
    rows = result.activities.set_index("TaskCode")

    assert rows.loc["A1", "StartVarianceDays"] == 2.0
    assert rows.loc["A1", "FinishVarianceDays"] == 4.0
    assert pd.isna(rows.loc["NEW", "BaselineStart"])
    assert result.summary["matched"] == 2
    assert result.summary["meanStartVarianceDays"] == 1.0
    assert result.summary["meanFinishVarianceDays"] == 2.0


def test_look_ahead_without_baseline_or_tasks(snapshot_builder):
    result = look_ahead(snapshot_builder([]), anchor=ANCHOR)

    assert result.activities.empty
    assert result.summary["total"] == 0
    assert result.summary["meanStartVarianceDays"] == 0.0
