import pandas as pd

from schedule_health.analysis.chart_engine import (
    build_chart_data,
    build_status_distribution,
    build_timeline,
    build_type_distribution,
)


# ----------------------------------------------------------------
# 1. TIMELINE
# ----------------------------------------------------------------
def test_timeline_buckets_by_month_and_is_cumulative(snapshot_builder):
    snap = snapshot_builder([
        {"TargetFinish": "2024-01-15"},
        {"TargetFinish": "2024-01-31"},
        {"TargetFinish": "2024-03-05"},
        {"TargetFinish": "2024-04-30"},
    ])
    s = build_timeline(snap.tasks)

    assert s.labels == ["Jan 2024", "Feb 2024", "Mar 2024", "Apr 2024"]
    assert s.values == [50.0, 50.0, 75.0, 100.0]
    assert [len(a) for a in s.activities] == [2, 0, 1, 1]
    assert s.activities[2][0] == {"code": "A3", "name": "Task 3", "date": "2024-03-05"}


def test_timeline_is_monotone_and_rounded(snapshot_builder):
    snap = snapshot_builder([{"TargetFinish": f"2024-0{m}-10"} for m in (1, 2, 2, 5, 7, 9)] + [{"TargetFinish": "2024-09-20"}])
    values = build_timeline(snap.tasks).values

    assert values == sorted(values)
    assert values[-1] == 100.0
    assert values[0] == round(1 / 7 * 100, 2)


def test_duplicate_codes_count_once(snapshot_builder):
    snap = snapshot_builder([
        {"TaskCode": "X", "TargetFinish": "2024-01-10"},
        {"TaskCode": "X", "TargetFinish": "2024-02-10"},
        {"TaskCode": "Y", "TargetFinish": "2024-02-10"},
    ])

    assert build_timeline(snap.tasks).values == [50.0, 100.0]


def test_baseline_timeline_is_labelled(snapshot_builder):
    s = build_timeline(snapshot_builder([{}]).tasks, is_baseline=True)

    assert s.label == "Baseline Progress"


def test_timeline_of_empty_or_undated_tasks_is_empty(snapshot_builder):
    assert build_timeline(snapshot_builder([]).tasks).is_empty
    assert build_timeline(snapshot_builder([{"TargetFinish": None}]).tasks).is_empty


# ----------------------------------------------------------------
# 2. DISTRIBUTIONS
# ----------------------------------------------------------------
def test_status_distribution_counts(snapshot_builder):
    snap = snapshot_builder([
        {"Status": "TK_Complete"},
        {"Status": "TK_Active"},
        {"Status": "TK_NotStart"},
        {"Status": "TK_NotStart"},
    ])
    s = build_status_distribution(snap.tasks, as_of=pd.Timestamp("2024-02-01"))

    assert s.labels == ["Not Started", "In Progress", "Completed"]
    assert s.values == [2, 1, 1]


def test_type_distribution_keeps_first_seen_order_and_undefined(snapshot_builder):
    snap = snapshot_builder([
        {"TaskType": "TT_Task"},
        {"TaskType": "TT_Mile"},
        {"TaskType": "TT_Task"},
        {"TaskType": ""},
    ])
    s = build_type_distribution(snap.tasks)

    assert s.labels == ["TT_Task", "TT_Mile", "Undefined"]
    assert s.values == [2, 1, 1]


def test_chart_data_keys_and_serialization(snapshot_builder):
    charts = build_chart_data(snapshot_builder([{}, {}]).tasks, as_of=pd.Timestamp("2024-02-01"))

    assert set(charts) == {"timeline", "progress", "taskTypes"}
    assert charts["timeline"].to_dict()["values"] == [100.0]
