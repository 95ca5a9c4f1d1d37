import pandas as pd

from schedule_health.analysis.task_status import (
    COMPLETED,
    IN_PROGRESS,
    NOT_STARTED,
    StatusPolicy,
    classify,
    planned_anchor,
)

AS_OF = pd.Timestamp("2024-02-01")


def test_actual_policy_uses_status_actuals_and_percent(snapshot_builder):
    snap = snapshot_builder([
        {"Status": "TK_Complete"},
        {"Status": "TK_NotStart", "ActualFinish": "2024-01-20"},
        {"Status": "TK_NotStart", "PhysPct": 100},
        {"Status": "TK_Active"},
        {"Status": "TK_NotStart", "ActualStart": "2024-01-15"},
        {"Status": "TK_NotStart"},
    ])
    status = classify(snap.tasks, as_of=AS_OF, policy=StatusPolicy.ACTUAL)

    assert list(status) == [COMPLETED, COMPLETED, COMPLETED, IN_PROGRESS, IN_PROGRESS, NOT_STARTED]


def test_actual_dates_after_as_of_do_not_count(snapshot_builder):
    snap = snapshot_builder([{"Status": "TK_NotStart", "ActualStart": "2024-03-01"}])

    assert classify(snap.tasks, as_of=AS_OF).iloc[0] == NOT_STARTED


def test_planned_policy_uses_target_dates(snapshot_builder):
    snap = snapshot_builder([
        {"TargetStart": "2024-01-01", "TargetFinish": "2024-01-10"},
        {"TargetStart": "2024-01-20", "TargetFinish": "2024-02-10"},
        {"TargetStart": "2024-03-01", "TargetFinish": "2024-03-10"},
    ])
    status = classify(snap.tasks, as_of=AS_OF, policy="planned")

    assert list(status) == [COMPLETED, IN_PROGRESS, NOT_STARTED]


def test_planned_anchor_is_capped_at_latest_finish(snapshot_builder):
    snap = snapshot_builder([{"TargetFinish": "2024-01-10"}])

    assert planned_anchor(snap.tasks, now=pd.Timestamp("2030-01-01")) == pd.Timestamp("2024-01-10")
    assert planned_anchor(snap.tasks, now=pd.Timestamp("2023-06-01")) == pd.Timestamp("2023-06-01")


def test_classify_empty_frame(snapshot_builder):
    snap = snapshot_builder([])

    assert classify(snap.tasks, as_of=AS_OF).empty
