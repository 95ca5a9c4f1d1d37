# schedule_health/analysis/dcma_engine.py

"""
DCMA 14-point schedule assessment.

Every check is independent, reads the snapshots without modifying them and
returns a Metric. Checks never raise: an empty population produces an
"info" metric, and a missing baseline produces an explicit "N/A" metric.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union

import numpy as np
import pandas as pd

from schedule_health.analysis.task_status import (
    DEFAULT_POLICY,
    StatusPolicy,
    has_started,
    is_complete,
)
from schedule_health.p6.schedule import HOURS_PER_DAY, ScheduleSnapshot

logger = logging.getLogger(__name__)

PASS = "pass"
WARN = "warn"
FAIL = "fail"
INFO = "info"

NOT_AVAILABLE = "N/A"

HIGH_HOURS = 352.0   # 44 working days at 8 h/day

HARD_CONSTRAINTS = {
    "CS_MSO", "CS_MFO",
    "CS_MSOA", "CS_MSOB", "CS_MEOA", "CS_MEOB",
    "CS_SNET", "CS_FNET", "CS_SNLT", "CS_FNLT",
}
ALAP_CONSTRAINTS = {"CS_ALAP"}

MILESTONE_TYPES = {"TT_Mile", "TT_FinMile"}
SUMMARY_TYPES = {"TT_WBS"}


# ---------------------------------------------------------
# METRIC + THRESHOLDS
# ---------------------------------------------------------

@dataclass(frozen=True)
class Metric:
    value: Union[int, float, str, Dict[str, float]]
    threshold: str
    status: str
    description: str
    details: str = ""
    recommendation: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "value": self.value,
            "threshold": self.threshold,
            "status": self.status,
            "description": self.description,
            "details": self.details,
            "recommendation": self.recommendation,
        }


@dataclass(frozen=True)
class Threshold:
    """
    Fixed pass/warn boundaries.

    upper=True:  value <= pass_at passes, value <= warn_at warns
    upper=False: value >= pass_at passes, value >= warn_at warns
    warn_at=None means there is no warning band.
    """

    label: str
    pass_at: float
    warn_at: Optional[float] = None
    upper: bool = True

    def grade(self, value: float) -> str:
        if self.upper:
            if value <= self.pass_at:
                return PASS
            if self.warn_at is not None and value <= self.warn_at:
                return WARN
            return FAIL
        if value >= self.pass_at:
            return PASS
        if self.warn_at is not None and value >= self.warn_at:
            return WARN
        return FAIL


# Percentages unless noted otherwise
CHECK_THRESHOLDS: Dict[str, Threshold] = {
    "missingLogic": Threshold("≤ 5%", 5, 10),
    "hardConstraints": Threshold("≤ 5%", 5, 10),
    "highFloat": Threshold("≤ 5%", 5, 15),
    "negativeFloat": Threshold("0%", 0, 2),
    "highDuration": Threshold("≤ 5%", 5, 10),
    "invalidDates": Threshold("0%", 0, 1),
    "leads": Threshold("≤ 5%", 5, 10),
    "lags": Threshold("≤ 5%", 5, 10),
    "relationshipTypes": Threshold("≤ 10%", 10, 25),
    "resourceLoading": Threshold("≥ 95%", 95, 80, upper=False),
    "missedTasks": Threshold("≤ 5%", 5, 15),
    "criticalPathLengthIndex": Threshold("≥ 1.0", 1.0, 0.8, upper=False),
    "baselineExecutionIndex": Threshold("≥ 0.95", 0.95, 0.80, upper=False),
    "isolatedNetworks": Threshold("0%", 0, 1),
    "duplicateActivityIDs": Threshold("0", 0),
    "logicDensity": Threshold("≥ 1.5", 1.5, 1.0, upper=False),
    "openStart": Threshold("≤ 5%", 5, 10),
    "openFinish": Threshold("≤ 5%", 5, 10),
    "alapConstraints": Threshold("≤ 5%", 5, 10),
    "highFreeFloat": Threshold("≤ 10%", 10, 15),
    "zeroDurationTasks": Threshold("0%", 0, 1),
    "circularDependencies": Threshold("0", 0),
    "obsoleteActivities": Threshold("≤ 1%", 0.4, 1),
    "outOfSequence": Threshold("≤ 5%", 2, 5),
}

# Share of all activities flagged critical (band, not a single boundary)
CRITICAL_BAND_PASS = (5.0, 15.0)
CRITICAL_BAND_WARN = (2.0, 20.0)


def pct(part: float, whole: float) -> float:
    """part / whole * 100, 0.0 for an empty denominator."""
    if not whole:
        return 0.0
    return float(part) / float(whole) * 100.0


def _empty_metric(key: str, description: str, value: Any = 0) -> Metric:
    return Metric(
        value=value,
        threshold=CHECK_THRESHOLDS[key].label if key in CHECK_THRESHOLDS else "",
        status=INFO,
        description=description,
    )


# ---------------------------------------------------------
# SHARED PREDICATES
# ---------------------------------------------------------

def no_logic_mask(snapshot: ScheduleSnapshot) -> pd.Series:
    """Tasks with neither predecessors nor successors."""
    return (snapshot.predecessor_counts() == 0) & (snapshot.successor_counts() == 0)


def critical_mask(snapshot: ScheduleSnapshot) -> pd.Series:
    return snapshot.tasks["Driving"].astype(bool)


def milestone_mask(tasks: pd.DataFrame) -> pd.Series:
    return tasks["TaskType"].isin(MILESTONE_TYPES) | (tasks["DurationHrs"] == 0)


def work_activity_mask(
    tasks: pd.DataFrame,
    as_of: pd.Timestamp,
    policy: StatusPolicy = DEFAULT_POLICY,
) -> pd.Series:
    """
    Remaining schedulable work: not a milestone, not a WBS summary,
    not complete, positive duration.
    """
    return (
        ~milestone_mask(tasks)
        & ~tasks["TaskType"].isin(SUMMARY_TYPES)
        & ~is_complete(tasks, as_of, policy)
        & (tasks["DurationHrs"] > 0)
    )


def constraint_mask(tasks: pd.DataFrame, types: set) -> pd.Series:
    return tasks["Constraint1"].isin(types) | tasks["Constraint2"].isin(types)


def find_cycle_members(snapshot: ScheduleSnapshot) -> set:
    """
    Task ids that cannot be placed in a topological order.

    Kahn's algorithm over the edges whose both ends exist; whatever is left
    with a non-zero in-degree sits on or behind a logic loop.
    """
    nodes = set(snapshot.tasks["TaskID"])
    indeg = {n: 0 for n in nodes}
    edges_from = {n: [] for n in nodes}

    for pred, succ in snapshot.relationships[["PredTaskID", "TaskID"]].itertuples(index=False):
        if pred in nodes and succ in nodes:
            edges_from[pred].append(succ)
            indeg[succ] += 1

    q = deque([n for n in nodes if indeg[n] == 0])
    seen = set()
    while q:
        n = q.popleft()
        seen.add(n)
        for succ in edges_from[n]:
            indeg[succ] -= 1
            if indeg[succ] == 0:
                q.append(succ)

    return nodes - seen


# ---------------------------------------------------------
# ANALYZER
# ---------------------------------------------------------

class DcmaAnalyzer:
    """
    Runs the assessment over a current snapshot and an optional baseline.

    data_date defaults to the current snapshot's data date, falling back to
    wall-clock time (logged by ScheduleSnapshot.resolve_data_date).
    """

    def __init__(
        self,
        current: ScheduleSnapshot,
        baseline: Optional[ScheduleSnapshot] = None,
        data_date: Optional[pd.Timestamp] = None,
        policy: StatusPolicy = DEFAULT_POLICY,
    ):
        self.current = current
        self.baseline = baseline
        self.policy = StatusPolicy(policy)
        if data_date is not None:
            self.data_date, self.data_date_source = pd.Timestamp(data_date), "override"
        else:
            self.data_date, self.data_date_source = current.resolve_data_date()

        self.tasks = current.tasks
        self.total = len(self.tasks)

    # ---- run ----

    def checks(self) -> Dict[str, Callable[[], Metric]]:
        return {
            "missingLogic": self.check_missing_logic,
            "hardConstraints": self.check_hard_constraints,
            "highFloat": self.check_high_float,
            "negativeFloat": self.check_negative_float,
            "highDuration": self.check_high_duration,
            "invalidDates": self.check_invalid_dates,
            "criticalPath": self.check_critical_path,
            "leads": self.check_leads,
            "lags": self.check_lags,
            "relationshipTypes": self.check_relationship_types,
            "resourceLoading": self.check_resource_loading,
            "missedTasks": self.check_missed_tasks,
            "criticalPathLengthIndex": self.calculate_cpli,
            "baselineExecutionIndex": self.calculate_bei,
            "isolatedNetworks": self.check_isolated_networks,
            "highFreeFloat": self.check_high_free_float,
            "zeroDurationTasks": self.check_zero_duration,
            "circularDependencies": self.check_circular_dependencies,
            "obsoleteActivities": self.check_obsolete,
            "outOfSequence": self.check_out_of_sequence,
            "duplicateActivityIDs": self.check_duplicate_ids,
            "logicDensity": self.check_logic_density,
            "criticalActivities": self.check_critical_activities,
            "openStart": self.check_open_start,
            "openFinish": self.check_open_finish,
            "alapConstraints": self.check_alap,
        }

    def analyze(self) -> Dict[str, Metric]:
        metrics: Dict[str, Metric] = {}
        for key, check in self.checks().items():
            try:
                metrics[key] = check()
            except Exception as e:
                logger.warning("DCMA check %s could not be computed: %s", key, e, exc_info=True)
                metrics[key] = _empty_metric(
                    key, f"Check could not be computed: {e}", value=NOT_AVAILABLE
                )
        return metrics

    # ---- helpers ----

    def _ratio_metric(
        self,
        key: str,
        count: int,
        population: int,
        description: str,
        details: str = "",
        recommendation: str = "",
    ) -> Metric:
        """Count over a population, graded on the percentage."""
        if population == 0:
            return _empty_metric(key, f"No activities in scope. {description}")
        share = pct(count, population)
        return Metric(
            value=int(count),
            threshold=CHECK_THRESHOLDS[key].label,
            status=CHECK_THRESHOLDS[key].grade(share),
            description=f"{description} Found {count} of {population} ({share:.1f}%).",
            details=details,
            recommendation=recommendation,
        )

    def _work_mask(self) -> pd.Series:
        return work_activity_mask(self.tasks, self.data_date, self.policy)

    def _complete(self, tasks: pd.DataFrame) -> pd.Series:
        return is_complete(tasks, self.data_date, self.policy)

    # -----------------------------------------------------
    # 1. Logic
    # -----------------------------------------------------

    def check_missing_logic(self) -> Metric:
        no_preds = int((self.current.predecessor_counts() == 0).sum())
        no_succs = int((self.current.successor_counts() == 0).sum())
        missing = int(no_logic_mask(self.current).sum())
        return self._ratio_metric(
            "missingLogic", missing, self.total,
            "DCMA: no more than 5% of activities should lack both predecessor and successor logic.",
            details=f"Missing predecessors: {no_preds}, Missing successors: {no_succs}, Missing both: {missing}",
            recommendation="Add finish-to-start relationships so every activity sits in the network.",
        )

    def check_isolated_networks(self) -> Metric:
        isolated = int(no_logic_mask(self.current).sum())
        return self._ratio_metric(
            "isolatedNetworks", isolated, self.total,
            "Activities with no logical connection to any other activity.",
            recommendation="Connect isolated activities to the main project network.",
        )

    def check_open_start(self) -> Metric:
        count = int((self.current.predecessor_counts() == 0).sum())
        return self._ratio_metric(
            "openStart", count, self.total,
            "Activities without predecessor relationships.",
            recommendation="Limit open starts to true project start activities.",
        )

    def check_open_finish(self) -> Metric:
        count = int((self.current.successor_counts() == 0).sum())
        return self._ratio_metric(
            "openFinish", count, self.total,
            "Activities without successor relationships.",
            recommendation="Limit open finishes to true project end activities.",
        )

    def check_logic_density(self) -> Metric:
        key = "logicDensity"
        if self.total == 0:
            return _empty_metric(key, "No activities in scope. Average predecessor relationships per activity.", value=0.0)
        edges = int(self.current.predecessor_counts().sum())
        density = round(edges / self.total, 2)
        return Metric(
            value=density,
            threshold=CHECK_THRESHOLDS[key].label,
            status=CHECK_THRESHOLDS[key].grade(density),
            description=f"Average predecessor relationships per activity: {density:.2f}.",
            details=f"Activities: {self.total}, Predecessor relationships: {edges}",
            recommendation=(
                "Increase logic density by adding predecessor relationships."
                if density < 1.5 else "Logic density is adequate."
            ),
        )

    def check_circular_dependencies(self) -> Metric:
        key = "circularDependencies"
        if self.total == 0:
            return _empty_metric(key, "No activities in scope. Circular logic check.")
        looped = find_cycle_members(self.current)
        count = len(looped)
        sample = ", ".join(sorted(self.tasks.loc[self.tasks["TaskID"].isin(looped), "TaskCode"])[:10])
        return Metric(
            value=count,
            threshold=CHECK_THRESHOLDS[key].label,
            status=CHECK_THRESHOLDS[key].grade(count),
            description=f"Activities on or behind a circular logic loop: {count}.",
            details=f"Examples: {sample}" if sample else "",
            recommendation="Break logic loops; the network must be acyclic.",
        )

    # -----------------------------------------------------
    # 2. Constraints
    # -----------------------------------------------------

    def check_hard_constraints(self) -> Metric:
        count = int(constraint_mask(self.tasks, HARD_CONSTRAINTS).sum())
        return self._ratio_metric(
            "hardConstraints", count, self.total,
            "DCMA: no more than 5% of activities should carry hard constraints "
            "(Must Start/Finish On, Start/Finish No Earlier/Later Than).",
            recommendation="Replace hard constraints with logic-driven relationships.",
        )

    def check_alap(self) -> Metric:
        count = int(constraint_mask(self.tasks, ALAP_CONSTRAINTS).sum())
        return self._ratio_metric(
            "alapConstraints", count, self.total,
            "Activities with As Late As Possible constraints.",
            recommendation="Review ALAP constraints and prefer logic relationships.",
        )

    # -----------------------------------------------------
    # 3. Float and duration
    # -----------------------------------------------------

    def check_high_float(self) -> Metric:
        work = self._work_mask()
        count = int((work & (self.tasks["TotalFloatHrs"] > HIGH_HOURS)).sum())
        population = int(work.sum())
        return self._ratio_metric(
            "highFloat", count, population,
            "DCMA: no more than 5% of work activities should have total float > 44 days. "
            "Excludes milestones, summaries and completed activities.",
            details=f"Total activities: {self.total}, Work activities: {population}, High float: {count}",
            recommendation="Review high float activities for missing logic.",
        )

    def check_negative_float(self) -> Metric:
        key = "negativeFloat"
        if self.total == 0:
            return _empty_metric(key, "No activities in scope. Negative float check.")
        count = int((self.tasks["TotalFloatHrs"] < 0).sum())
        share = pct(count, self.total)
        status = PASS if count == 0 else CHECK_THRESHOLDS[key].grade(share)
        return Metric(
            value=count,
            threshold=CHECK_THRESHOLDS[key].label,
            status=status,
            description=f"DCMA: no activity should have negative float. Found {count} of {self.total} ({share:.1f}%).",
            details=f"Total activities: {self.total}, Negative float: {count}",
            recommendation="Recover negative float through logic revision, acceleration or scope change.",
        )

    def check_high_duration(self) -> Metric:
        work = self._work_mask()
        count = int((work & (self.tasks["DurationHrs"] > HIGH_HOURS)).sum())
        population = int(work.sum())
        return self._ratio_metric(
            "highDuration", count, population,
            "DCMA: no more than 5% of work activities should last longer than 44 days.",
            details=f"Work activities: {population}, High duration: {count}",
            recommendation="Break long activities into work packages of 1-4 weeks.",
        )

    def check_high_free_float(self) -> Metric:
        count = int((self.tasks["FreeFloatHrs"] > 0).sum())
        return self._ratio_metric(
            "highFreeFloat", count, self.total,
            "Activities with free float above 0 hours.",
            recommendation="Monitor free float for optimisation opportunities.",
        )

    def check_zero_duration(self) -> Metric:
        non_milestone = ~self.tasks["TaskType"].isin(MILESTONE_TYPES)
        count = int((non_milestone & (self.tasks["DurationHrs"] == 0)).sum())
        return self._ratio_metric(
            "zeroDurationTasks", count, int(non_milestone.sum()),
            "Non-milestone activities with zero duration.",
            recommendation="Convert zero duration work to milestones or give it a real duration.",
        )

    # -----------------------------------------------------
    # 4. Dates and progress
    # -----------------------------------------------------

    def check_invalid_dates(self) -> Metric:
        t = self.tasks
        dd = self.data_date
        bad_range = t["TargetStart"].isna() | t["TargetFinish"].isna() | (t["TargetStart"] >= t["TargetFinish"])
        future_actuals = (t["ActualStart"] > dd) | (t["ActualFinish"] > dd)
        stale_forecast = ~self._complete(t) & (t["TargetFinish"] < dd)
        invalid = bad_range | future_actuals | stale_forecast
        count = int(invalid.sum())
        return self._ratio_metric(
            "invalidDates", count, self.total,
            "DCMA: no activity should have invalid dates (start on/after finish, "
            "actuals after the data date, or unfinished work planned before it).",
            details=(
                f"Bad planned range: {int(bad_range.sum())}, Actuals after data date: "
                f"{int(future_actuals.sum())}, Planned finish before data date: {int(stale_forecast.sum())}"
            ),
            recommendation="Correct date logic and keep actuals on or before the data date.",
        )

    def check_missed_tasks(self) -> Metric:
        t = self.tasks
        due = ~milestone_mask(t) & (t["TargetFinish"] <= self.data_date)
        missed = due & ~self._complete(t)
        return self._ratio_metric(
            "missedTasks", int(missed.sum()), int(due.sum()),
            "Activities planned to finish by the data date that are not complete.",
            details=f"Should be finished: {int(due.sum())}, Missed: {int(missed.sum())}",
            recommendation="Update progress and plan recovery for missed work.",
        )

    def check_obsolete(self) -> Metric:
        t = self.tasks
        no_actuals = t["ActualStart"].isna() & (t["ActWorkQty"] <= 0)
        obsolete = (
            (t["TargetFinish"] < self.data_date)
            & no_actuals
            & ~self._complete(t)
            & (t["RemainWorkQty"] > 0)
        )
        return self._ratio_metric(
            "obsoleteActivities", int(obsolete.sum()), self.total,
            "Past-due activities with remaining work and no actual progress.",
            recommendation="Progress or remove obsolete activities.",
        )

    def check_out_of_sequence(self) -> Metric:
        t = self.tasks
        started = has_started(t, self.data_date, self.policy)
        complete_ids = set(t.loc[self._complete(t), "TaskID"])
        known_ids = set(t["TaskID"])

        def _oos(task_id: str) -> bool:
            return any(
                pred in known_ids and pred not in complete_ids
                for pred, _, _ in self.current.predecessors_of(task_id)
            )

        started_ids = t.loc[started, "TaskID"]
        count = int(started_ids.map(_oos).sum()) if len(started_ids) else 0
        return self._ratio_metric(
            "outOfSequence", count, int(started.sum()),
            "Started activities with an incomplete predecessor.",
            recommendation="Correct logic or progress for out-of-sequence work.",
        )

    # -----------------------------------------------------
    # 5. Critical path
    # -----------------------------------------------------

    def _critical_band_status(self, share: float, gaps: int = 0) -> str:
        lo, hi = CRITICAL_BAND_PASS
        wlo, whi = CRITICAL_BAND_WARN
        if lo <= share <= hi and gaps == 0:
            return PASS
        if wlo <= share <= whi and gaps <= 1:
            return WARN
        return FAIL

    def continuity_gaps(self) -> int:
        """
        Critical activities that have predecessors and successors but no
        critical neighbour in either direction.
        """
        crit_ids = set(self.tasks.loc[critical_mask(self.current), "TaskID"])
        gaps = 0
        for task_id in crit_ids:
            preds = self.current.predecessors_of(task_id)
            succs = self.current.successors_of(task_id)
            if not preds or not succs:
                continue
            if any(p in crit_ids for p, _, _ in preds) or any(s in crit_ids for s, _, _ in succs):
                continue
            gaps += 1
        return gaps

    def check_critical_path(self) -> Metric:
        if self.total == 0:
            return _empty_metric("criticalPath", "No activities in scope. Critical path validity.")
        count = int(critical_mask(self.current).sum())
        share = pct(count, self.total)
        gaps = self.continuity_gaps()
        return Metric(
            value=count,
            threshold="5-15%",
            status=self._critical_band_status(share, gaps),
            description=(
                f"DCMA: the critical path should hold 5-15% of activities and be continuous. "
                f"Found {count} critical activities ({share:.1f}%) with {gaps} continuity gaps."
            ),
            details=f"Critical: {count}, Continuity gaps: {gaps}",
            recommendation="Verify the critical path is a connected chain of driving activities.",
        )

    def check_critical_activities(self) -> Metric:
        if self.total == 0:
            return _empty_metric("criticalActivities", "No activities in scope. Critical activity share.")
        count = int(critical_mask(self.current).sum())
        share = pct(count, self.total)
        if share < CRITICAL_BAND_PASS[0]:
            advice = "Critical path may be too short; verify logic."
        elif share > CRITICAL_BAND_PASS[1]:
            advice = "Critical path may be too long; review for optimisation."
        else:
            advice = "Critical path length is within range."
        return Metric(
            value=count,
            threshold="5-15%",
            status=self._critical_band_status(share),
            description=f"Activities on the critical path: {count} ({share:.1f}%).",
            recommendation=advice,
        )

    # -----------------------------------------------------
    # 6. Relationships
    # -----------------------------------------------------

    def check_leads(self) -> Metric:
        rels = self.current.relationships
        count = int((rels["LagHrs"] < 0).sum())
        return self._ratio_metric(
            "leads", count, len(rels),
            "DCMA: no more than 5% of relationships should use leads (negative lag).",
            recommendation="Replace leads with a proper logic breakdown.",
        )

    def check_lags(self) -> Metric:
        rels = self.current.relationships
        count = int((rels["LagHrs"] > 0).sum())
        return self._ratio_metric(
            "lags", count, len(rels),
            "DCMA: no more than 5% of relationships should use lags (positive lag).",
            recommendation="Justify lags or model the waiting time as activities.",
        )

    def check_relationship_types(self) -> Metric:
        rels = self.current.relationships
        counts = rels["RelType"].value_counts()
        by_type = {t: int(counts.get(t, 0)) for t in ("FS", "SS", "FF", "SF")}
        non_fs = by_type["SS"] + by_type["FF"] + by_type["SF"]
        return self._ratio_metric(
            "relationshipTypes", non_fs, len(rels),
            "DCMA: minimise non finish-to-start relationships.",
            details=", ".join(f"{k}: {v}" for k, v in by_type.items()),
            recommendation="Convert non-FS relationships to FS where the work flow allows.",
        )

    # -----------------------------------------------------
    # 7. Resources
    # -----------------------------------------------------

    def check_resource_loading(self) -> Metric:
        key = "resourceLoading"
        work = self._work_mask()
        population = int(work.sum())
        if population == 0:
            return _empty_metric(key, "No work activities in scope. Resource loading.")

        r = self.current.resources
        loaded_rows = r[
            (r["TargetQty"] != 0) | (r["RemainQty"] != 0)
            | (r["TargetCost"] != 0) | (r["RemainCost"] != 0)
        ]
        loaded = self.tasks["TaskID"].isin(set(loaded_rows["TaskID"]))
        loaded_count = int((work & loaded).sum())
        missing = population - loaded_count
        loaded_share = pct(loaded_count, population)
        return Metric(
            value=missing,
            threshold=CHECK_THRESHOLDS[key].label,
            status=CHECK_THRESHOLDS[key].grade(loaded_share),
            description=(
                f"DCMA: at least 95% of work activities should be resource loaded. "
                f"{loaded_count} of {population} loaded ({loaded_share:.1f}%), {missing} missing."
            ),
            details=f"Work activities: {population}, Resource-loaded: {loaded_count}, Missing: {missing}",
            recommendation="Assign resources to the remaining work activities.",
        )

    # -----------------------------------------------------
    # 8. Baseline comparison
    # -----------------------------------------------------

    def calculate_cpli(self) -> Metric:
        """
        Critical Path Length Index:
            remaining days (data date -> latest planned finish)
            / baseline critical duration in days
        """
        key = "criticalPathLengthIndex"
        if self.baseline is None:
            return _empty_metric(
                key,
                "CPLI requires a baseline schedule. Upload a baseline to calculate it.",
                value=NOT_AVAILABLE,
            )

        if self.current.is_empty or self.current.tasks["TargetFinish"].isna().all():
            return _empty_metric(
                key,
                "CPLI unavailable: the current schedule has no planned finish dates.",
                value=NOT_AVAILABLE,
            )

        base = self.baseline.tasks
        base_crit_days = float(base.loc[base["Driving"].astype(bool), "DurationHrs"].sum()) / HOURS_PER_DAY
        _, project_end = self.current.date_range(now=self.data_date)
        remaining_days = max(0.0, (project_end - self.data_date).total_seconds() / 86400.0)

        if base_crit_days <= 0:
            return _empty_metric(
                key,
                "CPLI unavailable: the baseline has no critical path duration.",
                value=NOT_AVAILABLE,
            )

        cpli = round(remaining_days / base_crit_days, 3)
        return Metric(
            value=cpli,
            threshold=CHECK_THRESHOLDS[key].label,
            status=CHECK_THRESHOLDS[key].grade(cpli),
            description=f"Critical Path Length Index {cpli:.3f}. >= 1.0 good, 0.8-1.0 caution, < 0.8 at risk.",
            details=f"Remaining days: {remaining_days:.1f}, Baseline critical days: {base_crit_days:.1f}",
            recommendation=(
                "Accelerate or de-scope critical work." if cpli < 1.0
                else "Continue monitoring critical path performance."
            ),
        )

    def calculate_bei(self) -> Metric:
        """Baseline Execution Index: share of baseline work due by the data date that is done."""
        key = "baselineExecutionIndex"
        if self.baseline is None:
            return _empty_metric(
                key,
                "BEI requires a baseline schedule. Upload a baseline to calculate it.",
                value=NOT_AVAILABLE,
            )

        base = self.baseline.tasks
        due_codes = base.loc[base["TargetFinish"] <= self.data_date, "TaskCode"]
        if due_codes.empty:
            return _empty_metric(
                key,
                "BEI unavailable: no baseline activities were due by the data date.",
                value=NOT_AVAILABLE,
            )

        done_codes = set(self.tasks.loc[self._complete(self.tasks), "TaskCode"])
        done = int(due_codes.isin(done_codes).sum())
        bei = round(done / len(due_codes), 3)
        return Metric(
            value=bei,
            threshold=CHECK_THRESHOLDS[key].label,
            status=CHECK_THRESHOLDS[key].grade(bei),
            description=(
                f"{done} of {len(due_codes)} baseline activities due by the data date are complete "
                f"(BEI {bei:.3f})."
            ),
            recommendation=(
                "Recover incomplete baseline work." if bei < 0.95
                else "Schedule execution is on plan."
            ),
        )

    # -----------------------------------------------------
    # 9. Identity
    # -----------------------------------------------------

    def check_duplicate_ids(self) -> Metric:
        key = "duplicateActivityIDs"
        if self.total == 0:
            return _empty_metric(key, "No activities in scope. Duplicate activity ID check.")
        codes = self.tasks["TaskCode"]
        dup = int(len(codes) - codes.nunique())
        return Metric(
            value=dup,
            threshold=CHECK_THRESHOLDS[key].label,
            status=CHECK_THRESHOLDS[key].grade(dup),
            description=f"Duplicate activity ID codes: {dup}.",
            recommendation="Ensure all activity IDs are unique.",
        )


def analyze(
    current: ScheduleSnapshot,
    baseline: Optional[ScheduleSnapshot] = None,
    data_date: Optional[pd.Timestamp] = None,
    policy: StatusPolicy = DEFAULT_POLICY,
) -> Dict[str, Metric]:
    """Run every DCMA check. See DcmaAnalyzer."""
    return DcmaAnalyzer(current, baseline, data_date=data_date, policy=policy).analyze()


def summarize(metrics: Dict[str, Metric]) -> Dict[str, int]:
    """Number of metrics per status."""
    statuses = np.array([m.status for m in metrics.values()], dtype=object)
    return {s: int((statuses == s).sum()) for s in (PASS, WARN, FAIL, INFO)}
