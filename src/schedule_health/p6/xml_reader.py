"""
P6 XML (PMXML) reader.

Secondary adapter with the same output contract as the XER reader:
Activity / Relationship / ResourceAssignment / Project elements are mapped
onto the canonical ScheduleSnapshot frames. Element lookup ignores XML
namespaces.
"""

import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import List, Optional, Union

import pandas as pd

from schedule_health.p6.schedule import (
    HOURS_PER_DAY,
    ProjectInfo,
    ScheduleSnapshot,
    to_timestamp,
)
from schedule_health.p6.xer_reader import (
    FormatError,
    ProgressCallback,
    decode_bytes,
)

logger = logging.getLogger(__name__)

RELATION_TYPE_MAP = {
    "FinishToStart": "FS",
    "StartToStart": "SS",
    "FinishToFinish": "FF",
    "StartToFinish": "SF",
}

ACTIVITY_TYPE_MAP = {
    "Task Dependent": "TT_Task",
    "Resource Dependent": "TT_Rsrc",
    "Level of Effort": "TT_LOE",
    "Start Milestone": "TT_Mile",
    "Finish Milestone": "TT_FinMile",
    "WBS Summary": "TT_WBS",
}

STATUS_MAP = {
    "Not Started": "TK_NotStart",
    "In Progress": "TK_Active",
    "Completed": "TK_Complete",
}


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _iter(node: ET.Element, name: str):
    for el in node.iter():
        if _local(el.tag) == name:
            yield el


def _text(node: ET.Element, name: str) -> str:
    for child in node:
        if _local(child.tag) == name:
            return (child.text or "").strip()
    return ""


def _days_to_hours(value: str) -> float:
    """PMXML durations/floats are read as days and stored as hours."""
    num = pd.to_numeric(value, errors="coerce")
    if pd.isna(num):
        return 0.0
    return float(num) * HOURS_PER_DAY


def _activities(root: ET.Element) -> List[dict]:
    rows = []
    for node in _iter(root, "Activity"):
        status = _text(node, "Status")
        act_type = _text(node, "Type")
        rows.append({
            "TaskID": _text(node, "ObjectId"),
            "TaskCode": _text(node, "Id"),
            "Name": _text(node, "Name"),
            "TaskType": ACTIVITY_TYPE_MAP.get(act_type, act_type),
            "Status": STATUS_MAP.get(status, status),
            "TargetStart": _text(node, "PlannedStartDate") or _text(node, "StartDate"),
            "TargetFinish": _text(node, "PlannedFinishDate") or _text(node, "FinishDate"),
            "ActualStart": _text(node, "ActualStartDate"),
            "ActualFinish": _text(node, "ActualFinishDate"),
            "DurationHrs": _days_to_hours(_text(node, "PlannedDuration")),
            "RemainingHrs": _days_to_hours(_text(node, "RemainingDuration")),
            "TotalFloatHrs": _days_to_hours(_text(node, "TotalFloat")),
            "FreeFloatHrs": _days_to_hours(_text(node, "FreeFloat")),
            "Constraint1": _text(node, "PrimaryConstraintType"),
            "ConstraintDate1": _text(node, "PrimaryConstraintDate"),
            "Constraint2": _text(node, "SecondaryConstraintType"),
            "ConstraintDate2": _text(node, "SecondaryConstraintDate"),
            "Driving": "Y" if _text(node, "IsCritical").lower() == "true" else "N",
            "PhysPct": _text(node, "PhysicalPercentComplete"),
            "WBS": _text(node, "WBSObjectId"),
        })
    return rows


def _relationships(root: ET.Element) -> List[dict]:
    rows = []
    for node in _iter(root, "Relationship"):
        rows.append({
            "PredTaskID": _text(node, "PredecessorActivityObjectId") or _text(node, "PredecessorObjectId"),
            "TaskID": _text(node, "SuccessorActivityObjectId") or _text(node, "SuccessorObjectId"),
            "RelType": RELATION_TYPE_MAP.get(_text(node, "Type"), "FS"),
            "LagHrs": _days_to_hours(_text(node, "Lag")),
        })
    return rows


def _resources(root: ET.Element) -> List[dict]:
    rows = []
    for node in _iter(root, "ResourceAssignment"):
        rows.append({
            "TaskID": _text(node, "ActivityObjectId"),
            "ResourceID": _text(node, "ResourceObjectId"),
            "TargetQty": _text(node, "PlannedUnits"),
            "RemainQty": _text(node, "RemainingUnits"),
            "TargetCost": _text(node, "PlannedCost"),
            "RemainCost": _text(node, "RemainingCost"),
        })
    return rows


def _project(root: ET.Element) -> ProjectInfo:
    node = next(_iter(root, "Project"), None)
    if node is None:
        return ProjectInfo()
    return ProjectInfo(
        project_id=_text(node, "ObjectId"),
        short_name=_text(node, "Id"),
        plan_start=to_timestamp(_text(node, "PlannedStartDate")),
        plan_finish=to_timestamp(_text(node, "MustFinishByDate")),
        forecast_finish=to_timestamp(_text(node, "ScheduledFinishDate")),
        data_date=to_timestamp(_text(node, "DataDate")),
        baseline_project_id=_text(node, "CurrentBaselineProjectObjectId"),
    )


def parse_p6_xml(
    raw: Union[str, bytes],
    on_progress: Optional[ProgressCallback] = None,
    source: str = "",
) -> ScheduleSnapshot:
    """
    Parse P6 XML content into a ScheduleSnapshot.

    Raises:
        FormatError: the content is not well-formed XML
    """
    text = decode_bytes(raw) if isinstance(raw, (bytes, bytearray)) else raw
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise FormatError(f"Unreadable P6 XML: {e}") from e

    if on_progress:
        on_progress(50)

    tasks = pd.DataFrame(_activities(root))
    rels = pd.DataFrame(_relationships(root))
    rsrcs = pd.DataFrame(_resources(root))

    logger.info(
        "Read P6 XML: %d activities, %d relationships, %d assignments",
        len(tasks), len(rels), len(rsrcs),
    )

    snapshot = ScheduleSnapshot.from_frames(
        tasks=tasks,
        relationships=rels,
        resources=rsrcs,
        project=_project(root),
        source=source,
    )
    if on_progress:
        on_progress(100)
    return snapshot


def read_xml_file(path, on_progress: Optional[ProgressCallback] = None) -> ScheduleSnapshot:
    path = Path(path)
    return parse_p6_xml(path.read_bytes(), on_progress=on_progress, source=path.name)
