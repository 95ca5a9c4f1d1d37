from pathlib import Path

import pandas as pd

from schedule_health.config.settings import settings
from schedule_health.p6.schedule import ScheduleSnapshot

ISSUE_COLUMNS = ["TaskID", "Name", "Severity", "IssueType", "Description", "SuggestedFix"]


# ------------------------------------------------------------------
# 🧱 Helper: make a consistent issue dictionary
# ------------------------------------------------------------------
def make_issue(task_id, name, severity, issue_type, description, suggestion):
    return {
        "TaskID": task_id,
        "Name": name,
        "Severity": severity,
        "IssueType": issue_type,
        "Description": description,
        "SuggestedFix": suggestion,
    }


def issues_to_frame(issues):
    return pd.DataFrame(issues, columns=ISSUE_COLUMNS)


# ------------------------------------------------------------------
# 📥 UPLOAD CONSTRAINTS (checked before the parser runs)
# ------------------------------------------------------------------
def validate_upload(filename, size_bytes, max_bytes=None, allowed_extensions=None):
    """
    Returns a list of issues; an empty list means the file may be parsed.
    """
    max_bytes = max_bytes if max_bytes is not None else settings.max_upload_bytes()
    allowed = tuple(e.lower() for e in (allowed_extensions or settings.ALLOWED_EXTENSIONS))
    issues = []

    ext = Path(str(filename or "")).suffix.lower()
    if ext not in allowed:
        issues.append(make_issue(
            "N/A", filename, "critical", "UnsupportedFileType",
            f"File type '{ext or '(none)'}' is not supported.",
            f"Export the schedule from P6 as one of: {', '.join(allowed)}."
        ))

    if size_bytes is not None and size_bytes > max_bytes:
        issues.append(make_issue(
            "N/A", filename, "critical", "FileTooLarge",
            f"File is {size_bytes / (1024 * 1024):.1f} MB; the limit is {max_bytes / (1024 * 1024):.0f} MB.",
            "Export a filtered layout or split the project before uploading."
        ))

    if size_bytes == 0:
        issues.append(make_issue(
            "N/A", filename, "critical", "EmptyFile",
            "File is empty.",
            "Re-export the schedule from P6."
        ))

    return issues


# ------------------------------------------------------------------
# 🧠 STRUCTURAL VALIDATION OF A PARSED SCHEDULE
# ------------------------------------------------------------------
def validate_schedule(snapshot: ScheduleSnapshot) -> pd.DataFrame:
    """
    Structural problems the DCMA checks do not cover: blank or duplicate
    identifiers, unusable planned dates, relationships pointing at tasks
    that are not in the file.
    """
    df = snapshot.tasks
    issues = []

    if df.empty:
        issues.append(make_issue(
            "N/A", "N/A", "critical", "NoTasks",
            "The schedule contains no activities.",
            "Check that the export includes the TASK table."
        ))
        return issues_to_frame(issues)

    # ------------------------------------------------------------------
    # 1. Identifiers
    # ------------------------------------------------------------------
    blank_ids = df[df["TaskID"] == ""]
    if len(blank_ids):
        issues.append(make_issue(
            None, None, "critical", "TaskIDBlank",
            f"{len(blank_ids)} activities have no internal task id.",
            "Re-export the schedule; task_id must be populated."
        ))

    dups = df.loc[df["TaskID"].duplicated() & (df["TaskID"] != ""), "TaskID"].unique().tolist()
    if dups:
        issues.append(make_issue(
            ", ".join(map(str, dups)), "",
            "critical", "DuplicateTaskID",
            f"Duplicate internal task ids detected: {dups}",
            "The export may combine several projects; export one project at a time."
        ))

    blank_codes = df[df["TaskCode"] == ""]
    for _, row in blank_codes.iterrows():
        issues.append(make_issue(
            row["TaskID"], row["Name"],
            "error", "TaskCodeBlank",
            "Activity has no Activity ID (task code).",
            "Assign an Activity ID in P6."
        ))

    # ------------------------------------------------------------------
    # 2. Planned dates
    # ------------------------------------------------------------------
    for col in ["TargetStart", "TargetFinish"]:
        bad_count = int(df[col].isna().sum())
        if bad_count > 0:
            issues.append(make_issue(
                None, None,
                "error" if bad_count < len(df) / 10 else "critical",
                "InvalidDate",
                f"{col} has {bad_count} missing or unparseable date(s).",
                f"Schedule the project in P6 so every activity has a {col}."
            ))

    bad = df[df["TargetStart"] > df["TargetFinish"]]
    for _, row in bad.iterrows():
        issues.append(make_issue(
            row["TaskID"], row["Name"],
            "critical", "InvalidDateOrder",
            "Planned start is after planned finish.",
            "Reschedule the project (F9) and re-export."
        ))

    # ------------------------------------------------------------------
    # 3. Relationship references
    # ------------------------------------------------------------------
    all_ids = set(df["TaskID"])
    names = dict(zip(df["TaskID"], df["Name"]))

    for pred, succ in snapshot.relationships[["PredTaskID", "TaskID"]].itertuples(index=False):
        if succ not in all_ids:
            issues.append(make_issue(
                succ, "",
                "error", "MissingSuccessorTask",
                f"Relationship from {pred} points at missing task {succ}.",
                "Remove the relationship or include the external project in the export."
            ))
        elif pred not in all_ids:
            issues.append(make_issue(
                succ, names.get(succ, ""),
                "error", "MissingPredecessorTask",
                f"Task depends on missing task id {pred}.",
                "Remove the relationship or include the external project in the export."
            ))

    return issues_to_frame(issues)
