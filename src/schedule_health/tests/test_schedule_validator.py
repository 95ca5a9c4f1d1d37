from schedule_health.validation.schedule_validator import (
    ISSUE_COLUMNS,
    validate_schedule,
    validate_upload,
)


# ----------------------------------------------------------------
# 1. UPLOAD CONSTRAINTS
# ----------------------------------------------------------------
def test_accepts_xer_and_xml():
    assert validate_upload("project.xer", 1024) == []
    assert validate_upload("PROJECT.XML", 1024) == []


def test_rejects_unknown_extension():
    issues = validate_upload("project.mpp", 1024)

    assert [i["IssueType"] for i in issues] == ["UnsupportedFileType"]


def test_rejects_oversized_and_empty_files():
    too_big = validate_upload("project.xer", 11 * 1024 * 1024, max_bytes=10 * 1024 * 1024)
    empty = validate_upload("project.xer", 0)

    assert [i["IssueType"] for i in too_big] == ["FileTooLarge"]
    assert [i["IssueType"] for i in empty] == ["EmptyFile"]


# ----------------------------------------------------------------
# 2. STRUCTURAL ISSUES
# ----------------------------------------------------------------
def test_clean_schedule_has_no_issues(snapshot_builder):
    snap = snapshot_builder([{}, {}], [{"PredTaskID": "1", "TaskID": "2"}])
    issues = validate_schedule(snap)

    assert list(issues.columns) == ISSUE_COLUMNS
    assert issues.empty


def test_empty_schedule_is_critical(snapshot_builder):
    issues = validate_schedule(snapshot_builder([]))

    assert list(issues["IssueType"]) == ["NoTasks"]


def test_reports_identifier_date_and_reference_problems(snapshot_builder):
    snap = snapshot_builder(
        [
            {},
            {"TaskID": "1"},
            {"TaskCode": ""},
            {"TargetStart": "2024-02-01", "TargetFinish": "2024-01-01"},
            {"TargetFinish": None},
        ],
        [
            {"PredTaskID": "99", "TaskID": "3"},
            {"PredTaskID": "3", "TaskID": "77"},
        ],
    )
    types = set(validate_schedule(snap)["IssueType"])

    assert types == {
        "DuplicateTaskID",
        "TaskCodeBlank",
        "InvalidDateOrder",
        "InvalidDate",
        "MissingPredecessorTask",
        "MissingSuccessorTask",
    }
