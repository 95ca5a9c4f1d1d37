"""Choose the schedule reader from a file name."""

from pathlib import Path
from typing import Optional, Union

from schedule_health.p6.schedule import ScheduleSnapshot
from schedule_health.p6.xer_reader import FormatError, ProgressCallback, parse_xer
from schedule_health.p6.xml_reader import parse_p6_xml

PARSERS = {
    ".xer": parse_xer,
    ".xml": parse_p6_xml,
}


def parse_schedule(raw: Union[str, bytes], filename: str,
                   on_progress: Optional[ProgressCallback] = None) -> ScheduleSnapshot:
    """Parse in-memory upload content, choosing the reader from the file name."""
    suffix = Path(filename).suffix.lower()
    parser = PARSERS.get(suffix)
    if parser is None:
        raise FormatError(f"Unsupported schedule file type: {suffix or '<none>'}")
    return parser(raw, on_progress=on_progress, source=Path(filename).name)


def read_schedule_file(path, on_progress: Optional[ProgressCallback] = None) -> ScheduleSnapshot:
    path = Path(path)
    return parse_schedule(path.read_bytes(), path.name, on_progress=on_progress)
