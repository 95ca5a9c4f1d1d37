"""Primavera P6 schedule ingestion and DCMA 14-point health analysis."""

from schedule_health.analysis.chart_engine import Series, build_chart_data
from schedule_health.analysis.dcma_engine import DcmaAnalyzer, Metric, analyze
from schedule_health.analysis.task_status import StatusPolicy, classify
from schedule_health.analysis.variance_engine import (
    FieldChange,
    LookAhead,
    TaskDifference,
    VarianceSummary,
    compare,
    look_ahead,
    variance_summary,
)
from schedule_health.p6.loader import parse_schedule, read_schedule_file
from schedule_health.p6.schedule import ProjectInfo, ScheduleSnapshot
from schedule_health.p6.xer_reader import FormatError, parse_xer
from schedule_health.p6.xml_reader import parse_p6_xml

__version__ = "0.1.0"
