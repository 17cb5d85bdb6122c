"""
finreport/domain package marker.
"""

from finreport.domain.financial_report import (
    Company,
    NormalizedFinancialReport,
    NormalizedPerformanceTrend,
    NormalizedRatio,
    RawReportPage,
    ReportPage,
)
from finreport.domain.tagged_value import (
    ListValue,
    MapValue,
    NumValue,
    StrValue,
    Tag,
    TaggedValue,
    from_wire,
)
from finreport.domain.upload import FileItem, FileStatus, ProcessingState, ProcessingStatus, UploadSummary

__all__ = [
    "Company",
    "FileItem",
    "FileStatus",
    "ListValue",
    "MapValue",
    "NormalizedFinancialReport",
    "NormalizedPerformanceTrend",
    "NormalizedRatio",
    "NumValue",
    "ProcessingState",
    "ProcessingStatus",
    "RawReportPage",
    "ReportPage",
    "StrValue",
    "Tag",
    "TaggedValue",
    "UploadSummary",
    "from_wire",
]
