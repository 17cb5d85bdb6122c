"""
finreport/services package marker.
"""

from finreport.services.file_parser import FileParser
from finreport.services.ratio_aggregation_service import CategorySummary, radar_scores, summarize
from finreport.services.report_service import RatioOverview, ReportService, get_report_service
from finreport.services.upload_registry import UploadSessionRegistry, get_upload_session_registry
from finreport.services.upload_session import UploadSession

__all__ = [
    "CategorySummary",
    "FileParser",
    "RatioOverview",
    "ReportService",
    "UploadSession",
    "UploadSessionRegistry",
    "get_report_service",
    "get_upload_session_registry",
    "radar_scores",
    "summarize",
]
