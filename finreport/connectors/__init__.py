"""
finreport/connectors package marker.
"""

from finreport.connectors.base import BaseHTTPClient
from finreport.connectors.graphql_client import GraphQLReportBackend, ReportBackend
from finreport.connectors.upload_api import ProcessingMonitor, UploadAPIClient, parse_processing_status

__all__ = [
    "BaseHTTPClient",
    "GraphQLReportBackend",
    "ProcessingMonitor",
    "ReportBackend",
    "UploadAPIClient",
    "parse_processing_status",
]
