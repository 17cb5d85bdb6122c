"""
finreport/mappers package marker.
"""

from finreport.mappers.ratio_fields import (
    CATEGORY_DISPLAY_ORDER,
    RATIO_CATEGORIES,
    RatioCategory,
    humanize_key,
    to_application_key,
    to_wire_key,
)
from finreport.mappers.report_normalizer import (
    RAW_REPORT_SHAPE,
    ReportNormalizer,
    coerce_raw_report,
    encode_raw_report,
    lift_transport_record,
)
from finreport.mappers.tagged_value_codec import ListOf, MapOf, decode, encode, format_number, parse_number

__all__ = [
    "CATEGORY_DISPLAY_ORDER",
    "ListOf",
    "MapOf",
    "RATIO_CATEGORIES",
    "RAW_REPORT_SHAPE",
    "RatioCategory",
    "ReportNormalizer",
    "coerce_raw_report",
    "decode",
    "encode",
    "encode_raw_report",
    "format_number",
    "humanize_key",
    "lift_transport_record",
    "parse_number",
    "to_application_key",
    "to_wire_key",
]
