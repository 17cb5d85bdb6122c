"""
finreport/domain/financial_report.py

Application-side report models produced by the report normalizer.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from finreport.domain.tagged_value import MapValue


@dataclass(frozen=True)
class NormalizedRatio:
    """
    One flattened ratio, e.g. ``NormalizedRatio("Current Ratio", 1.85, "Liquidity Ratios")``.
    """

    name: str
    value: float
    category: str


@dataclass(frozen=True)
class NormalizedPerformanceTrend:
    year: int
    revenue: float
    profit: float
    debt: float


@dataclass(frozen=True)
class NormalizedFinancialReport:
    """
    Flat, typed report consumed by the dashboard views.
    """

    company_id: str
    report_date: str
    company_name: str
    credit_decision: str
    credit_score: int
    industry: str
    last_updated: str
    report_status: str
    ratios: tuple[NormalizedRatio, ...] = ()
    performance_trends: tuple[NormalizedPerformanceTrend, ...] = ()
    recommendations: tuple[str, ...] = ()
    financial_year: str | None = None
    s3_csv_url: str | None = None


@dataclass(frozen=True)
class Company:
    """
    Company entry derived from a report listing.
    """

    id: str
    name: str
    report_date: str


@dataclass(frozen=True)
class RawReportPage:
    """
    One page of raw reports returned by the backend.
    """

    items: list[MapValue] = field(default_factory=list)
    page_token: str | None = None


@dataclass(frozen=True)
class ReportPage:
    items: list[NormalizedFinancialReport] = field(default_factory=list)
    page_token: str | None = None
