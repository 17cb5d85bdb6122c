"""
finreport/schemas/reports.py

Request and response schemas for report endpoints.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from finreport.domain.financial_report import (
    NormalizedFinancialReport,
    NormalizedPerformanceTrend,
    NormalizedRatio,
)


class RatioModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str = Field(min_length=1)
    value: float
    category: str = Field(min_length=1)


class PerformanceTrendModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    year: int
    revenue: float = 0.0
    profit: float = 0.0
    debt: float = 0.0


class FinancialReportResponse(BaseModel):
    """
    API response model for one normalized report.
    """

    model_config = ConfigDict(from_attributes=True)

    company_id: str
    report_date: str
    company_name: str
    credit_decision: str
    credit_score: int
    industry: str
    last_updated: str
    report_status: str
    ratios: list[RatioModel] = Field(default_factory=list)
    performance_trends: list[PerformanceTrendModel] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    financial_year: str | None = None
    s3_csv_url: str | None = None


class FinancialReportRequest(BaseModel):
    """
    Submission body for create/update; optional scalars take the same
    defaults the normalizer applies.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    company_id: str = Field(min_length=1)
    report_date: str = Field(min_length=1)
    company_name: str = "Unknown"
    credit_decision: str = "PENDING"
    credit_score: int = Field(default=0, ge=0)
    industry: str = "Unknown"
    last_updated: str | None = None
    report_status: str = "DRAFT"
    ratios: list[RatioModel] = Field(default_factory=list)
    performance_trends: list[PerformanceTrendModel] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    financial_year: str | None = None
    s3_csv_url: str | None = None

    def to_domain(self) -> NormalizedFinancialReport:
        return NormalizedFinancialReport(
            company_id=self.company_id,
            report_date=self.report_date,
            company_name=self.company_name,
            credit_decision=self.credit_decision,
            credit_score=self.credit_score,
            industry=self.industry,
            last_updated=self.last_updated or datetime.now(timezone.utc).isoformat(),
            report_status=self.report_status,
            ratios=tuple(
                NormalizedRatio(name=ratio.name, value=ratio.value, category=ratio.category)
                for ratio in self.ratios
            ),
            performance_trends=tuple(
                sorted(
                    (
                        NormalizedPerformanceTrend(
                            year=trend.year,
                            revenue=trend.revenue,
                            profit=trend.profit,
                            debt=trend.debt,
                        )
                        for trend in self.performance_trends
                    ),
                    key=lambda trend: trend.year,
                )
            ),
            recommendations=tuple(self.recommendations),
            financial_year=self.financial_year,
            s3_csv_url=self.s3_csv_url,
        )


class ReportPageResponse(BaseModel):
    items: list[FinancialReportResponse] = Field(default_factory=list)
    page_token: str | None = None


class CompanyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    report_date: str


class CategorySummaryResponse(BaseModel):
    """
    API response model for one ratio category summary.
    """

    model_config = ConfigDict(from_attributes=True)

    category: str
    count: int = Field(..., ge=1)
    total: float
    mean: float
    minimum: float
    maximum: float
    ratios: list[RatioModel]


class RatioOverviewResponse(BaseModel):
    company_id: str
    report_date: str
    categories: list[CategorySummaryResponse]
    radar: dict[str, float]
