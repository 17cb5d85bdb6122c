"""
finreport/api/routers/reports.py

Financial report HTTP endpoints.
"""

from __future__ import annotations

from typing import Any, NoReturn

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from finreport.api.dependencies import get_report_filter
from finreport.domain.errors import BackendRequestError, FinancialReportError, ReportNotFoundError
from finreport.schemas.reports import (
    CategorySummaryResponse,
    CompanyResponse,
    FinancialReportRequest,
    FinancialReportResponse,
    RatioOverviewResponse,
    ReportPageResponse,
)
from finreport.services.report_service import ReportService, get_report_service

router = APIRouter(prefix="/reports", tags=["reports"])


def _raise_http(exc: Exception) -> NoReturn:
    if isinstance(exc, ReportNotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    if isinstance(exc, BackendRequestError):
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    raise HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail=f"Backend returned an unusable report: {exc}",
    ) from exc


@router.get("", response_model=ReportPageResponse)
def list_reports(
    limit: int | None = Query(default=None, ge=1, le=1000),
    page_token: str | None = Query(default=None),
    report_filter: dict[str, Any] | None = Depends(get_report_filter),
    report_service: ReportService = Depends(get_report_service),
) -> ReportPageResponse:
    try:
        page = report_service.list_reports(filter=report_filter, limit=limit, page_token=page_token)
    except (BackendRequestError, FinancialReportError) as exc:
        _raise_http(exc)

    return ReportPageResponse(
        items=[FinancialReportResponse.model_validate(item) for item in page.items],
        page_token=page.page_token,
    )


@router.get("/companies", response_model=list[CompanyResponse])
def list_companies(
    limit: int | None = Query(default=None, ge=1, le=1000),
    report_filter: dict[str, Any] | None = Depends(get_report_filter),
    report_service: ReportService = Depends(get_report_service),
) -> list[CompanyResponse]:
    """
    Companies derived from the report listing, in backend order.
    """

    try:
        companies = report_service.list_companies(filter=report_filter, limit=limit)
    except (BackendRequestError, FinancialReportError) as exc:
        _raise_http(exc)
    return [CompanyResponse.model_validate(company) for company in companies]


@router.get("/{company_id}/{report_date}", response_model=FinancialReportResponse)
def get_report(
    company_id: str,
    report_date: str,
    report_service: ReportService = Depends(get_report_service),
) -> FinancialReportResponse:
    try:
        report = report_service.get_report(company_id, report_date)
    except (BackendRequestError, FinancialReportError) as exc:
        _raise_http(exc)
    return FinancialReportResponse.model_validate(report)


@router.get("/{company_id}/{report_date}/ratios", response_model=RatioOverviewResponse)
def get_ratio_overview(
    company_id: str,
    report_date: str,
    report_service: ReportService = Depends(get_report_service),
) -> RatioOverviewResponse:
    """
    Per-category ratio statistics and radar scores for one report.
    """

    try:
        overview = report_service.summarize_ratios(company_id, report_date)
    except (BackendRequestError, FinancialReportError) as exc:
        _raise_http(exc)
    return RatioOverviewResponse(
        company_id=overview.report.company_id,
        report_date=overview.report.report_date,
        categories=[CategorySummaryResponse.model_validate(summary) for summary in overview.categories],
        radar=overview.radar,
    )


@router.post("", response_model=FinancialReportResponse, status_code=status.HTTP_201_CREATED)
def create_report(
    body: FinancialReportRequest,
    report_service: ReportService = Depends(get_report_service),
) -> FinancialReportResponse:
    try:
        created = report_service.create_report(body.to_domain())
    except (BackendRequestError, FinancialReportError) as exc:
        _raise_http(exc)
    return FinancialReportResponse.model_validate(created)


@router.put("/{company_id}/{report_date}", response_model=FinancialReportResponse)
def update_report(
    company_id: str,
    report_date: str,
    body: FinancialReportRequest,
    report_service: ReportService = Depends(get_report_service),
) -> FinancialReportResponse:
    """
    Replace one report. The path identity wins over the body identity.
    """

    body = body.model_copy(update={"company_id": company_id, "report_date": report_date})
    try:
        updated = report_service.update_report(body.to_domain())
    except (BackendRequestError, FinancialReportError) as exc:
        _raise_http(exc)
    return FinancialReportResponse.model_validate(updated)


@router.delete("/{company_id}/{report_date}", status_code=status.HTTP_204_NO_CONTENT)
def delete_report(
    company_id: str,
    report_date: str,
    report_service: ReportService = Depends(get_report_service),
) -> Response:
    try:
        report_service.delete_report(company_id, report_date)
    except (BackendRequestError, FinancialReportError) as exc:
        _raise_http(exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
