"""
finreport/services/report_service.py

Report operations over the backend, returning normalized reports.

Fetch failures surface as ``BackendRequestError`` and unknown identities as
``ReportNotFoundError``; nothing here substitutes sample data. Listing
skips individual reports that lack a company identity and logs them, so one
corrupt row does not hide the rest of the page.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Mapping

from finreport.config import get_backend_settings, get_external_http_settings
from finreport.connectors.graphql_client import GraphQLReportBackend, ReportBackend
from finreport.domain.errors import MalformedReport, ReportNotFoundError
from finreport.domain.financial_report import Company, NormalizedFinancialReport, ReportPage
from finreport.domain.tagged_value import MapValue
from finreport.mappers.report_normalizer import ReportNormalizer
from finreport.services.ratio_aggregation_service import CategorySummary, radar_scores, summarize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RatioOverview:
    report: NormalizedFinancialReport
    categories: list[CategorySummary]
    radar: dict[str, float]


class ReportService:
    """
    Coordinates backend calls and report normalization.
    """

    def __init__(
        self,
        *,
        backend: ReportBackend,
        normalizer: ReportNormalizer | None = None,
    ) -> None:
        self._backend = backend
        self._normalizer = normalizer or ReportNormalizer()

    @property
    def normalizer(self) -> ReportNormalizer:
        return self._normalizer

    def get_report(self, company_id: str, report_date: str) -> NormalizedFinancialReport:
        raw = self._backend.get_report(company_id, report_date)
        if raw is None:
            raise ReportNotFoundError(f"No report for company '{company_id}' dated '{report_date}'.")
        return self._normalizer.normalize(raw)

    def list_reports(
        self,
        *,
        filter: Mapping[str, Any] | None = None,
        limit: int | None = None,
        page_token: str | None = None,
    ) -> ReportPage:
        page = self._backend.list_reports(filter, limit, page_token)
        items: list[NormalizedFinancialReport] = []
        for raw in page.items:
            try:
                items.append(self._normalizer.normalize(raw))
            except MalformedReport as exc:
                logger.warning("Skipping listed report without identity: %s", exc)
        return ReportPage(items=items, page_token=page.page_token)

    def list_companies(
        self,
        *,
        filter: Mapping[str, Any] | None = None,
        limit: int | None = None,
    ) -> list[Company]:
        page = self._backend.list_reports(filter, limit, None)
        companies: list[Company] = []
        for raw in page.items:
            try:
                companies.append(self._normalizer.to_company(raw))
            except MalformedReport as exc:
                logger.warning("Skipping listed company without identity: %s", exc)
        return companies

    def create_report(self, report: NormalizedFinancialReport) -> NormalizedFinancialReport:
        created = self._backend.create_report(self._normalizer.denormalize(report))
        logger.info(
            "Created report company_id=%s report_date=%s",
            report.company_id,
            report.report_date,
        )
        return self._normalize_mutation_result(created, fallback=report)

    def update_report(self, report: NormalizedFinancialReport) -> NormalizedFinancialReport:
        updated = self._backend.update_report(self._normalizer.denormalize(report))
        logger.info(
            "Updated report company_id=%s report_date=%s",
            report.company_id,
            report.report_date,
        )
        return self._normalize_mutation_result(updated, fallback=report)

    def delete_report(self, company_id: str, report_date: str) -> None:
        if not self._backend.delete_report(company_id, report_date):
            raise ReportNotFoundError(f"No report for company '{company_id}' dated '{report_date}'.")
        logger.info("Deleted report company_id=%s report_date=%s", company_id, report_date)

    def summarize_ratios(self, company_id: str, report_date: str) -> RatioOverview:
        report = self.get_report(company_id, report_date)
        return RatioOverview(
            report=report,
            categories=summarize(report.ratios),
            radar=radar_scores(report.ratios),
        )

    def _normalize_mutation_result(
        self,
        raw: MapValue,
        *,
        fallback: NormalizedFinancialReport,
    ) -> NormalizedFinancialReport:
        # Mutation selections may echo only the identity fields.
        try:
            return self._normalizer.normalize(raw)
        except MalformedReport:
            logger.warning(
                "Mutation result lacked identity; returning submitted report company_id=%s",
                fallback.company_id,
            )
            return fallback


@lru_cache(maxsize=1)
def get_report_backend() -> ReportBackend:
    """
    Build and cache the GraphQL backend client from env-driven settings.
    """

    return GraphQLReportBackend(
        settings=get_backend_settings(),
        http_settings=get_external_http_settings(),
    )


@lru_cache(maxsize=1)
def get_report_service() -> ReportService:
    return ReportService(backend=get_report_backend())
