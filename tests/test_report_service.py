"""
tests/test_report_service.py

ReportService against an in-memory backend holding transport records.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Mapping

import pytest

from finreport.domain.errors import ReportNotFoundError
from finreport.domain.financial_report import Company, RawReportPage
from finreport.domain.tagged_value import MapValue
from finreport.mappers.report_normalizer import ReportNormalizer, lift_transport_record
from finreport.services.report_service import ReportService

FIXED_NOW = datetime(2024, 6, 30, tzinfo=timezone.utc)


def _record(company_id: str = "C-1", report_date: str = "2024-03-31", **overrides: Any) -> dict[str, Any]:
    record: dict[str, Any] = {
        "companyId": company_id,
        "reportDate": report_date,
        "companyName": "Acme Holdings",
        "creditDecision": "APPROVED",
        "creditScore": "82",
        "industry": "Manufacturing",
        "lastUpdated": "2024-04-02T09:30:00Z",
        "reportStatus": "FINAL",
        "financialRatios": json.dumps(
            {
                "liquidityRatios": {"currentratio": "1.5", "quickratio": "2.5"},
                "profitabilityRatios": {
                    "grossprofitmargin": "40",
                    "operatingprofitmargin": "12",
                    "returnonassets": "8",
                },
                "performanceTrends": [
                    {"year": "2023", "revenue": "100", "profit": "10", "debt": "5"},
                    {"year": "2022", "revenue": "90", "profit": "8", "debt": "6"},
                ],
            }
        ),
        "recommendations": json.dumps(["Reduce short-term debt"]),
    }
    record.update(overrides)
    return record


class FakeBackend:
    def __init__(self, records: list[dict[str, Any]] | None = None) -> None:
        self.records = {(r.get("companyId"), r.get("reportDate")): r for r in records or []}
        self.listed: list[dict[str, Any]] = list(records or [])
        self.list_calls: list[tuple[Any, ...]] = []
        self.submitted: list[dict[str, Any]] = []
        self.echo: dict[str, Any] | None = None

    def get_report(self, company_id: str, report_date: str) -> MapValue | None:
        record = self.records.get((company_id, report_date))
        return None if record is None else lift_transport_record(record)

    def list_reports(
        self,
        filter: Mapping[str, Any] | None = None,
        limit: int | None = None,
        page_token: str | None = None,
    ) -> RawReportPage:
        self.list_calls.append((filter, limit, page_token))
        return RawReportPage(items=[lift_transport_record(r) for r in self.listed], page_token="next-1")

    def create_report(self, payload: Mapping[str, Any]) -> MapValue:
        return self._store(payload)

    def update_report(self, payload: Mapping[str, Any]) -> MapValue:
        return self._store(payload)

    def delete_report(self, company_id: str, report_date: str) -> bool:
        return self.records.pop((company_id, report_date), None) is not None

    def _store(self, payload: Mapping[str, Any]) -> MapValue:
        self.submitted.append(dict(payload))
        self.records[(payload["companyId"], payload["reportDate"])] = dict(payload)
        return lift_transport_record(self.echo if self.echo is not None else payload)


def _service(backend: FakeBackend) -> ReportService:
    return ReportService(backend=backend, normalizer=ReportNormalizer(clock=lambda: FIXED_NOW))


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


def test_get_report_returns_normalized_report() -> None:
    report = _service(FakeBackend([_record()])).get_report("C-1", "2024-03-31")

    assert report.company_name == "Acme Holdings"
    assert report.credit_score == 82
    assert [trend.year for trend in report.performance_trends] == [2022, 2023]
    assert {ratio.category for ratio in report.ratios} == {"Liquidity Ratios", "Profitability Ratios"}
    assert report.recommendations == ("Reduce short-term debt",)


def test_get_unknown_report_raises_not_found() -> None:
    with pytest.raises(ReportNotFoundError):
        _service(FakeBackend()).get_report("C-404", "2024-03-31")


def test_list_reports_skips_records_without_identity() -> None:
    backend = FakeBackend([_record(), _record("C-2")])
    backend.listed.insert(1, _record(companyId=None))
    service = _service(backend)

    page = service.list_reports(filter={"industry": {"eq": "Retail"}}, limit=5, page_token="tok")

    assert [report.company_id for report in page.items] == ["C-1", "C-2"]
    assert page.page_token == "next-1"
    assert backend.list_calls == [({"industry": {"eq": "Retail"}}, 5, "tok")]


def test_list_companies_uses_listed_names() -> None:
    backend = FakeBackend([_record(), _record("C-2", companyName=None)])

    companies = _service(backend).list_companies()

    assert companies == [
        Company(id="C-1", name="Acme Holdings", report_date="2024-03-31"),
        Company(id="C-2", name="Unknown Company", report_date="2024-03-31"),
    ]


def test_summarize_ratios_builds_categories_and_radar() -> None:
    overview = _service(FakeBackend([_record()])).summarize_ratios("C-1", "2024-03-31")

    assert [summary.category for summary in overview.categories] == [
        "Liquidity Ratios",
        "Profitability Ratios",
    ]
    assert overview.radar["Profitability Ratios"] == pytest.approx(20.0 / 40.0 * 100)
    assert overview.radar["Liquidity Ratios"] == pytest.approx(5.0)


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


def test_create_report_round_trips_through_backend() -> None:
    source = FakeBackend([_record()])
    report = _service(source).get_report("C-1", "2024-03-31")
    backend = FakeBackend()

    created = _service(backend).create_report(report)

    assert created == report
    submitted = backend.submitted[0]
    assert submitted["creditScore"] == "82"
    assert json.loads(submitted["financialRatios"])["liquidityRatios"] == {
        "currentratio": "1.5",
        "quickratio": "2.5",
    }


def test_update_falls_back_to_submitted_report_when_echo_lacks_identity() -> None:
    backend = FakeBackend([_record()])
    service = _service(backend)
    report = service.get_report("C-1", "2024-03-31")
    backend.echo = {}

    assert service.update_report(report) == report


def test_delete_report() -> None:
    backend = FakeBackend([_record()])
    service = _service(backend)

    service.delete_report("C-1", "2024-03-31")

    with pytest.raises(ReportNotFoundError):
        service.delete_report("C-1", "2024-03-31")
