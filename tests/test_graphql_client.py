from __future__ import annotations

import json

import pytest
import requests

from finreport.config import BackendSettings, ExternalHTTPSettings
from finreport.connectors.graphql_client import GraphQLReportBackend
from finreport.domain.errors import BackendRequestError
from finreport.domain.tagged_value import MapValue, NumValue, StrValue
from tests.conftest import FakeResponse, FakeSession

SETTINGS = BackendSettings(
    graphql_endpoint="https://example.appsync-api.test/graphql",
    api_key="da2-test",
    list_limit=25,
)


def _record(company_id: str = "C-1", **extra: object) -> dict[str, object]:
    record: dict[str, object] = {
        "companyId": company_id,
        "reportDate": "2024-03-31",
        "companyName": "Acme",
        "creditScore": "81",
        "financialRatios": json.dumps({"liquidityRatios": {"currentratio": "1.5"}}),
        "recommendations": json.dumps(["Hold"]),
    }
    record.update(extra)
    return record


def _backend(session: FakeSession, http_settings: ExternalHTTPSettings) -> GraphQLReportBackend:
    return GraphQLReportBackend(settings=SETTINGS, http_settings=http_settings, session=session)  # type: ignore[arg-type]


def test_get_report_lifts_transport_record(http_settings: ExternalHTTPSettings) -> None:
    session = FakeSession([FakeResponse(200, {"data": {"getFinancialReports": _record()}})])

    raw = _backend(session, http_settings).get_report("C-1", "2024-03-31")

    assert isinstance(raw, MapValue)
    assert raw.get("companyId") == StrValue("C-1")
    assert raw.get("creditScore") == NumValue("81")

    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["url"] == SETTINGS.graphql_endpoint
    assert call["headers"]["x-api-key"] == "da2-test"
    assert call["json"]["variables"] == {"companyId": "C-1", "reportDate": "2024-03-31"}
    assert "getFinancialReports" in call["json"]["query"]


def test_get_report_returns_none_when_missing(http_settings: ExternalHTTPSettings) -> None:
    session = FakeSession([FakeResponse(200, {"data": {"getFinancialReports": None}})])
    assert _backend(session, http_settings).get_report("C-404", "2024-03-31") is None


def test_list_reports_passes_paging_and_filter(http_settings: ExternalHTTPSettings) -> None:
    session = FakeSession(
        [
            FakeResponse(
                200,
                {
                    "data": {
                        "listFinancialReports": {
                            "items": [_record("A"), None, _record("B")],
                            "nextToken": "tok-2",
                        }
                    }
                },
            )
        ]
    )

    page = _backend(session, http_settings).list_reports(
        {"industry": {"contains": "Retail"}},
        None,
        "tok-1",
    )

    assert [item.get("companyId") for item in page.items] == [StrValue("A"), StrValue("B")]
    assert page.page_token == "tok-2"
    assert session.calls[0]["json"]["variables"] == {
        "limit": 25,
        "filter": {"industry": {"contains": "Retail"}},
        "nextToken": "tok-1",
    }


def test_graphql_errors_raise(http_settings: ExternalHTTPSettings) -> None:
    session = FakeSession(
        [FakeResponse(200, {"data": None, "errors": [{"message": "Unauthorized"}]})]
    )

    with pytest.raises(BackendRequestError, match="Unauthorized"):
        _backend(session, http_settings).get_report("C-1", "2024-03-31")


def test_create_report_sends_input(http_settings: ExternalHTTPSettings) -> None:
    payload = {"companyId": "C-1", "reportDate": "2024-03-31", "creditScore": "81"}
    session = FakeSession([FakeResponse(200, {"data": {"createFinancialReports": _record()}})])

    created = _backend(session, http_settings).create_report(payload)

    assert created.get("companyId") == StrValue("C-1")
    assert session.calls[0]["json"]["variables"] == {"input": payload}


def test_delete_report_acknowledges(http_settings: ExternalHTTPSettings) -> None:
    session = FakeSession(
        [
            FakeResponse(200, {"data": {"deleteFinancialReports": {"companyId": "C-1"}}}),
            FakeResponse(200, {"data": {"deleteFinancialReports": None}}),
        ]
    )
    backend = _backend(session, http_settings)

    assert backend.delete_report("C-1", "2024-03-31") is True
    assert backend.delete_report("C-1", "2024-03-31") is False


def test_retries_retryable_status_then_succeeds(
    http_settings: ExternalHTTPSettings,
    no_sleep: list[float],
) -> None:
    session = FakeSession(
        [
            FakeResponse(503),
            requests.ConnectionError("reset"),
            FakeResponse(200, {"data": {"getFinancialReports": _record()}}),
        ]
    )

    raw = _backend(session, http_settings).get_report("C-1", "2024-03-31")

    assert raw is not None
    assert len(session.calls) == 3
    assert no_sleep == [0.1, 0.2]


def test_non_retryable_status_fails_fast(
    http_settings: ExternalHTTPSettings,
    no_sleep: list[float],
) -> None:
    session = FakeSession([FakeResponse(401)])

    with pytest.raises(BackendRequestError, match="non-retryable"):
        _backend(session, http_settings).get_report("C-1", "2024-03-31")
    assert no_sleep == []


def test_exhausted_retries_raise(http_settings: ExternalHTTPSettings, no_sleep: list[float]) -> None:
    session = FakeSession([FakeResponse(500), FakeResponse(502), FakeResponse(504)])

    with pytest.raises(BackendRequestError, match="after retries"):
        _backend(session, http_settings).list_reports()


def test_missing_endpoint_is_rejected(http_settings: ExternalHTTPSettings) -> None:
    with pytest.raises(BackendRequestError):
        GraphQLReportBackend(settings=BackendSettings(), http_settings=http_settings)


def test_get_report_tolerates_drifted_blobs(http_settings: ExternalHTTPSettings) -> None:
    record = _record(
        financialRatios=json.dumps(
            {"liquidityRatios": {"currentratio": "1.5", "notes": "see memo"}, "source": {"kind": "manual"}}
        ),
        recommendations=json.dumps({"a": "b"}),
    )
    session = FakeSession([FakeResponse(200, {"data": {"getFinancialReports": record}})])

    raw = _backend(session, http_settings).get_report("C-1", "2024-03-31")

    assert raw is not None
    assert raw.get("financialRatios") == MapValue({"liquidityRatios": MapValue({"currentratio": NumValue("1.5")})})
    assert "recommendations" not in raw
