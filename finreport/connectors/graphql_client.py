"""
finreport/connectors/graphql_client.py

Managed GraphQL backend client for financial reports.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol

import requests

from finreport.config import BackendSettings, ExternalHTTPSettings
from finreport.connectors.base import BaseHTTPClient
from finreport.domain.errors import BackendRequestError
from finreport.domain.financial_report import RawReportPage
from finreport.domain.tagged_value import MapValue
from finreport.mappers.report_normalizer import lift_transport_record

logger = logging.getLogger(__name__)

_REPORT_FIELDS = """
      companyId
      reportDate
      companyName
      creditDecision
      creditScore
      industry
      lastUpdated
      reportStatus
      financialRatios
      financialYear
      recommendations
      s3CsvUrl
"""

GET_FINANCIAL_REPORTS = f"""
  query GetFinancialReports($companyId: String!, $reportDate: String!) {{
    getFinancialReports(companyId: $companyId, reportDate: $reportDate) {{{_REPORT_FIELDS}    }}
  }}
"""

LIST_FINANCIAL_REPORTS = """
  query ListFinancialReports($filter: TableFinancialReportsFilterInput, $limit: Int, $nextToken: String) {
    listFinancialReports(filter: $filter, limit: $limit, nextToken: $nextToken) {
      items {
        companyId
        reportDate
        companyName
        creditDecision
        creditScore
        industry
        lastUpdated
        reportStatus
        financialYear
        s3CsvUrl
      }
      nextToken
    }
  }
"""

CREATE_FINANCIAL_REPORTS = f"""
  mutation CreateFinancialReports($input: CreateFinancialReportsInput!) {{
    createFinancialReports(input: $input) {{{_REPORT_FIELDS}    }}
  }}
"""

UPDATE_FINANCIAL_REPORTS = f"""
  mutation UpdateFinancialReports($input: UpdateFinancialReportsInput!) {{
    updateFinancialReports(input: $input) {{{_REPORT_FIELDS}    }}
  }}
"""

DELETE_FINANCIAL_REPORTS = """
  mutation DeleteFinancialReports($input: DeleteFinancialReportsInput!) {
    deleteFinancialReports(input: $input) {
      companyId
      reportDate
    }
  }
"""


class ReportBackend(Protocol):
    """
    Named report operations offered by the backend.
    """

    def get_report(self, company_id: str, report_date: str) -> MapValue | None:
        ...

    def list_reports(
        self,
        filter: Mapping[str, Any] | None = None,
        limit: int | None = None,
        page_token: str | None = None,
    ) -> RawReportPage:
        ...

    def create_report(self, payload: Mapping[str, Any]) -> MapValue:
        ...

    def update_report(self, payload: Mapping[str, Any]) -> MapValue:
        ...

    def delete_report(self, company_id: str, report_date: str) -> bool:
        ...


class GraphQLReportBackend(BaseHTTPClient):
    """
    ``ReportBackend`` over an AppSync-style GraphQL endpoint authenticated
    with an API key.
    """

    def __init__(
        self,
        *,
        settings: BackendSettings,
        http_settings: ExternalHTTPSettings,
        session: requests.Session | None = None,
    ) -> None:
        if not settings.graphql_endpoint:
            raise BackendRequestError("graphql: GRAPHQL_ENDPOINT is not configured.")
        super().__init__(service="graphql", http_settings=http_settings, session=session)
        self._endpoint = settings.graphql_endpoint
        self._default_limit = settings.list_limit
        self._headers = {"Content-Type": "application/json"}
        if settings.api_key:
            self._headers["x-api-key"] = settings.api_key

    def get_report(self, company_id: str, report_date: str) -> MapValue | None:
        data = self._execute(
            GET_FINANCIAL_REPORTS,
            {"companyId": company_id, "reportDate": report_date},
            operation="getFinancialReports",
        )
        record = data.get("getFinancialReports")
        if record is None:
            return None
        return self._lift(record, operation="getFinancialReports")

    def list_reports(
        self,
        filter: Mapping[str, Any] | None = None,
        limit: int | None = None,
        page_token: str | None = None,
    ) -> RawReportPage:
        variables: dict[str, Any] = {"limit": limit or self._default_limit}
        if filter:
            variables["filter"] = dict(filter)
        if page_token:
            variables["nextToken"] = page_token

        data = self._execute(LIST_FINANCIAL_REPORTS, variables, operation="listFinancialReports")
        connection = data.get("listFinancialReports") or {}
        if not isinstance(connection, Mapping):
            raise BackendRequestError("graphql: listFinancialReports returned an unexpected shape.")

        items: list[MapValue] = []
        for index, record in enumerate(connection.get("items") or []):
            if record is None:
                logger.warning("Skipping null listFinancialReports item index=%s", index)
                continue
            items.append(self._lift(record, operation="listFinancialReports"))
        return RawReportPage(items=items, page_token=connection.get("nextToken"))

    def create_report(self, payload: Mapping[str, Any]) -> MapValue:
        data = self._execute(
            CREATE_FINANCIAL_REPORTS,
            {"input": dict(payload)},
            operation="createFinancialReports",
        )
        return self._lift(data.get("createFinancialReports"), operation="createFinancialReports")

    def update_report(self, payload: Mapping[str, Any]) -> MapValue:
        data = self._execute(
            UPDATE_FINANCIAL_REPORTS,
            {"input": dict(payload)},
            operation="updateFinancialReports",
        )
        return self._lift(data.get("updateFinancialReports"), operation="updateFinancialReports")

    def delete_report(self, company_id: str, report_date: str) -> bool:
        data = self._execute(
            DELETE_FINANCIAL_REPORTS,
            {"input": {"companyId": company_id, "reportDate": report_date}},
            operation="deleteFinancialReports",
        )
        return data.get("deleteFinancialReports") is not None

    def _execute(self, query: str, variables: dict[str, Any], *, operation: str) -> Mapping[str, Any]:
        body = self._request_json(
            method="POST",
            url=self._endpoint,
            json_body={"query": query, "variables": variables},
            headers=self._headers,
        )
        if not isinstance(body, Mapping):
            raise BackendRequestError(f"graphql: {operation} response must be an object.")

        errors = body.get("errors")
        if errors:
            messages = [
                str(error.get("message", error)) if isinstance(error, Mapping) else str(error)
                for error in errors
            ]
            logger.error("GraphQL operation failed operation=%s errors=%s", operation, messages)
            raise BackendRequestError(f"graphql: {operation} failed: {'; '.join(messages)}")

        data = body.get("data")
        if not isinstance(data, Mapping):
            raise BackendRequestError(f"graphql: {operation} returned no data.")
        return data

    @staticmethod
    def _lift(record: Any, *, operation: str) -> MapValue:
        if not isinstance(record, Mapping):
            raise BackendRequestError(f"graphql: {operation} returned no report.")
        return lift_transport_record(record)
