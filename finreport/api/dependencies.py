"""
finreport/api/dependencies.py

Shared FastAPI dependencies for request validation.
"""

from __future__ import annotations

from typing import Any

from fastapi import File, HTTPException, Query, UploadFile, status


def get_statement_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Require a named file part; type and size screening belongs to the session.
    """

    if not (file.filename or "").strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Uploaded file must have a file name.",
        )
    return file


def get_report_filter(
    company_id: str | None = Query(default=None, description="Exact company id"),
    company_name: str | None = Query(default=None, description="Substring of the company name"),
    industry: str | None = Query(default=None, description="Substring of the industry"),
    report_status: str | None = Query(default=None, description="Exact report status"),
) -> dict[str, Any] | None:
    """
    Build a backend list filter from query parameters.
    """

    report_filter: dict[str, Any] = {}
    if company_id:
        report_filter["companyId"] = {"eq": company_id}
    if company_name:
        report_filter["companyName"] = {"contains": company_name}
    if industry:
        report_filter["industry"] = {"contains": industry}
    if report_status:
        report_filter["reportStatus"] = {"eq": report_status}
    return report_filter or None
