"""
finreport/services/file_parser.py

Best-effort structured-data extraction for uploaded statements.

    spreadsheet (.xlsx/.xls) -> list of row dicts from the first sheet
    CSV                      -> list of row dicts keyed by header
    JSON                     -> parsed document

PDF extraction happens on the processing backend; ``parse`` raises
``FileParseError`` for it like any other unsupported type.
"""

from __future__ import annotations

import io
import json
import logging
from typing import Any

import pandas as pd

from finreport.domain.errors import FileParseError
from finreport.validators.upload_validator import (
    CSV_CONTENT_TYPES,
    JSON_CONTENT_TYPE,
    PDF_CONTENT_TYPE,
    is_spreadsheet,
)

logger = logging.getLogger(__name__)


class FileParser:
    """
    Dispatches on resolved content type.
    """

    def supports(self, content_type: str) -> bool:
        return (
            is_spreadsheet(content_type)
            or content_type in CSV_CONTENT_TYPES
            or content_type == JSON_CONTENT_TYPE
        )

    def parse(self, *, content: bytes, content_type: str) -> Any:
        if content_type == PDF_CONTENT_TYPE:
            raise FileParseError("PDF parsing is not available locally; the processing backend extracts it.")
        if is_spreadsheet(content_type):
            return self._parse_spreadsheet(content)
        if content_type in CSV_CONTENT_TYPES:
            return self._parse_csv(content)
        if content_type == JSON_CONTENT_TYPE:
            return self._parse_json(content)
        raise FileParseError(f"No parser for content type {content_type!r}.")

    def _parse_spreadsheet(self, content: bytes) -> list[dict[str, Any]]:
        try:
            frame = pd.read_excel(io.BytesIO(content), sheet_name=0)
        except Exception as exc:  # pandas surfaces engine-specific error types
            raise FileParseError(f"Could not read spreadsheet: {exc}") from exc
        return _frame_to_records(frame)

    def _parse_csv(self, content: bytes) -> list[dict[str, Any]]:
        try:
            frame = pd.read_csv(
                io.BytesIO(content),
                dtype=str,
                keep_default_na=False,
                encoding="utf-8-sig",
                skip_blank_lines=True,
            )
        except pd.errors.EmptyDataError:
            return []
        except (UnicodeDecodeError, pd.errors.ParserError) as exc:
            raise FileParseError(f"Invalid CSV format: {exc}") from exc
        return _frame_to_records(frame)

    def _parse_json(self, content: bytes) -> Any:
        try:
            return json.loads(content.decode("utf-8-sig"))
        except UnicodeDecodeError as exc:
            raise FileParseError("JSON must be UTF-8 encoded.") from exc
        except json.JSONDecodeError as exc:
            raise FileParseError(f"Invalid JSON document: {exc}") from exc


def _frame_to_records(frame: pd.DataFrame) -> list[dict[str, Any]]:
    # Round-trip through JSON to get native Python scalars with NaN as None.
    frame.columns = [str(column) for column in frame.columns]
    return json.loads(frame.to_json(orient="records", date_format="iso"))
