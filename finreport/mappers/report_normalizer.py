"""
finreport/mappers/report_normalizer.py

Normalization between raw tagged reports and the flat application model.

normalize
---------
RawFinancialReport (tagged map, its JSON wire form, or a backend transport
record) -> NormalizedFinancialReport.

    1. Scalars are decoded and optional ones defaulted
       (companyName/industry -> "Unknown", reportStatus -> "DRAFT",
       creditDecision -> "PENDING", lastUpdated -> now).
    2. creditScore is truncated to an int; an unparseable score degrades to 0
       with a warning so the rest of the report still renders.
    3. Each fixed ratio category present in financialRatios is flattened into
       ``NormalizedRatio`` entries. Known keys default to 0, optional keys are
       omitted when absent, unknown keys are dropped.
    4. performanceTrends is read from the top level, or from inside
       financialRatios when the top level has none, and sorted by year.
    5. recommendations defaults to an empty tuple.
    6. Only a missing companyId or reportDate fails the whole report.

denormalize
-----------
NormalizedFinancialReport -> transport record. Compound fields travel as
JSON text blobs because the backend schema stores them as embedded
documents. ``normalize(denormalize(normalize(raw))) == normalize(raw)``.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Mapping

from finreport.domain.errors import MalformedNumber, MalformedReport, UnknownRatioKey
from finreport.domain.financial_report import (
    Company,
    NormalizedFinancialReport,
    NormalizedPerformanceTrend,
    NormalizedRatio,
)
from finreport.domain.tagged_value import (
    ListValue,
    MapValue,
    NumValue,
    StrValue,
    Tag,
    TaggedValue,
    from_wire,
    is_tagged_node,
)
from finreport.mappers.ratio_fields import (
    RATIO_CATEGORIES,
    application_key_for_display_name,
    category_for_display_name,
    humanize_key,
    is_ratio_category,
    to_application_key,
    to_wire_key,
)
from finreport.mappers.tagged_value_codec import ListOf, MapOf, encode, format_number, parse_number

logger = logging.getLogger(__name__)

DEFAULT_COMPANY_NAME = "Unknown"
DEFAULT_INDUSTRY = "Unknown"
DEFAULT_REPORT_STATUS = "DRAFT"
DEFAULT_CREDIT_DECISION = "PENDING"
DEFAULT_LISTED_COMPANY_NAME = "Unknown Company"

PERFORMANCE_TRENDS_FIELD = "performanceTrends"
TREND_FIELDS: tuple[str, ...] = ("year", "revenue", "profit", "debt")

STRING_FIELDS: tuple[str, ...] = (
    "companyId",
    "reportDate",
    "companyName",
    "creditDecision",
    "industry",
    "lastUpdated",
    "reportStatus",
    "financialYear",
    "s3CsvUrl",
)

TRENDS_SHAPE = ListOf(MapOf(values=Tag.N))

RAW_REPORT_SHAPE = MapOf(
    fields={
        **{name: Tag.S for name in STRING_FIELDS},
        "creditScore": Tag.N,
        "financialRatios": MapOf(
            fields={PERFORMANCE_TRENDS_FIELD: TRENDS_SHAPE},
            values=MapOf(values=Tag.N),
        ),
        PERFORMANCE_TRENDS_FIELD: TRENDS_SHAPE,
        "recommendations": ListOf(Tag.S),
    },
)


def encode_raw_report(report: Mapping[str, Any]) -> MapValue:
    """
    Encode a native report dict (numbers as numbers) into a RawFinancialReport.
    """

    try:
        encoded = encode(report, RAW_REPORT_SHAPE)
    except TypeError as exc:
        raise MalformedReport(f"Report has an unexpected shape: {exc}") from exc
    if not isinstance(encoded, MapValue):
        raise MalformedReport("Encoded report is not a map.")
    return encoded


def lift_transport_record(record: Mapping[str, Any]) -> MapValue:
    """
    Convert a backend transport record into a RawFinancialReport.

    Transport records carry scalars as plain strings and the compound fields
    as JSON text. Each blob is checked on its own: one that fails to parse or
    has the wrong shape is dropped with a warning and the normalizer applies
    its defaults. Inside ``financialRatios`` only the fixed categories and
    their known keys are kept, so drifted members never reach number
    parsing. ``creditScore`` is kept verbatim so its leniency rule still
    applies downstream.
    """

    entries: dict[str, TaggedValue] = {}
    for name in STRING_FIELDS:
        value = record.get(name)
        if value is None:
            continue
        entries[name] = StrValue(value if isinstance(value, str) else str(value))

    credit_score = record.get("creditScore")
    if credit_score is not None and not isinstance(credit_score, bool):
        entries["creditScore"] = NumValue(
            credit_score if isinstance(credit_score, str) else _number_text(credit_score)
        )

    ratios = _lift_ratios(_load_blob(record.get("financialRatios"), field_name="financialRatios"))
    if ratios is not None:
        entries["financialRatios"] = ratios

    trends = _lift_trends(
        _load_blob(record.get(PERFORMANCE_TRENDS_FIELD), field_name=PERFORMANCE_TRENDS_FIELD),
        path=f"$.{PERFORMANCE_TRENDS_FIELD}",
    )
    if trends is not None:
        entries[PERFORMANCE_TRENDS_FIELD] = trends

    recommendations = _lift_recommendations(
        _load_blob(record.get("recommendations"), field_name="recommendations")
    )
    if recommendations is not None:
        entries["recommendations"] = recommendations

    return MapValue(entries)


def _lift_ratios(blob: Any) -> MapValue | None:
    if blob is None:
        return None
    if not isinstance(blob, Mapping):
        logger.warning("Dropping financialRatios blob with unexpected type %s", type(blob).__name__)
        return None

    entries: dict[str, TaggedValue] = {}
    for key, members in blob.items():
        if key == PERFORMANCE_TRENDS_FIELD:
            trends = _lift_trends(members, path=f"$.financialRatios.{key}")
            if trends is not None:
                entries[key] = trends
            continue
        if not is_ratio_category(key):
            logger.debug("Dropping unknown financialRatios member %r", key)
            continue
        if not isinstance(members, Mapping):
            logger.warning("Dropping ratio category %s with unexpected type %s", key, type(members).__name__)
            continue

        category: dict[str, TaggedValue] = {}
        for wire_key, value in members.items():
            try:
                to_application_key(key, wire_key)
            except UnknownRatioKey as exc:
                logger.debug("Dropping ratio: %s", exc)
                continue
            node = _lift_number(value)
            if node is None:
                logger.warning("Dropping ratio %s.%s with non-numeric value %r", key, wire_key, value)
                continue
            category[wire_key] = node
        entries[key] = MapValue(category)
    return MapValue(entries)


def _lift_trends(blob: Any, *, path: str) -> ListValue | None:
    if blob is None:
        return None
    if not isinstance(blob, list):
        logger.warning("Dropping %s with unexpected type %s", path, type(blob).__name__)
        return None

    items: list[TaggedValue] = []
    for index, item in enumerate(blob):
        if not isinstance(item, Mapping):
            logger.warning("Skipping %s[%s]: not an object", path, index)
            continue
        fields: dict[str, TaggedValue] = {}
        for name in TREND_FIELDS:
            node = _lift_number(item.get(name))
            if node is not None:
                fields[name] = node
        items.append(MapValue(fields))
    return ListValue(tuple(items))


def _lift_recommendations(blob: Any) -> ListValue | None:
    if blob is None:
        return None
    if not isinstance(blob, list):
        logger.warning("Dropping recommendations blob with unexpected type %s", type(blob).__name__)
        return None

    items: list[TaggedValue] = []
    for index, item in enumerate(blob):
        if isinstance(item, str):
            items.append(StrValue(item))
        else:
            logger.warning("Skipping recommendations[%s]: not a string", index)
    return ListValue(tuple(items))


def _lift_number(value: Any) -> NumValue | None:
    # Numeral text is kept as-is; a corrupt numeral still fails in _number.
    if isinstance(value, str):
        return NumValue(value.strip())
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        return NumValue(format_number(value))
    except ValueError:
        return None


def coerce_raw_report(raw: Any) -> MapValue:
    """
    Accept a tagged map, its JSON wire form, or a transport record.
    """

    if isinstance(raw, MapValue):
        return raw
    if not isinstance(raw, Mapping):
        raise MalformedReport(f"Report must be a mapping, got {type(raw).__name__}.")
    if is_tagged_node(raw):
        node = from_wire(raw)
        if not isinstance(node, MapValue):
            raise MalformedReport("Top-level report node must be a map.")
        return node
    if all(value is None or is_tagged_node(value) for value in raw.values()):
        return MapValue(
            {key: from_wire(value, path=f"$.{key}") for key, value in raw.items() if value is not None}
        )
    return lift_transport_record(raw)


class ReportNormalizer:
    """
    Converts reports between the tagged wire shape and the application model.
    """

    def __init__(self, *, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def normalize(self, raw: Any) -> NormalizedFinancialReport:
        report = coerce_raw_report(raw)

        company_id = _required_str(report, "companyId")
        report_date = _required_str(report, "reportDate")
        ratios_node = report.get("financialRatios")

        return NormalizedFinancialReport(
            company_id=company_id,
            report_date=report_date,
            company_name=_optional_str(report, "companyName") or DEFAULT_COMPANY_NAME,
            credit_decision=_optional_str(report, "creditDecision") or DEFAULT_CREDIT_DECISION,
            credit_score=self._credit_score(report.get("creditScore"), company_id=company_id),
            industry=_optional_str(report, "industry") or DEFAULT_INDUSTRY,
            last_updated=_optional_str(report, "lastUpdated") or self._clock().isoformat(),
            report_status=_optional_str(report, "reportStatus") or DEFAULT_REPORT_STATUS,
            ratios=self._ratios(ratios_node),
            performance_trends=self._performance_trends(
                report.get(PERFORMANCE_TRENDS_FIELD),
                ratios_node,
            ),
            recommendations=self._recommendations(report.get("recommendations")),
            financial_year=_optional_str(report, "financialYear"),
            s3_csv_url=_optional_str(report, "s3CsvUrl"),
        )

    def denormalize(self, report: NormalizedFinancialReport) -> dict[str, Any]:
        """
        Build the submission payload for create/update mutations.
        """

        grouped: dict[str, dict[str, str]] = {}
        for ratio in report.ratios:
            try:
                category = category_for_display_name(ratio.category)
                application_key = application_key_for_display_name(category, ratio.name)
                wire_key = to_wire_key(category.key, application_key)
            except UnknownRatioKey as exc:
                logger.debug("Skipping ratio during denormalize: %s", exc)
                continue
            grouped.setdefault(category.key, {})[wire_key] = format_number(ratio.value)

        ratios_blob: dict[str, Any] = {
            category.key: grouped[category.key]
            for category in RATIO_CATEGORIES
            if category.key in grouped
        }
        if report.performance_trends:
            ratios_blob[PERFORMANCE_TRENDS_FIELD] = [
                {
                    "year": format_number(trend.year),
                    "revenue": format_number(trend.revenue),
                    "profit": format_number(trend.profit),
                    "debt": format_number(trend.debt),
                }
                for trend in report.performance_trends
            ]

        payload: dict[str, Any] = {
            "companyId": report.company_id,
            "reportDate": report.report_date,
            "companyName": report.company_name,
            "creditDecision": report.credit_decision,
            "creditScore": format_number(report.credit_score),
            "industry": report.industry,
            "lastUpdated": report.last_updated,
            "reportStatus": report.report_status,
            "financialRatios": json.dumps(ratios_blob),
            "recommendations": json.dumps(list(report.recommendations)),
        }
        if report.financial_year:
            payload["financialYear"] = report.financial_year
        if report.s3_csv_url:
            payload["s3CsvUrl"] = report.s3_csv_url
        return payload

    def to_company(self, raw: Any) -> Company:
        report = coerce_raw_report(raw)
        return Company(
            id=_required_str(report, "companyId"),
            name=_optional_str(report, "companyName") or DEFAULT_LISTED_COMPANY_NAME,
            report_date=_required_str(report, "reportDate"),
        )

    def to_companies(self, raws: Iterable[Any]) -> list[Company]:
        return [self.to_company(raw) for raw in raws]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _credit_score(self, node: TaggedValue | None, *, company_id: str) -> int:
        if node is None:
            return 0
        if not isinstance(node, (NumValue, StrValue)):
            logger.warning(
                "creditScore has unexpected tag company_id=%s node=%r; defaulting to 0",
                company_id,
                node,
            )
            return 0
        try:
            return int(parse_number(node.value, path="$.creditScore"))
        except MalformedNumber as exc:
            logger.warning(
                "creditScore could not be parsed company_id=%s error=%s; defaulting to 0",
                company_id,
                exc,
            )
            return 0

    def _ratios(self, node: TaggedValue | None) -> tuple[NormalizedRatio, ...]:
        if node is None:
            return ()
        if not isinstance(node, MapValue):
            logger.warning("financialRatios is not a map; ignoring node=%r", node)
            return ()

        for key in node.entries:
            if key != PERFORMANCE_TRENDS_FIELD and not is_ratio_category(key):
                logger.debug("Ignoring unknown ratio category %r", key)

        ratios: list[NormalizedRatio] = []
        for category in RATIO_CATEGORIES:
            category_node = node.get(category.key)
            if category_node is None:
                continue
            if not isinstance(category_node, MapValue):
                logger.warning("Ratio category %s is not a map; ignoring", category.key)
                continue

            values: dict[str, float] = {}
            for wire_key, value_node in category_node.entries.items():
                try:
                    application_key = to_application_key(category.key, wire_key)
                except UnknownRatioKey as exc:
                    logger.debug("Dropping ratio: %s", exc)
                    continue
                values[application_key] = _number(
                    value_node,
                    path=f"$.financialRatios.{category.key}.{wire_key}",
                )

            for key in category.known_keys:
                ratios.append(
                    NormalizedRatio(
                        name=humanize_key(key),
                        value=values.get(key, 0.0),
                        category=category.display_name,
                    )
                )
            for key in category.optional_keys:
                if key in values:
                    ratios.append(
                        NormalizedRatio(
                            name=humanize_key(key),
                            value=values[key],
                            category=category.display_name,
                        )
                    )
        return tuple(ratios)

    def _performance_trends(
        self,
        top_level: TaggedValue | None,
        ratios_node: TaggedValue | None,
    ) -> tuple[NormalizedPerformanceTrend, ...]:
        node = top_level
        if node is None and isinstance(ratios_node, MapValue):
            node = ratios_node.get(PERFORMANCE_TRENDS_FIELD)
        if node is None:
            return ()
        if not isinstance(node, ListValue):
            logger.warning("performanceTrends is not a list; ignoring node=%r", node)
            return ()

        trends: list[NormalizedPerformanceTrend] = []
        for index, item in enumerate(node.items):
            if not isinstance(item, MapValue):
                logger.warning("Skipping performanceTrends[%s]: not a map", index)
                continue
            fields = {
                name: _number(item.get(name), path=f"$.performanceTrends[{index}].{name}")
                if item.get(name) is not None
                else 0.0
                for name in TREND_FIELDS
            }
            trends.append(
                NormalizedPerformanceTrend(
                    year=int(fields["year"]),
                    revenue=fields["revenue"],
                    profit=fields["profit"],
                    debt=fields["debt"],
                )
            )
        trends.sort(key=lambda trend: trend.year)
        return tuple(trends)

    def _recommendations(self, node: TaggedValue | None) -> tuple[str, ...]:
        if node is None:
            return ()
        if not isinstance(node, ListValue):
            logger.warning("recommendations is not a list; ignoring node=%r", node)
            return ()
        recommendations: list[str] = []
        for index, item in enumerate(node.items):
            if isinstance(item, StrValue):
                recommendations.append(item.value)
            else:
                logger.warning("Skipping recommendations[%s]: not a string", index)
        return tuple(recommendations)


# ---------------------------------------------------------------------------
# Module-level helpers
# ---------------------------------------------------------------------------


def _required_str(report: MapValue, key: str) -> str:
    node = report.get(key)
    if isinstance(node, (StrValue, NumValue)) and node.value.strip():
        return node.value
    if node is None:
        raise MalformedReport(f"Report is missing required field '{key}'.")
    raise MalformedReport(f"Report field '{key}' must be a non-empty string.")


def _optional_str(report: MapValue, key: str) -> str | None:
    node = report.get(key)
    if node is None:
        return None
    if isinstance(node, (StrValue, NumValue)):
        return node.value if node.value.strip() else None
    logger.warning("Field %s has unexpected tag; ignoring node=%r", key, node)
    return None


def _number(node: TaggedValue | None, *, path: str) -> float:
    if isinstance(node, (NumValue, StrValue)):
        return parse_number(node.value, path=path)
    raise MalformedNumber(node, path=path)


def _number_text(value: Any) -> str:
    try:
        return format_number(value)
    except (TypeError, ValueError):
        return str(value)


def _load_blob(value: Any, *, field_name: str) -> Any:
    if value is None or not isinstance(value, str):
        return value
    if not value.strip():
        return None
    try:
        return json.loads(value)
    except json.JSONDecodeError as exc:
        logger.warning("Could not parse %s JSON blob: %s", field_name, exc)
        return None
