"""
finreport/services/ratio_aggregation_service.py

Category-level summaries over normalized ratios.

Categories come out in the fixed display order (Liquidity, Profitability,
Solvency, Efficiency, Market Value), followed by any other category names
in first-seen order. Within a category, ratios are sorted by value,
largest first, which is how the category bar charts present them.

``radar_scores`` scales each category mean against the largest single ratio
in the report so every category lands on a shared 0-100 axis.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from finreport.domain.financial_report import NormalizedRatio
from finreport.mappers.ratio_fields import CATEGORY_DISPLAY_ORDER

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CategorySummary:
    """
    Summary statistics for one ratio category.
    """

    category: str
    count: int
    total: float
    mean: float
    minimum: float
    maximum: float
    ratios: tuple[NormalizedRatio, ...]


def group_by_category(ratios: Iterable[NormalizedRatio]) -> dict[str, list[NormalizedRatio]]:
    grouped: dict[str, list[NormalizedRatio]] = {name: [] for name in CATEGORY_DISPLAY_ORDER}
    for ratio in ratios:
        grouped.setdefault(ratio.category, []).append(ratio)
    return {name: members for name, members in grouped.items() if members}


def summarize(ratios: Iterable[NormalizedRatio]) -> list[CategorySummary]:
    summaries: list[CategorySummary] = []
    for category, members in group_by_category(ratios).items():
        values = [ratio.value for ratio in members]
        total = sum(values)
        summaries.append(
            CategorySummary(
                category=category,
                count=len(values),
                total=total,
                mean=total / len(values),
                minimum=min(values),
                maximum=max(values),
                ratios=tuple(sorted(members, key=lambda ratio: ratio.value, reverse=True)),
            )
        )
    return summaries


def radar_scores(ratios: Iterable[NormalizedRatio]) -> dict[str, float]:
    """
    ``{category: mean / overall_max * 100}``.

    Empty when there are no ratios or the largest ratio is not positive,
    since the scale is undefined then.
    """

    summaries = summarize(ratios)
    if not summaries:
        return {}

    overall_max = max(summary.maximum for summary in summaries)
    if overall_max <= 0:
        logger.debug("Skipping radar scaling; overall maximum is %s", overall_max)
        return {}
    return {summary.category: summary.mean / overall_max * 100 for summary in summaries}
