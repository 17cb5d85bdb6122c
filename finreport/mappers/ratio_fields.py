"""
finreport/mappers/ratio_fields.py

Ratio category vocabulary and field-name translation.

Upstream storage returns ratio keys lowercased and concatenated
(``currentratio``) while the application works with camelCase keys
(``currentRatio``). Lookups are scoped per category: several categories
share suffixes such as "ratio", so the tables must never be merged.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Final

from finreport.domain.errors import UnknownRatioKey

_CAPITAL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def humanize_key(key: str) -> str:
    """
    ``currentRatio`` -> ``Current Ratio``; ``marketValueRatios`` -> ``Market Value Ratios``.
    """

    spaced = _CAPITAL_BOUNDARY.sub(" ", key)
    return spaced[:1].upper() + spaced[1:]


@dataclass(frozen=True)
class RatioCategory:
    """
    One fixed ratio category.

    ``known_keys`` default to 0 when missing from a report; ``optional_keys``
    are carried through only when present.
    """

    key: str
    known_keys: tuple[str, ...]
    optional_keys: tuple[str, ...] = ()

    @property
    def display_name(self) -> str:
        return humanize_key(self.key)

    @property
    def application_keys(self) -> tuple[str, ...]:
        return self.known_keys + self.optional_keys


RATIO_CATEGORIES: Final[tuple[RatioCategory, ...]] = (
    RatioCategory(
        key="liquidityRatios",
        known_keys=("currentRatio", "quickRatio"),
        optional_keys=("cashRatio",),
    ),
    RatioCategory(
        key="profitabilityRatios",
        known_keys=("grossProfitMargin", "operatingProfitMargin", "returnOnAssets"),
        optional_keys=("returnOnEquity",),
    ),
    RatioCategory(
        key="solvencyRatios",
        known_keys=("debtToEquityRatio", "interestCoverageRatio"),
        optional_keys=("debtServiceCoverageRatio",),
    ),
    RatioCategory(
        key="efficiencyRatios",
        known_keys=("assetTurnoverRatio", "inventoryTurnover"),
        optional_keys=("payablesTurnoverRatio",),
    ),
    RatioCategory(
        key="marketValueRatios",
        known_keys=("priceToEarnings",),
        optional_keys=("dividendYield",),
    ),
)

_CATEGORIES_BY_KEY: Final[dict[str, RatioCategory]] = {
    category.key: category for category in RATIO_CATEGORIES
}

_CATEGORIES_BY_DISPLAY_NAME: Final[dict[str, RatioCategory]] = {
    category.display_name: category for category in RATIO_CATEGORIES
}

# category key -> {wire key: application key}
_WIRE_TO_APPLICATION: Final[dict[str, dict[str, str]]] = {
    category.key: {key.lower(): key for key in category.application_keys}
    for category in RATIO_CATEGORIES
}

CATEGORY_DISPLAY_ORDER: Final[tuple[str, ...]] = tuple(
    category.display_name for category in RATIO_CATEGORIES
)


def get_category(category_key: str) -> RatioCategory:
    category = _CATEGORIES_BY_KEY.get(category_key)
    if category is None:
        raise UnknownRatioKey(category_key, "*")
    return category


def is_ratio_category(category_key: str) -> bool:
    return category_key in _CATEGORIES_BY_KEY


def to_application_key(category_key: str, wire_key: str) -> str:
    """
    Translate a wire ratio key to its application key within one category.

    The wire key is case-folded before lookup, so both ``currentratio`` and
    an already camelCased ``currentRatio`` resolve.
    """

    table = _WIRE_TO_APPLICATION.get(category_key)
    if table is None:
        raise UnknownRatioKey(category_key, wire_key)
    application_key = table.get(wire_key.lower())
    if application_key is None:
        raise UnknownRatioKey(category_key, wire_key)
    return application_key


def to_wire_key(category_key: str, application_key: str) -> str:
    """
    Translate an application ratio key back to the lowercase wire key.
    """

    category = get_category(category_key)
    if application_key not in category.application_keys:
        raise UnknownRatioKey(category_key, application_key)
    return application_key.lower()


def category_for_display_name(display_name: str) -> RatioCategory:
    category = _CATEGORIES_BY_DISPLAY_NAME.get(display_name)
    if category is None:
        raise UnknownRatioKey(display_name, "*")
    return category


def application_key_for_display_name(category: RatioCategory, ratio_name: str) -> str:
    """
    ``Current Ratio`` -> ``currentRatio`` for ratios of ``category``.
    """

    for key in category.application_keys:
        if humanize_key(key) == ratio_name:
            return key
    raise UnknownRatioKey(category.key, ratio_name)
