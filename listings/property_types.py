"""Property-type taxonomy shared by listing mapping and inventory counting."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

SINGLE_FAMILY = "Single Family Residence"
CONDOMINIUM = "Condominium"
TOWNHOUSE = "Townhouse"
MULTI_FAMILY = "Multi-Family"
MANUFACTURED = "Manufactured Home"
RANCH = "Ranch"
UNIMPROVED_LAND = "Unimproved Land"
MULTIPLE_LOTS = "Multiple Lots (Adjacent)"
OTHER = "Other"

PROPERTY_TYPES: tuple[str, ...] = (
    SINGLE_FAMILY,
    CONDOMINIUM,
    TOWNHOUSE,
    MULTI_FAMILY,
    MANUFACTURED,
    RANCH,
    UNIMPROVED_LAND,
    MULTIPLE_LOTS,
    OTHER,
)

_LAND_KEYWORDS = ("land", "lot", "acreage", "unimproved", "vacant")


@dataclass(frozen=True)
class PropertyTypeRule:
    """One keyword group of the taxonomy.

    A rule matches when the text equals one of ``exact``, or contains one of
    ``keywords`` together with one of ``requires`` (when given) and none of
    ``excludes``.
    """

    canonical: str
    keywords: tuple[str, ...]
    requires: tuple[str, ...] = ()
    excludes: tuple[str, ...] = ()
    exact: tuple[str, ...] = ()

    def matches(self, text: str) -> bool:
        if text in self.exact:
            return True
        if not any(keyword in text for keyword in self.keywords):
            return False
        if self.requires and not any(keyword in text for keyword in self.requires):
            return False
        return not any(keyword in text for keyword in self.excludes)


# Evaluated top to bottom. Manufactured and condo come before the generic
# land keywords ("Mobile Home Lot" is a manufactured home), and the
# multiple-lots rule must run before "multi" claims it as Multi-Family.
PROPERTY_TYPE_RULES: tuple[PropertyTypeRule, ...] = (
    PropertyTypeRule(MANUFACTURED, ("manufactured", "mobile", "modular")),
    PropertyTypeRule(CONDOMINIUM, ("condo",)),
    PropertyTypeRule(TOWNHOUSE, ("townhouse", "townhome", "town house")),
    PropertyTypeRule(MULTIPLE_LOTS, ("multiple", "adjacent"), requires=_LAND_KEYWORDS),
    PropertyTypeRule(
        MULTI_FAMILY,
        ("multi", "duplex", "triplex", "fourplex", "quadruplex", "apartment"),
    ),
    PropertyTypeRule(SINGLE_FAMILY, ("single family",), exact=("sfr", "detached", "house")),
    PropertyTypeRule(RANCH, ("ranch", "farm")),
    PropertyTypeRule(UNIMPROVED_LAND, _LAND_KEYWORDS),
)

_WHITESPACE = re.compile(r"\s+")


def normalize_property_type(raw_sub_type: Any) -> str:
    """Map a free-text property subtype onto the canonical taxonomy."""

    if raw_sub_type is None:
        return OTHER
    text = _WHITESPACE.sub(" ", str(raw_sub_type).strip().lower())
    if not text:
        return OTHER
    for rule in PROPERTY_TYPE_RULES:
        if rule.matches(text):
            return rule.canonical
    return OTHER


__all__ = [
    "PROPERTY_TYPES",
    "PROPERTY_TYPE_RULES",
    "PropertyTypeRule",
    "normalize_property_type",
    "OTHER",
]
