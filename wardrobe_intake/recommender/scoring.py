"""Deterministic comfort/formality scoring.

Single source of truth for base scores per category/subcategory plus the light
adjustments derived from what the user reported when confirming a garment.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from wardrobe_intake.catalog.category import normalize_label

ENGINE_VERSION = "deterministic_v1"
FALLBACK_RULE_KEY = "fallback"
UNKNOWN_CATEGORY = "unknown"


class WearTemperature(str, Enum):
    COLD = "cold"
    MILD = "mild"
    WARM = "warm"


class FormalityFeel(str, Enum):
    CASUAL = "casual"
    SMART_CASUAL = "smart casual"
    FORMAL = "formal"


@dataclass(slots=True, frozen=True)
class ScoreVector:
    comfort: int
    formality: int


@dataclass(slots=True, frozen=True)
class SubcategoryRule:
    key: str
    score: ScoreVector
    aliases: tuple[str, ...] = ()

    def match_keys(self) -> list[str]:
        return [normalize_label(k) for k in (self.key, *self.aliases)]


@dataclass(slots=True, frozen=True)
class CategoryTable:
    rules: tuple[SubcategoryRule, ...]
    fallback: ScoreVector


@dataclass(slots=True, frozen=True)
class Adjustment:
    axis: str
    delta: int
    reason: str


@dataclass(slots=True, frozen=True)
class MatchedRule:
    category: str
    subcategory_key: str


@dataclass(slots=True, frozen=True)
class ScoringResult:
    base: ScoreVector
    final: ScoreVector
    matched_rule: MatchedRule
    adjustments_applied: list[Adjustment] = field(default_factory=list)
    engine: str = ENGINE_VERSION

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


DEFAULT_BASE = ScoreVector(comfort=3, formality=3)


def _rule(key: str, comfort: int, formality: int, *aliases: str) -> SubcategoryRule:
    return SubcategoryRule(key=key, score=ScoreVector(comfort, formality), aliases=aliases)


# Rule order is part of the contract: soft matches take the first rule listed.
SCORING_TABLES: dict[str, CategoryTable] = {
    "tops": CategoryTable(
        fallback=ScoreVector(3, 3),
        rules=(
            _rule("t shirt", 4, 1, "tee", "tshirt"),
            _rule("polo", 3, 3),
            _rule("button up", 3, 4, "button-up", "dress shirt", "oxford"),
            _rule("crewneck sweatshirt", 4, 2, "crewneck"),
            _rule("hoodie", 5, 1, "zip hoodie", "pullover hoodie"),
            _rule("sweater", 4, 3, "knit"),
            _rule("turtleneck", 3, 4),
        ),
    ),
    "bottoms": CategoryTable(
        fallback=ScoreVector(3, 3),
        rules=(
            _rule("jeans", 3, 2, "denim"),
            _rule("trousers", 3, 4, "pants", "dress pants"),
            _rule("chinos", 3, 3),
            _rule("joggers", 5, 1, "sweatpants"),
            _rule("shorts", 4, 1),
        ),
    ),
    "outerwear": CategoryTable(
        fallback=ScoreVector(3, 3),
        rules=(
            _rule("blazer", 2, 5),
            _rule("coat", 3, 4, "overcoat"),
            _rule("jacket", 3, 3),
            _rule("puffer", 4, 2, "parka"),
            _rule("windbreaker", 4, 2, "anorak"),
            _rule("trench", 3, 4),
            _rule("varsity", 3, 1),
            _rule("hoodie", 5, 1, "zip hoodie", "pullover hoodie"),
        ),
    ),
    "shoes": CategoryTable(
        fallback=ScoreVector(3, 3),
        rules=(
            _rule("sneakers", 4, 1, "sneaker", "trainer", "trainers"),
            _rule("running sneaker", 5, 1, "running"),
            _rule("boots", 3, 3, "boot", "chelsea boot"),
            _rule("loafers", 3, 4, "loafer"),
            _rule("dress shoes", 2, 5, "oxford shoe"),
            _rule("sandals", 4, 1, "slides", "slide"),
        ),
    ),
    "accessories": CategoryTable(
        fallback=ScoreVector(3, 3),
        rules=(
            _rule("belt", 3, 4),
            _rule("watch", 3, 4),
            _rule("beanie", 4, 1, "cap", "hat"),
            _rule("bag", 3, 2, "backpack", "crossbody"),
            _rule("sunglasses", 3, 2, "sunglass"),
        ),
    ),
    "fragrance": CategoryTable(
        fallback=ScoreVector(3, 4),
        rules=(
            _rule("fragrance", 3, 4, "perfume", "cologne", "parfum", "eau de parfum", "eau de toilette"),
        ),
    ),
}


def clamp_score(value: Any) -> int:
    """Round half up and bound to ``[1, 5]``; missing or non-finite is 3."""

    if value is None or isinstance(value, bool):
        return 3
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 3
    if not math.isfinite(number):
        return 3
    return max(1, min(5, math.floor(number + 0.5)))


def _category_key(category: Any) -> str:
    raw = category.value if isinstance(category, Enum) else category
    key = normalize_label(str(raw or ""))
    return key if key in SCORING_TABLES else UNKNOWN_CATEGORY


def _match_rule(category_key: str, subcategory: str) -> tuple[ScoreVector, str]:
    table = SCORING_TABLES.get(category_key)
    if table is None:
        return DEFAULT_BASE, FALLBACK_RULE_KEY

    sub = normalize_label(subcategory or UNKNOWN_CATEGORY)

    for rule in table.rules:
        if sub in rule.match_keys():
            return rule.score, rule.key

    # Soft contains match, still deterministic because rule order is fixed.
    for rule in table.rules:
        for key in rule.match_keys():
            if key and key in sub:
                return rule.score, rule.key

    return table.fallback, FALLBACK_RULE_KEY


def _enum_value(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, Enum):
        return str(value.value)
    return normalize_label(str(value))


def compute_scores(
    category: Any,
    subcategory: str | None,
    wear_temperature: WearTemperature | str | None = None,
    formality_feel: FormalityFeel | str | None = None,
) -> ScoringResult:
    """Score a garment on the comfort and formality axes."""

    category_key = _category_key(category)
    score, rule_key = _match_rule(category_key, subcategory or UNKNOWN_CATEGORY)

    base = ScoreVector(comfort=clamp_score(score.comfort), formality=clamp_score(score.formality))
    comfort, formality = base.comfort, base.formality
    adjustments: list[Adjustment] = []

    if _enum_value(wear_temperature) == WearTemperature.WARM.value:
        adjusted = clamp_score(comfort + 1)
        if adjusted != comfort:
            adjustments.append(Adjustment("comfort", 1, "wear_temperature=warm"))
        comfort = adjusted

    if _enum_value(formality_feel) == FormalityFeel.FORMAL.value:
        adjusted = clamp_score(formality + 1)
        if adjusted != formality:
            adjustments.append(Adjustment("formality", 1, "formality_feel=formal"))
        formality = adjusted

    return ScoringResult(
        base=base,
        final=ScoreVector(comfort=comfort, formality=formality),
        matched_rule=MatchedRule(category=category_key, subcategory_key=rule_key),
        adjustments_applied=adjustments,
    )
