"""Map free-text garment labels onto the closed category set."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

_PUNCTUATION = re.compile(r"[\W_]+")


class Category(str, Enum):
    """Closed set of wardrobe categories."""

    TOPS = "tops"
    BOTTOMS = "bottoms"
    OUTERWEAR = "outerwear"
    SHOES = "shoes"
    ACCESSORIES = "accessories"
    FRAGRANCE = "fragrance"


@dataclass(slots=True, frozen=True)
class CategoryNormalized:
    category: Category
    subcategory: str


def normalize_label(value: str | None) -> str:
    """Lower-case, trim and collapse punctuation/whitespace runs to one space."""

    return _PUNCTUATION.sub(" ", (value or "").lower()).strip()


FRAGRANCE_TERMS = ("fragrance", "perfume", "cologne", "eau de parfum", "eau de toilette", "parfum")
SHOE_TERMS = (
    "shoe", "sneaker", "trainer", "boot", "loafer", "heel", "sandal", "slide",
)
OUTERWEAR_TERMS = (
    "hoodie", "zip up", "zipup", "full zip", "half zip", "quarter zip",
    "jacket", "coat", "parka", "puffer", "windbreaker", "anorak",
    "trench", "varsity", "blazer", "overcoat",
)
BOTTOM_TERMS = (
    "pant", "trouser", "jean", "denim", "jogger", "sweatpant", "short", "skirt", "leggings",
)
# No bare "hood": hoodies mention their drawstring hood.
ACCESSORY_TERMS = (
    "accessory", "accessories", "hat", "cap", "beanie", "scarf", "belt", "bag",
    "backpack", "purse", "wallet", "watch", "ring", "necklace", "bracelet",
    "earring", "sunglass",
)


def _mentions(blob: str, terms: Iterable[str]) -> bool:
    return any(term in blob for term in terms)


def _is_outerwear(blob: str) -> bool:
    return _mentions(blob, OUTERWEAR_TERMS) or ("fleece" in blob and "hood" in blob)


# Order matters: first match wins.
_RULES = (
    (Category.FRAGRANCE, lambda blob: _mentions(blob, FRAGRANCE_TERMS)),
    (Category.SHOES, lambda blob: _mentions(blob, SHOE_TERMS)),
    (Category.OUTERWEAR, _is_outerwear),
    (Category.BOTTOMS, lambda blob: _mentions(blob, BOTTOM_TERMS)),
    (Category.ACCESSORIES, lambda blob: _mentions(blob, ACCESSORY_TERMS)),
)


def normalize_category(
    garment_type: str | None = None,
    subcategory: str | None = None,
    title: str | None = None,
    tags: Iterable[str] | None = None,
) -> CategoryNormalized:
    """Classify loosely labelled garment attributes.

    All inputs are normalized and searched as one blob. Categories are tested
    in a fixed priority (fragrance, shoes, outerwear, bottoms, accessories)
    and anything unmatched is a top.
    """

    garment = normalize_label(garment_type)
    sub = normalize_label(subcategory)
    title_norm = normalize_label(title)
    tag_norms = [normalize_label(str(tag)) for tag in (tags or [])]

    blob = " ".join(part for part in (garment, sub, title_norm, *tag_norms) if part)

    category = Category.TOPS
    for candidate, matches in _RULES:
        if matches(blob):
            category = candidate
            break

    return CategoryNormalized(
        category=category,
        subcategory=sub or garment or category.value,
    )
