"""Pure similarity primitives and the regex cues the scorer reads as rules."""

from __future__ import annotations

import re
from collections.abc import Set

_SHADE_PREFIX = re.compile(r"^(light-|dark-|deep-|bright-|pale-|dim-)", re.IGNORECASE)

_HAIR_COSMETIC = re.compile(r"(hair|cosmetic|beauty)", re.IGNORECASE)
_SUPPLEMENT_FOOD = re.compile(r"(supplement|food|beverage|vitamin|nutrition)", re.IGNORECASE)
# Wider vocabulary gating the hair/cosmetic auto-pair rule.
_HAIR_COSMETIC_RULE = re.compile(r"(hair|cosmetic|skin|styling|beauty)", re.IGNORECASE)

_COSMETIC_BACK_CUE = re.compile(r"ingredients:|avoid contact|12m|24m|distributed by|apply.*hair", re.IGNORECASE)
_BARCODE_CUE = re.compile(r"\b(barcode|upc|ean|gtin|product code)(?=\d|\b)", re.IGNORECASE)

_UNKNOWN_CATEGORY = "unknown"


def jaccard(left: Set[str], right: Set[str]) -> float:
    """Intersection over union; two empty sets score 0, not 1."""
    union = len(left | right)
    if union == 0:
        return 0.0
    return len(left & right) / union


def levenshtein(left: str, right: str) -> int:
    if left == right:
        return 0
    if not left:
        return len(right)
    if not right:
        return len(left)

    prev = list(range(len(right) + 1))
    for i, c1 in enumerate(left, start=1):
        curr = [i]
        for j, c2 in enumerate(right, start=1):
            cost = 0 if c1 == c2 else 1
            curr.append(min(curr[j - 1] + 1, prev[j] + 1, prev[j - 1] + cost))
        prev = curr
    return prev[-1]


def colors_match(left: str, right: str) -> bool:
    if not left or not right:
        return False
    if left == right:
        return True
    return _SHADE_PREFIX.sub("", left) == _SHADE_PREFIX.sub("", right)


def category_tail_overlap(left: str, right: str) -> bool:
    if not left or not right:
        return False
    right_tokens = set(right.lower().split())
    return any(token in right_tokens for token in left.lower().split())


def has_category_conflict(left: str | None, right: str | None) -> bool:
    """Hair/cosmetic on one side, supplement/food/beverage on the other."""
    families = {_category_family(left), _category_family(right)}
    return families == {"hair", "food"}


def is_unknown_category(category_path: str | None) -> bool:
    return not category_path or category_path.strip().lower() == _UNKNOWN_CATEGORY


def is_hair_cosmetic_category(category_path: str | None) -> bool:
    if not category_path or _SUPPLEMENT_FOOD.search(category_path):
        return False
    return bool(_HAIR_COSMETIC_RULE.search(category_path))


def _category_family(category_path: str | None) -> str | None:
    # "Health & Beauty > Vitamins" names both vocabularies; food wins.
    if not category_path:
        return None
    if _SUPPLEMENT_FOOD.search(category_path):
        return "food"
    if _HAIR_COSMETIC.search(category_path):
        return "hair"
    return None


def is_cosmetic_back_cue(text: str) -> bool:
    """INCI lists, usage warnings, distributor lines: typical cosmetics back copy."""
    return bool(text) and bool(_COSMETIC_BACK_CUE.search(text))


def has_barcode_cue(text: str) -> bool:
    return bool(text) and bool(_BARCODE_CUE.search(text))
