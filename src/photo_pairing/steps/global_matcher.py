from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from photo_pairing.models import CandidateScore, FeatureRow, GlobalPair
from photo_pairing.schema import Role

logger = logging.getLogger(__name__)

_BRAND_BONUS = 3.0
_BURST_BONUS = 2.0
# Camera file names share a timestamp prefix within one shooting burst.
_BURST_PREFIX_LEN = 13


def is_two_shot_set(features: Sequence[FeatureRow]) -> bool:
    """Exactly one front and one non-front image per product."""
    fronts = sum(1 for row in features if row.role == Role.FRONT)
    return fronts > 0 and fronts == len(features) - fronts


def solve_two_shot(
    fronts: Sequence[FeatureRow],
    backs: Sequence[FeatureRow],
    candidates: Mapping[str, Sequence[CandidateScore]] | None = None,
) -> list[GlobalPair]:
    """Greedy maximum-weight one-to-one assignment of fronts to backs.

    Dense score = candidate pre-score (0 when the back is not among the
    front's candidates) + brand bonus + burst-prefix bonus. Pairs are taken
    best first, skipping consumed images; only positive scores commit. Ties
    fall back to input order.
    """
    candidates = candidates or {}
    scored: list[tuple[float, int, int]] = []
    for i, front in enumerate(fronts):
        pre_scores = {c.back_url: c.pre_score for c in candidates.get(front.url, ())}
        for j, back in enumerate(backs):
            scored.append((pair_score(front, back, pre_scores.get(back.url, 0.0)), i, j))
    scored.sort(key=lambda item: (-item[0], item[1], item[2]))

    used_fronts: set[int] = set()
    used_backs: set[int] = set()
    committed: list[GlobalPair] = []
    for score, i, j in scored:
        if score <= 0:
            break
        if i in used_fronts or j in used_backs:
            continue
        used_fronts.add(i)
        used_backs.add(j)
        committed.append(GlobalPair(front=fronts[i], back=backs[j], score=score))

    logger.info("global solver committed %d pairs for %d fronts", len(committed), len(fronts))
    return committed


def pair_score(front: FeatureRow, back: FeatureRow, pre_score: float = 0.0) -> float:
    score = pre_score
    if front.brand_norm and front.brand_norm == back.brand_norm:
        score += _BRAND_BONUS
    front_prefix = front.file_name[:_BURST_PREFIX_LEN]
    if front_prefix and front_prefix == back.file_name[:_BURST_PREFIX_LEN]:
        score += _BURST_BONUS
    return score
