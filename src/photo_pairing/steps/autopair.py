from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from photo_pairing.config import PairingConfig
from photo_pairing.models import CandidateScore, FeatureRow, Pair
from photo_pairing.schema import DISTINCTIVE_PACKAGING, BrandFlag, PairSource
from photo_pairing.steps.similarity import is_hair_cosmetic_category

logger = logging.getLogger(__name__)

_GENERAL_CONFIDENCE = 0.95
_HAIR_CONFIDENCE = 0.90


@dataclass(slots=True)
class AutoPairOutcome:
    pairs: list[Pair] = field(default_factory=list)
    remaining: dict[str, list[CandidateScore]] = field(default_factory=dict)


def score_gap(top: CandidateScore, second: CandidateScore | None) -> float:
    if second is None:
        return math.inf
    return top.pre_score - second.pre_score


def should_auto_pair(
    top: CandidateScore,
    second: CandidateScore | None,
    config: PairingConfig,
) -> bool:
    """A clear winner: high score and a wide margin over the runner-up."""
    return top.pre_score >= config.auto_pair.score and score_gap(top, second) >= config.auto_pair.gap


def should_auto_pair_hair_cosmetic(
    top: CandidateScore,
    second: CandidateScore | None,
    config: PairingConfig,
) -> bool:
    """Lower bar for cosmetics, whose backs are mostly ingredient lists.

    Requires distinctive packaging, a cosmetic text cue on the back, a size
    match (excused by the packaging), and brand agreement or an
    unknown-brand rescue.
    """
    distinctive = top.packaging in DISTINCTIVE_PACKAGING
    return (
        top.pre_score >= config.auto_pair_hair.score
        and score_gap(top, second) >= config.auto_pair_hair.gap
        and distinctive
        and top.cosmetic_back_cue
        and (top.size_eq or distinctive)
        and top.brand_flag in (BrandFlag.EQUAL, BrandFlag.UNKNOWN_RESCUE)
    )


class AutoPairPolicy:
    def __init__(self, config: PairingConfig | None = None) -> None:
        self._config = config or PairingConfig()

    def apply(
        self,
        candidates: Mapping[str, Sequence[CandidateScore]],
        features: Sequence[FeatureRow],
    ) -> AutoPairOutcome:
        by_url = {row.url: row for row in features}
        used_backs: set[str] = set()
        paired_fronts: set[str] = set()
        outcome = AutoPairOutcome()

        for front_url, scores in candidates.items():
            eligible = [s for s in scores if s.pre_score >= self._config.min_pre_score]
            if not eligible:
                continue
            top, second = eligible[0], _second(eligible)
            if top.back_url in used_backs or not should_auto_pair(top, second, self._config):
                continue
            pair = _auto_pair(front_url, top, second, PairSource.AUTO, _GENERAL_CONFIDENCE)
            outcome.pairs.append(pair)
            used_backs.add(top.back_url)
            paired_fronts.add(front_url)
            logger.info("AUTOPAIR front=%s %s gap=%.1f", front_url, top.describe(), score_gap(top, second))

        for front_url, scores in candidates.items():
            if front_url in paired_fronts:
                continue
            front = by_url.get(front_url)
            if front is None or not is_hair_cosmetic_category(front.category_path):
                continue
            eligible = [s for s in scores if s.pre_score >= self._config.hair_min_pre_score]
            if not eligible:
                continue
            top, second = eligible[0], _second(eligible)
            if top.back_url in used_backs or not should_auto_pair_hair_cosmetic(top, second, self._config):
                continue
            pair = _auto_pair(front_url, top, second, PairSource.AUTO_HAIR, _HAIR_CONFIDENCE)
            pair.evidence.append(f"INCI={top.cosmetic_back_cue}")
            outcome.pairs.append(pair)
            used_backs.add(top.back_url)
            paired_fronts.add(front_url)
            logger.info("AUTOPAIR[hair] front=%s %s gap=%.2f", front_url, top.describe(), score_gap(top, second))

        for front_url, scores in candidates.items():
            if front_url in paired_fronts:
                continue
            available = [s for s in scores if s.back_url not in used_backs]
            if available:
                outcome.remaining[front_url] = available
        return outcome


def _second(scores: Sequence[CandidateScore]) -> CandidateScore | None:
    return scores[1] if len(scores) > 1 else None


def _auto_pair(
    front_url: str,
    top: CandidateScore,
    second: CandidateScore | None,
    source: PairSource,
    confidence: float,
) -> Pair:
    label = "AUTO-PAIRED[hair]" if source == PairSource.AUTO_HAIR else "AUTO-PAIRED"
    return Pair(
        front_url=front_url,
        back_url=top.back_url,
        score=round(top.pre_score, 1),
        source=source,
        confidence=confidence,
        evidence=[
            f"{label}: preScore={top.pre_score:.2f}",
            f"gap={score_gap(top, second):.2f}",
            f"brand={top.brand_flag.value}",
            f"packaging={top.packaging.value} boost={top.packaging_boost}",
            f"prodJac={top.prod_jac:.2f} varJac={top.var_jac:.2f}",
            f"sizeEq={top.size_eq} catTailOverlap={top.cat_tail_overlap}",
        ],
    )
