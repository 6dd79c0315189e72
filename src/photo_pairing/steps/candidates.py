from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Mapping, Sequence

from photo_pairing.config import PairingConfig
from photo_pairing.models import CandidateScore, FeatureRow
from photo_pairing.schema import BrandFlag, PackagingHint, Role
from photo_pairing.steps.similarity import (
    category_tail_overlap,
    colors_match,
    has_barcode_cue,
    has_category_conflict,
    is_cosmetic_back_cue,
    is_unknown_category,
    jaccard,
    levenshtein,
)

logger = logging.getLogger(__name__)

SignatureCounts = Mapping[tuple[str, tuple[str, ...]], int]


class HeuristicCandidateScorer:
    """Scores every front against every back and keeps the top K per front.

    The score is additive over independent signals (brand, tokens, size,
    packaging, category, colour, filename proximity, barcode) plus rescue
    rules for missing or distributor brands and penalties for role and
    category disagreements.
    """

    def __init__(self, config: PairingConfig | None = None) -> None:
        self._config = config or PairingConfig()

    def build(self, features: Sequence[FeatureRow]) -> dict[str, list[CandidateScore]]:
        fronts = [row for row in features if row.role == Role.FRONT]
        backs = [row for row in features if row.role == Role.BACK]
        counts = signature_counts(fronts)

        result: dict[str, list[CandidateScore]] = {}
        for front in fronts:
            unique = counts.get(front.signature) == 1
            candidates = [
                candidate
                for candidate in (self.score_pair(front, back, front_unique=unique) for back in backs)
                if candidate.pre_score >= self._config.min_pre_score
            ]
            candidates.sort(key=ranking_key)
            top_k = candidates[: self._config.top_k]
            if top_k:
                result[front.url] = top_k
        return result

    def score_pair(self, front: FeatureRow, back: FeatureRow, front_unique: bool = False) -> CandidateScore:
        score = 0.0

        brand_match = bool(front.brand_norm) and front.brand_norm == back.brand_norm
        if brand_match:
            score += 3

        prod_jac = jaccard(front.product_tokens, back.product_tokens)
        if prod_jac >= 0.5:
            score += 2
        elif prod_jac >= 0.3:
            score += 1

        var_jac = jaccard(front.variant_tokens, back.variant_tokens)
        if var_jac >= 0.5:
            score += 1

        size_eq = front.size_canonical is not None and front.size_canonical == back.size_canonical
        if size_eq:
            score += 1

        pkg_match = front.packaging_hint != PackagingHint.OTHER and front.packaging_hint == back.packaging_hint
        packaging_boost = self._config.pkg_boost.for_packaging(front.packaging_hint) if pkg_match else 0.0
        score += packaging_boost

        tail_overlap = category_tail_overlap(front.category_tail, back.category_tail)
        if tail_overlap:
            score += 1

        brand_flag = BrandFlag.EQUAL if brand_match else BrandFlag.MISMATCH
        brand_missing = not front.brand_norm or not back.brand_norm
        if brand_missing and pkg_match:
            category_agrees = (
                is_unknown_category(front.category_path)
                or is_unknown_category(back.category_path)
                or tail_overlap
            )
            if category_agrees:
                score += 1.0
                brand_flag = BrandFlag.UNKNOWN_RESCUE

        if not brand_match and not brand_missing:
            if prod_jac >= 0.5 and (size_eq or tail_overlap) and pkg_match:
                # Contract manufacturer on the back, storefront brand on the front.
                score += 1.5
                brand_flag = BrandFlag.DISTRIBUTOR_RESCUE
                logger.debug(
                    "distributor rescue %s (%s) <-> %s (%s) prodJac=%.2f",
                    front.url, front.brand_norm, back.url, back.brand_norm, prod_jac,
                )
        if brand_flag == BrandFlag.MISMATCH and brand_missing:
            brand_flag = BrandFlag.UNKNOWN

        cosmetic_cue = is_cosmetic_back_cue(back.text_extracted)
        if cosmetic_cue and back.role == Role.BACK:
            score += 0.5

        color_match = colors_match(front.color_key, back.color_key)
        if color_match:
            score += 1.5

        proximity_boost = proximity(front, back)
        score += proximity_boost

        barcode_boost = 0.5 if front_unique and has_barcode_cue(back.text_extracted) else 0.0
        score += barcode_boost

        if front.role != Role.FRONT or back.role != Role.BACK:
            strong_evidence = color_match and (prod_jac >= 0.4 or size_eq) and pkg_match
            if strong_evidence:
                score -= 0.5
                logger.debug("role override %s (%s) <-> %s (%s)", front.url, front.role, back.url, back.role)
            else:
                score -= 2

        if has_category_conflict(front.category_path, back.category_path):
            score -= 2

        return CandidateScore(
            back_url=back.url,
            pre_score=score,
            prod_jac=prod_jac,
            var_jac=var_jac,
            size_eq=size_eq,
            packaging=front.packaging_hint,
            packaging_boost=packaging_boost,
            cat_tail_overlap=tail_overlap,
            cosmetic_back_cue=cosmetic_cue,
            brand_flag=brand_flag,
            proximity_boost=proximity_boost,
            barcode_boost=barcode_boost,
            brand_match=brand_match,
            pkg_match=pkg_match,
            color_match=color_match,
        )


def candidate_scores_for_front(
    features: Sequence[FeatureRow],
    front_url: str,
    config: PairingConfig | None = None,
) -> list[CandidateScore]:
    """All backs scored against one front, unfiltered and untruncated."""
    by_url = {row.url: row for row in features}
    front = by_url.get(front_url)
    if front is None or front.role != Role.FRONT:
        return []
    counts = signature_counts([row for row in features if row.role == Role.FRONT])
    scorer = HeuristicCandidateScorer(config)
    unique = counts.get(front.signature) == 1
    scores = [scorer.score_pair(front, back, front_unique=unique) for back in features if back.role == Role.BACK]
    return sorted(scores, key=ranking_key)


def signature_counts(fronts: Sequence[FeatureRow]) -> SignatureCounts:
    return Counter(front.signature for front in fronts)


def ranking_key(candidate: CandidateScore) -> tuple[float, float, bool, bool, str]:
    return (
        -candidate.pre_score,
        -candidate.prod_jac,
        not candidate.brand_match,
        not candidate.pkg_match,
        candidate.back_url,
    )


def proximity(front: FeatureRow, back: FeatureRow) -> float:
    """0.5 for a shared folder or near-identical filename stems."""
    if front.folder and front.folder == back.folder:
        return 0.5
    front_stem, back_stem = front.stem.lower(), back.stem.lower()
    if len(front_stem) > 2 and len(back_stem) > 2 and levenshtein(front_stem, back_stem) <= 2:
        return 0.5
    return 0.0
