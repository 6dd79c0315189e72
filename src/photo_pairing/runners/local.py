from __future__ import annotations

import logging
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from photo_pairing.config import PairingConfig
from photo_pairing.interfaces import CandidateScorer, PairArbiter
from photo_pairing.metrics import PairingMetrics, build_metrics, format_metrics_log
from photo_pairing.models import CandidateScore, ClusterGroup, FeatureRow, Pair, ProductGroup, Singleton
from photo_pairing.schema import PairSource, Role
from photo_pairing.steps.autopair import AutoPairPolicy
from photo_pairing.steps.candidates import HeuristicCandidateScorer
from photo_pairing.steps.clustering import VisualClusterer
from photo_pairing.steps.global_matcher import is_two_shot_set, solve_two_shot
from photo_pairing.steps.grouping import group_extras, resolve_singletons

logger = logging.getLogger(__name__)

_GLOBAL_CONFIDENCE = 0.98


@dataclass(slots=True)
class PairingResult:
    pairs: list[Pair]
    products: list[ProductGroup]
    singletons: list[Singleton]
    candidates: dict[str, list[CandidateScore]]
    metrics: PairingMetrics
    two_shot: bool = False
    clusters: list[ClusterGroup] = field(default_factory=list)
    clusters_degenerate: bool = False


class LocalPairingPipeline:
    """Single-process runner: score, auto-pair, arbitrate or solve, group, summarize."""

    def __init__(
        self,
        config: PairingConfig | None = None,
        scorer: CandidateScorer | None = None,
        arbiter: PairArbiter | None = None,
        clusterer: VisualClusterer | None = None,
        two_shot: bool | None = None,
    ) -> None:
        self._config = config or PairingConfig()
        self._scorer = scorer or HeuristicCandidateScorer(self._config)
        self._policy = AutoPairPolicy(self._config)
        self._arbiter = arbiter
        self._clusterer = clusterer or VisualClusterer(
            threshold=self._config.cluster_threshold,
            degenerate_cutoff=self._config.degenerate_cutoff,
        )
        self._two_shot = two_shot

    def run(
        self,
        features: Sequence[FeatureRow],
        embeddings: Mapping[str, Sequence[float]] | None = None,
    ) -> PairingResult:
        started = time.perf_counter()

        candidates = self._scorer.build(features)
        build_ms = (time.perf_counter() - started) * 1000
        if build_ms > self._config.max_candidate_build_ms:
            logger.warning(
                "candidate building took %.0fms (threshold %.0fms)", build_ms, self._config.max_candidate_build_ms
            )
        self._warn_shared_backs(candidates)

        two_shot = is_two_shot_set(features) if self._two_shot is None else self._two_shot
        auto_pairs: list[Pair] = []
        model_pairs: list[Pair] = []
        global_pairs: list[Pair] = []
        if two_shot:
            global_pairs, singletons = self._solve_two_shot(features, candidates)
            pairs = global_pairs
            products = group_extras(pairs, features, max_extras=0)
        else:
            auto_pairs, model_pairs, singletons = self._pair_heuristically(features, candidates)
            pairs = auto_pairs + model_pairs
            products = group_extras(pairs, features)
            singletons += _unplaced_images(features, pairs, products, singletons)
            products, singletons = resolve_singletons(singletons, products, features)

        result = PairingResult(
            pairs=pairs,
            products=products,
            singletons=singletons,
            candidates=candidates,
            metrics=build_metrics(
                features=features,
                candidates=candidates,
                auto_pairs=auto_pairs,
                model_pairs=model_pairs,
                global_pairs=global_pairs,
                singletons=singletons,
                thresholds=self._config.thresholds(),
                duration_ms=0.0,
            ),
            two_shot=two_shot,
        )

        if embeddings is not None and _pair_coverage(features, pairs) < self._config.min_pair_coverage:
            outcome = self._clusterer.cluster(embeddings, features)
            result.clusters = outcome.groups
            result.clusters_degenerate = outcome.degenerate

        result.metrics.duration_ms = round((time.perf_counter() - started) * 1000, 3)
        logger.info(format_metrics_log(result.metrics))
        return result

    def _pair_heuristically(
        self,
        features: Sequence[FeatureRow],
        candidates: Mapping[str, list[CandidateScore]],
    ) -> tuple[list[Pair], list[Pair], list[Singleton]]:
        outcome = self._policy.apply(candidates, features)
        auto_pairs = outcome.pairs
        used_fronts = {pair.front_url for pair in auto_pairs}
        used_backs = {pair.back_url for pair in auto_pairs}

        model_pairs: list[Pair] = []
        reasons: dict[str, str] = {}
        if self._arbiter is not None and outcome.remaining:
            arbitration = self._arbiter.arbitrate(outcome.remaining, features)
            reasons = {singleton.url: singleton.reason for singleton in arbitration.singletons}
            for pair in arbitration.pairs:
                allowed = {score.back_url for score in outcome.remaining.get(pair.front_url, ())}
                if pair.back_url not in allowed:
                    logger.warning("dropping arbiter pair front=%s back=%s: back is not a candidate", pair.front_url, pair.back_url)
                    continue
                if pair.front_url in used_fronts or pair.back_url in used_backs:
                    logger.warning("dropping arbiter pair front=%s back=%s: image already consumed", pair.front_url, pair.back_url)
                    continue
                if pair.score < self._config.min_model_score:
                    logger.info(
                        "rejected low-score model pair front=%s back=%s score=%.2f (threshold=%.1f)",
                        pair.front_url, pair.back_url, pair.score, self._config.min_model_score,
                    )
                    reasons[pair.front_url] = (
                        f"declined despite candidates (model-pair rejected: score={pair.score:.2f} "
                        f"< {self._config.min_model_score} threshold)"
                    )
                    continue
                pair.source = PairSource.MODEL
                model_pairs.append(pair)
                used_fronts.add(pair.front_url)
                used_backs.add(pair.back_url)

        singletons: list[Singleton] = []
        for front in (row for row in features if row.role == Role.FRONT):
            if front.url in used_fronts:
                continue
            scores = candidates.get(front.url)
            if not scores:
                singletons.append(Singleton(url=front.url, reason="no candidates"))
            elif front.url in reasons:
                singletons.append(Singleton(url=front.url, reason=reasons[front.url]))
            else:
                listed = ",".join(f"{score.pre_score:.1f}" for score in scores)
                singletons.append(Singleton(url=front.url, reason=f"declined despite candidates: scores=[{listed}]"))
        return auto_pairs, model_pairs, singletons

    def _solve_two_shot(
        self,
        features: Sequence[FeatureRow],
        candidates: Mapping[str, list[CandidateScore]],
    ) -> tuple[list[Pair], list[Singleton]]:
        fronts = [row for row in features if row.role == Role.FRONT]
        backs = [row for row in features if row.role != Role.FRONT]
        committed = solve_two_shot(fronts, backs, candidates)

        pairs = [
            Pair(
                front_url=match.front.url,
                back_url=match.back.url,
                score=round(match.score, 1),
                source=PairSource.GLOBAL,
                confidence=_GLOBAL_CONFIDENCE,
                evidence=[
                    f"GLOBAL-PAIRED: score={match.score:.2f}",
                    f"brand={'equal' if match.front.brand_norm == match.back.brand_norm else 'mismatch'}",
                ],
            )
            for match in committed
        ]
        consumed = {pair.front_url for pair in pairs} | {pair.back_url for pair in pairs}
        singletons = [
            Singleton(url=row.url, reason="unmatched by global solver") for row in features if row.url not in consumed
        ]
        return pairs, singletons

    def _warn_shared_backs(self, candidates: Mapping[str, list[CandidateScore]]) -> None:
        fronts_by_back: dict[str, list[str]] = {}
        for front_url, scores in candidates.items():
            for score in scores:
                fronts_by_back.setdefault(score.back_url, []).append(front_url)
        for back_url, fronts in fronts_by_back.items():
            if len(fronts) >= self._config.max_back_front_ratio:
                logger.warning(
                    "back=%s appears under %d fronts; consider raising thresholds or checking filenames",
                    back_url, len(fronts),
                )


def _unplaced_images(
    features: Sequence[FeatureRow],
    pairs: Sequence[Pair],
    products: Sequence[ProductGroup],
    singletons: Sequence[Singleton],
) -> list[Singleton]:
    placed = {pair.front_url for pair in pairs} | {pair.back_url for pair in pairs}
    placed.update(url for product in products for url in product.extras)
    placed.update(singleton.url for singleton in singletons)
    return [
        Singleton(url=row.url, reason=f"unpaired {row.role.value}") for row in features if row.url not in placed
    ]


def _pair_coverage(features: Sequence[FeatureRow], pairs: Sequence[Pair]) -> float:
    fronts = {row.url for row in features if row.role == Role.FRONT}
    if not fronts:
        return 0.0
    return len(fronts & {pair.front_url for pair in pairs}) / len(fronts)
