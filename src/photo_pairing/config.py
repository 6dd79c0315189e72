from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace

from photo_pairing.errors import ConfigError
from photo_pairing.schema import PackagingHint


@dataclass(frozen=True)
class PackagingBoost:
    """Score added when both sides share a non-"other" packaging type."""

    dropper: float = 2.0
    pouch: float = 1.5
    bottle: float = 1.0

    def for_packaging(self, packaging: PackagingHint) -> float:
        if packaging == PackagingHint.DROPPER_BOTTLE:
            return self.dropper
        if packaging == PackagingHint.POUCH:
            return self.pouch
        return self.bottle


@dataclass(frozen=True)
class AutoPairThresholds:
    score: float
    gap: float


@dataclass(frozen=True)
class PairingConfig:
    """Every threshold the engine reads. Passed explicitly, never global."""

    min_pre_score: float = 2.0
    top_k: int = 4
    pkg_boost: PackagingBoost = field(default_factory=PackagingBoost)
    auto_pair: AutoPairThresholds = field(default_factory=lambda: AutoPairThresholds(score=3.0, gap=1.0))
    auto_pair_hair: AutoPairThresholds = field(default_factory=lambda: AutoPairThresholds(score=2.1, gap=0.7))
    hair_min_pre_score: float = 1.5
    min_model_score: float = 3.0
    max_back_front_ratio: int = 3
    max_candidate_build_ms: float = 2000.0
    cluster_threshold: float = 0.85
    degenerate_cutoff: float = 0.98
    min_pair_coverage: float = 0.5

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "PairingConfig":
        env = os.environ if environ is None else environ
        base = cls()
        return replace(
            base,
            min_pre_score=_float(env, "PAIR_MIN_PRESCORE", base.min_pre_score),
            top_k=int(_float(env, "PAIR_TOP_K", base.top_k)),
            pkg_boost=PackagingBoost(
                dropper=_float(env, "PAIR_PKG_BOOST_DROPPER", base.pkg_boost.dropper),
                pouch=_float(env, "PAIR_PKG_BOOST_POUCH", base.pkg_boost.pouch),
                bottle=_float(env, "PAIR_PKG_BOOST_BOTTLE", base.pkg_boost.bottle),
            ),
            auto_pair=AutoPairThresholds(
                score=_float(env, "PAIR_AUTO_SCORE", base.auto_pair.score),
                gap=_float(env, "PAIR_AUTO_GAP", base.auto_pair.gap),
            ),
            auto_pair_hair=AutoPairThresholds(
                score=_float(env, "PAIR_AUTO_HAIR_SCORE", base.auto_pair_hair.score),
                gap=_float(env, "PAIR_AUTO_HAIR_GAP", base.auto_pair_hair.gap),
            ),
            min_model_score=_float(env, "PAIR_MIN_MODEL_SCORE", base.min_model_score),
            cluster_threshold=_float(env, "PAIR_CLUSTER_THRESHOLD", base.cluster_threshold),
        )

    def thresholds(self) -> dict[str, float]:
        return {
            "min_pre_score": self.min_pre_score,
            "auto_pair_score": self.auto_pair.score,
            "auto_pair_gap": self.auto_pair.gap,
            "auto_pair_hair_score": self.auto_pair_hair.score,
            "auto_pair_hair_gap": self.auto_pair_hair.gap,
        }


def _float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{key} must be numeric, got {raw!r}") from None
