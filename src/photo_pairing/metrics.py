from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone

from photo_pairing.models import FeatureRow, Pair, Singleton
from photo_pairing.schema import Role

DECLINED = "declined_despite_candidates"
NO_CANDIDATES = "no_candidates"
OTHER = "other"

_LOG_FIELDS = (
    ("images", "images"),
    ("fronts", "fronts"),
    ("backs", "backs"),
    ("candidates", "candidates"),
    ("autoPairs", "auto_pairs"),
    ("modelPairs", "model_pairs"),
    ("globalPairs", "global_pairs"),
    ("singletons", "singletons"),
)


@dataclass(slots=True)
class BrandStats:
    fronts: int = 0
    paired: int = 0
    pair_rate: float = 0.0


@dataclass(slots=True)
class PairingMetrics:
    totals: dict[str, int]
    by_brand: dict[str, BrandStats]
    reasons: dict[str, int]
    thresholds: dict[str, float]
    duration_ms: float
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


def classify_reason(reason: str) -> str:
    text = reason.strip().lower()
    if text.startswith("declined despite candidates"):
        return DECLINED
    if text in ("no candidates", "no_candidates"):
        return NO_CANDIDATES
    return OTHER


def build_metrics(
    *,
    features: Sequence[FeatureRow],
    candidates: Mapping[str, Sequence[object]],
    auto_pairs: Sequence[Pair],
    model_pairs: Sequence[Pair],
    global_pairs: Sequence[Pair],
    singletons: Sequence[Singleton],
    thresholds: Mapping[str, float],
    duration_ms: float,
) -> PairingMetrics:
    fronts = [row for row in features if row.role == Role.FRONT]
    backs = [row for row in features if row.role in (Role.BACK, Role.OTHER)]
    paired_fronts = {pair.front_url.lower() for pair in (*auto_pairs, *model_pairs, *global_pairs)}

    by_brand: dict[str, BrandStats] = {}
    for front in fronts:
        stats = by_brand.setdefault(front.brand_norm or "Unknown", BrandStats())
        stats.fronts += 1
        if front.url.lower() in paired_fronts:
            stats.paired += 1
    for stats in by_brand.values():
        stats.pair_rate = round(stats.paired / stats.fronts, 2) if stats.fronts else 0.0

    reasons: dict[str, int] = {}
    for singleton in singletons:
        key = classify_reason(singleton.reason)
        reasons[key] = reasons.get(key, 0) + 1

    return PairingMetrics(
        totals={
            "images": len(features),
            "fronts": len(fronts),
            "backs": len(backs),
            "candidates": sum(len(scores) for scores in candidates.values()),
            "auto_pairs": len(auto_pairs),
            "model_pairs": len(model_pairs),
            "global_pairs": len(global_pairs),
            "singletons": len(singletons),
        },
        by_brand=by_brand,
        reasons=reasons,
        thresholds=dict(thresholds),
        duration_ms=duration_ms,
    )


def format_metrics_log(metrics: PairingMetrics) -> str:
    parts = [f"{label}={metrics.totals.get(key, 0)}" for label, key in _LOG_FIELDS]
    return "METRICS " + " ".join(parts)
