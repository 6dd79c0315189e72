from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from photo_pairing.models import CandidateScore, FeatureRow, Pair, Singleton

if TYPE_CHECKING:
    from photo_pairing.runners.local import PairingResult


@dataclass(slots=True)
class ArbitrationResult:
    pairs: list[Pair] = field(default_factory=list)
    singletons: list[Singleton] = field(default_factory=list)


class CandidateScorer(Protocol):
    """Step 1: rank plausible backs for every front."""

    def build(self, features: Sequence[FeatureRow]) -> dict[str, list[CandidateScore]]:
        ...


class PairArbiter(Protocol):
    """Step 2b: external model/LLM pass over fronts the auto-pair policy left open."""

    def arbitrate(
        self,
        remaining: Mapping[str, Sequence[CandidateScore]],
        features: Sequence[FeatureRow],
    ) -> ArbitrationResult:
        ...


class EmbeddingProvider(Protocol):
    """Step 3a: map images to embedding vectors keyed by image url."""

    def embed(self, rows: Sequence[FeatureRow]) -> dict[str, list[float]]:
        ...


class PairingPipeline(Protocol):
    def run(
        self,
        features: Sequence[FeatureRow],
        embeddings: Mapping[str, Sequence[float]] | None = None,
    ) -> "PairingResult":
        ...
